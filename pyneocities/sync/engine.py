"""Core sync engine for push and pull runs."""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..api import NeocitiesClient
from ..exceptions import NotADirectoryValidationError
from ..output import OutputFormatter
from .executor import TransferExecutor, TransferResult, TransferStatus
from .ignore import IgnoreFilter, load_ignore_file
from .operations import SyncOperations
from .options import PullOptions, PushOptions
from .oracle import RemoteHashOracle
from .planner import SyncAction, SyncDecision, SyncPlanner
from .scanner import DirectoryScanner, remote_entries_from_listing
from .state import Checkpoint, CheckpointStore

logger = logging.getLogger(__name__)

# Verb shown in front of each per-file line
ACTION_LABELS = {
    SyncAction.UPLOAD: "Uploading",
    SyncAction.SKIP_EXISTS: "Uploading",
    SyncAction.DELETE: "Deleting",
    SyncAction.DOWNLOAD: "Pulling",
    SyncAction.SKIP_CURRENT: "Pulling",
}


class SyncEngine:
    """Core sync engine that orchestrates push and pull runs.

    Planning-phase errors (bad root, unreadable ignore file, failed listing)
    propagate to the caller before anything is transferred. Execution-phase
    errors are reported per file and counted in the returned statistics.
    """

    def __init__(
        self,
        client: NeocitiesClient,
        output: Optional[OutputFormatter] = None,
        checkpoints: Optional[CheckpointStore] = None,
        scanner: Optional[DirectoryScanner] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Neocities API client
            output: Output formatter for displaying progress/status
            checkpoints: Store for pull checkpoints
            scanner: Local directory scanner
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.checkpoints = checkpoints or CheckpointStore()
        self.scanner = scanner or DirectoryScanner()
        self.operations = SyncOperations(client)

    # =========================
    # Push
    # =========================

    def plan_push(self, options: PushOptions) -> list[SyncDecision]:
        """Scan the local root and plan a push without executing it.

        Raises:
            SyncValidationError: If the root is missing or not a directory
            IgnoreFileError: If the ignore file cannot be read
            NeocitiesAPIError: If the listing for pruning fails
        """
        with self.output.status("Scanning local directory..."):
            entries = self.scanner.scan(options.root)

        ignore_filter = IgnoreFilter.load(options.ignore_patterns, options.root)
        if options.use_gitignore:
            gitignore = load_ignore_file(options.root)
            if len(gitignore) and not self.output.quiet:
                self.output.info(
                    "Not syncing .gitignore entries (--no-gitignore to disable)"
                )
            ignore_filter = ignore_filter.merge(gitignore)

        remote_listing = None
        if options.prune:
            with self.output.status("Fetching remote file list..."):
                remote_listing = remote_entries_from_listing(self.client.list())

        planner = SyncPlanner(RemoteHashOracle(self.client))
        with self.output.status("Comparing with remote files..."):
            return planner.plan_push(
                entries,
                ignore_filter=ignore_filter,
                excluded=options.excluded,
                remote_listing=remote_listing,
            )

    def push(self, options: PushOptions) -> dict:
        """Upload a local directory to the site.

        Args:
            options: Push settings

        Returns:
            Dictionary with sync statistics

        Examples:
            >>> engine = SyncEngine(client)
            >>> stats = engine.push(PushOptions("site", dry_run=True))
            >>> print(f"Would upload {stats['uploads']} files")
        """
        start_time = time.time()
        logger.debug(f"Starting push of {options.root} (dry_run={options.dry_run})")

        decisions = self.plan_push(options)

        if options.dry_run and not self.output.quiet:
            self.output.info("Dry run: No changes will be made")

        executor = TransferExecutor(self.operations, dry_run=options.dry_run)
        results = executor.execute_all(
            decisions,
            max_workers=options.max_workers,
            on_result=self._report_result,
        )

        stats = self._categorize_results(results)
        stats["dry_run"] = options.dry_run
        stats["elapsed"] = round(time.time() - start_time, 2)
        self._display_push_summary(stats)
        stats["results"] = [r.to_dict() for r in results]
        return stats

    # =========================
    # Pull
    # =========================

    def pull(self, options: PullOptions) -> dict:
        """Download every new or updated site file into a local directory.

        The checkpoint is saved with the start time of the run once the batch
        has been worked through, even when some files failed. An interrupted
        run leaves the previous checkpoint in place.

        Args:
            options: Pull settings

        Returns:
            Dictionary with sync statistics
        """
        started_at = datetime.now(timezone.utc)
        start_time = time.time()
        root = options.root
        if root.exists() and not root.is_dir():
            raise NotADirectoryValidationError(root)
        root.mkdir(parents=True, exist_ok=True)
        local_root = root.resolve()

        show_files = not (options.quiet or self.output.quiet)

        with self.output.status("Fetching site information..."):
            site_url = self.client.site_url(options.sitename)
            # Prefer the server clock so the next comparison uses one clock
            server_time = self.client.last_server_time
            if isinstance(server_time, datetime):
                started_at = server_time
            remote_entries = remote_entries_from_listing(self.client.list())

        self.operations.site_url = site_url
        checkpoint = self.checkpoints.load(options.sitename)
        directory_errors: list[str] = []

        def make_directory(relative_path: str) -> None:
            try:
                self.operations.make_local_directory(local_root, relative_path)
            except OSError as e:
                directory_errors.append(relative_path)
                self.output.error(f"Cannot create directory {relative_path}: {e}")

        planner = SyncPlanner()
        decisions = planner.plan_pull(
            remote_entries, checkpoint, local_root, make_directory=make_directory
        )

        executor = TransferExecutor(self.operations)
        on_result = self._report_result if show_files else self._report_error
        if options.quiet and not self.output.quiet:
            with self.output.status("Pulling files..."):
                results = executor.execute_all(
                    decisions, max_workers=options.max_workers, on_result=on_result
                )
        else:
            results = executor.execute_all(
                decisions, max_workers=options.max_workers, on_result=on_result
            )

        self.checkpoints.save(
            options.sitename, Checkpoint.create(started_at, local_root)
        )

        stats = self._categorize_results(results)
        stats["errors"] += len(directory_errors)
        stats["elapsed"] = round(time.time() - start_time, 2)
        if not self.output.quiet:
            self.output.success(
                f"\nSuccessfully fetched {stats['downloads']} files "
                f"in {stats['elapsed']} seconds"
            )
        stats["results"] = [r.to_dict() for r in results]
        return stats

    # =========================
    # Reporting
    # =========================

    def _report_result(self, result: TransferResult) -> None:
        """Print the outcome of one file."""
        decision = result.decision
        outcome = result.outcome
        message = f"{ACTION_LABELS[decision.action]} {decision.relative_path}"

        if outcome.status == TransferStatus.SUCCESS:
            self.output.file_status(message, "SUCCESS", "green")
        elif outcome.status == TransferStatus.EXISTS:
            self.output.file_status(message, "EXISTS", "cyan", "identical file on site")
        elif outcome.status == TransferStatus.SKIPPED:
            self.output.file_status(message, "NO NEW UPDATES", "yellow")
        else:
            self.output.file_status(message, "ERROR", "red", outcome.message)

    def _report_error(self, result: TransferResult) -> None:
        """Print only failures (quiet pulls)."""
        if result.outcome.status == TransferStatus.ERROR:
            self.output.error(
                f"{result.decision.relative_path}: {result.outcome.message}"
            )

    def _create_empty_stats(self) -> dict:
        """Create an empty statistics dictionary.

        Returns:
            Dictionary with zero counts for all stat categories
        """
        return {
            "uploads": 0,
            "downloads": 0,
            "deletes": 0,
            "exists": 0,
            "skips": 0,
            "errors": 0,
            "total": 0,
        }

    def _categorize_results(self, results: list[TransferResult]) -> dict:
        """Count results by outcome; only successful transfers are counted."""
        stats = self._create_empty_stats()
        stats["total"] = len(results)

        for result in results:
            status = result.outcome.status
            action = result.decision.action
            if status == TransferStatus.ERROR:
                stats["errors"] += 1
            elif status == TransferStatus.EXISTS:
                stats["exists"] += 1
            elif status == TransferStatus.SKIPPED:
                stats["skips"] += 1
            elif action == SyncAction.UPLOAD:
                stats["uploads"] += 1
            elif action == SyncAction.DOWNLOAD:
                stats["downloads"] += 1
            elif action == SyncAction.DELETE:
                stats["deletes"] += 1

        return stats

    def _display_push_summary(self, stats: dict) -> None:
        """Display push statistics."""
        if self.output.quiet:
            return

        self.output.print("")
        if stats["dry_run"]:
            self.output.info(
                f"Would upload {stats['uploads']} file(s) and delete "
                f"{stats['deletes']} entry(s); {stats['exists']} already up to date"
            )
        else:
            self.output.info(
                f"Uploaded {stats['uploads']} file(s), deleted {stats['deletes']} "
                f"entry(s); {stats['exists']} already up to date"
            )
        if stats["errors"]:
            self.output.warning(f"{stats['errors']} file(s) failed")
        else:
            self.output.success("Push complete")

