"""Execution of planned sync actions.

The executor runs one decision at a time and turns every per-file failure
into a :class:`TransferOutcome`, so a failing file never stops the batch.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from ..exceptions import NeocitiesError, NeocitiesFileExistsError
from .operations import SyncOperations
from .planner import SyncAction, SyncDecision

logger = logging.getLogger(__name__)


class TransferStatus(str, Enum):
    """Classification of an executed action."""

    SUCCESS = "success"
    EXISTS = "exists"
    """Identical content already on the site; nothing transferred"""
    SKIPPED = "skipped"
    """Local copy already current; nothing transferred"""
    ERROR = "error"


@dataclass(frozen=True)
class TransferOutcome:
    """Result of executing one decision."""

    status: TransferStatus
    message: str = ""
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != TransferStatus.ERROR

    @classmethod
    def success(cls, message: str = "") -> "TransferOutcome":
        return cls(TransferStatus.SUCCESS, message)

    @classmethod
    def exists(cls, message: str = "") -> "TransferOutcome":
        return cls(TransferStatus.EXISTS, message, error_type="file_exists")

    @classmethod
    def skipped(cls, message: str = "") -> "TransferOutcome":
        return cls(TransferStatus.SKIPPED, message)

    @classmethod
    def error(cls, message: str, error_type: Optional[str] = None) -> "TransferOutcome":
        return cls(TransferStatus.ERROR, message, error_type=error_type)


@dataclass(frozen=True)
class TransferResult:
    """A decision paired with its outcome."""

    decision: SyncDecision
    outcome: TransferOutcome

    def to_dict(self) -> dict:
        return {
            "action": self.decision.action.value,
            "path": self.decision.relative_path,
            "status": self.outcome.status.value,
            "message": self.outcome.message,
            "error_type": self.outcome.error_type,
        }


ResultCallback = Callable[[TransferResult], None]


class TransferExecutor:
    """Executes sync decisions against the site and the local filesystem."""

    def __init__(self, operations: SyncOperations, dry_run: bool = False):
        """Initialize executor.

        Args:
            operations: Operations used to talk to the site
            dry_run: Replace uploads and deletes with successful no-ops
        """
        self.operations = operations
        self.dry_run = dry_run

    def execute(self, decision: SyncDecision) -> TransferOutcome:
        """Execute a single decision.

        Never raises for per-file failures; they come back as ERROR outcomes.

        Args:
            decision: Decision to execute

        Returns:
            TransferOutcome
        """
        try:
            return self._execute(decision)
        except NeocitiesFileExistsError as e:
            return TransferOutcome.exists(e.message)
        except NeocitiesError as e:
            logger.debug(f"{decision.action.value} failed for {decision.relative_path}")
            return TransferOutcome.error(
                str(getattr(e, "message", e)), getattr(e, "error_type", None)
            )
        except httpx.HTTPError as e:
            return TransferOutcome.error(f"Network error: {e}", "network")
        except OSError as e:
            return TransferOutcome.error(f"Local file error: {e}", "local_io")
        except Exception as e:
            logger.exception(f"Unexpected error for {decision.relative_path}")
            return TransferOutcome.error(f"Unexpected error: {e}", "unexpected")

    def _execute(self, decision: SyncDecision) -> TransferOutcome:
        action = decision.action

        if action == SyncAction.SKIP_EXISTS:
            return TransferOutcome.exists(decision.reason)
        if action == SyncAction.SKIP_CURRENT:
            return TransferOutcome.skipped(decision.reason)

        if action == SyncAction.UPLOAD:
            if decision.local_path is None:
                return TransferOutcome.error("No local file for upload", "local_io")
            if self.dry_run:
                return TransferOutcome.success("dry run")
            self.operations.upload_file(decision.local_path, decision.relative_path)
            return TransferOutcome.success()

        if action == SyncAction.DELETE:
            if self.dry_run:
                return TransferOutcome.success("dry run")
            self.operations.delete_remote(decision.relative_path)
            return TransferOutcome.success()

        if action == SyncAction.DOWNLOAD:
            if decision.local_path is None:
                return TransferOutcome.error("No local path for download", "local_io")
            self.operations.download_file(decision.relative_path, decision.local_path)
            return TransferOutcome.success()

        return TransferOutcome.error(f"Unknown action: {action}")

    def execute_all(
        self,
        decisions: list[SyncDecision],
        max_workers: int = 1,
        on_result: Optional[ResultCallback] = None,
    ) -> list[TransferResult]:
        """Execute a plan.

        With one worker decisions run strictly in plan order. With more
        workers every delete finishes before any other action starts, then
        the remaining actions run in parallel.

        Args:
            decisions: Ordered plan
            max_workers: Number of parallel workers
            on_result: Called with each result as soon as it is available

        Returns:
            Results in plan order
        """
        if max_workers <= 1 or len(decisions) <= 1:
            results = []
            for decision in decisions:
                result = TransferResult(decision, self.execute(decision))
                if on_result:
                    on_result(result)
                results.append(result)
            return results

        slots: list[Optional[TransferResult]] = [None] * len(decisions)
        deletes = [
            i for i, d in enumerate(decisions) if d.action == SyncAction.DELETE
        ]
        others = [i for i, d in enumerate(decisions) if d.action != SyncAction.DELETE]

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            # Barrier: a delete may free a path an upload writes to
            for batch in (deletes, others):
                futures = {
                    pool.submit(self.execute, decisions[i]): i for i in batch
                }
                for future in as_completed(futures):
                    index = futures[future]
                    result = TransferResult(decisions[index], future.result())
                    slots[index] = result
                    if on_result:
                        on_result(result)

        return [result for result in slots if result is not None]
