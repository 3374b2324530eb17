"""CLI interface for pyneocities."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import NeocitiesClient
from .auth import require_api_key, require_sitename
from .config import config
from .exceptions import (
    IgnoreFileError,
    NeocitiesAPIError,
    NeocitiesError,
    NeocitiesFileExistsError,
    SyncValidationError,
)
from .output import OutputFormatter
from .sync import (
    CheckpointStore,
    PullOptions,
    PushOptions,
    RemoteHashOracle,
    SyncEngine,
)
from .utils import (
    calculate_sha1,
    format_local_time,
    format_size,
    join_remote_path,
)

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--api-key", "-k", envvar="NEOCITIES_API_KEY", help="Neocities API key"
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option()
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pyneocities - Push and pull a local directory to and from Neocities."""
    # Store settings in context for subcommands to access
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyneocities").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


def _get_client(ctx: Any, out: OutputFormatter) -> NeocitiesClient:
    """Create an API client with the configured or prompted API key."""
    api_key = require_api_key(ctx, out)
    return NeocitiesClient(api_key=api_key)


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@click.option(
    "--dir",
    "-d",
    "remote_dir",
    default="",
    help="Remote directory to upload into (default: site root)",
)
@click.pass_context
def upload(ctx: Any, paths: tuple[str, ...], remote_dir: str) -> None:
    """Upload individual files to your site.

    Examples:
        neocities upload img.jpg img2.jpg      # Upload to the site root
        neocities upload -d images img.jpg     # Upload into 'images'
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _get_client(ctx, out)
    oracle = RemoteHashOracle(client)
    results = []

    for raw_path in paths:
        path = Path(raw_path)

        if not path.exists():
            out.error(f"{path} does not exist locally.")
            results.append({"path": raw_path, "status": "error"})
            continue

        if path.is_dir():
            out.warning(f"{path} is a directory, skipping (see the push command)")
            results.append({"path": raw_path, "status": "skipped"})
            continue

        remote_path = join_remote_path(remote_dir, path.name)
        message = f"Uploading {path} to {remote_path}"
        try:
            if oracle.matches(remote_path, calculate_sha1(path)):
                out.file_status(message, "EXISTS", "cyan", "same content on site")
                results.append({"path": remote_path, "status": "exists"})
                continue
            client.upload(path, remote_path)
            out.file_status(message, "SUCCESS", "green")
            results.append({"path": remote_path, "status": "success"})
        except NeocitiesFileExistsError as e:
            out.file_status(message, "EXISTS", "cyan", e.message)
            results.append({"path": remote_path, "status": "exists"})
        except (NeocitiesError, OSError) as e:
            out.file_status(message, "ERROR", "red", str(e))
            results.append({"path": remote_path, "status": "error"})

    if out.json_output:
        out.output_json(results)


@main.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def delete(ctx: Any, paths: tuple[str, ...]) -> None:
    """Delete files from your site.

    Examples:
        neocities delete myfile.jpg                  # Delete myfile.jpg
        neocities delete myfile.jpg myfile2.jpg      # Delete both files
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _get_client(ctx, out)

    for path in paths:
        message = f"Deleting {path}"
        try:
            client.delete([path])
            out.file_status(message, "SUCCESS", "green")
        except NeocitiesError as e:
            out.file_status(message, "ERROR", "red", str(e))


@main.command(name="list")
@click.argument("path", required=False)
@click.option("--all", "-a", "list_all", is_flag=True, help="List all files")
@click.option("--detail", "-d", is_flag=True, help="Show size and update time")
@click.pass_context
def list_files(
    ctx: Any, path: Optional[str], list_all: bool, detail: bool
) -> None:
    """List files on your site.

    Examples:
        neocities list /              # List files in your root directory
        neocities list -a             # Recursively list all files
        neocities list -d /mydir      # Show details for /mydir
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _get_client(ctx, out)

    try:
        response = client.list(None if list_all else path)
    except NeocitiesAPIError as e:
        out.error(str(e))
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    files = response.get("files") or []

    if out.json_output:
        out.output_json(files)
        return

    if detail:
        rows = []
        styles = []
        for item in files:
            size = item.get("size")
            rows.append(
                [
                    item.get("path", ""),
                    "" if size is None else format_size(int(size)),
                    format_local_time(item.get("updated_at")),
                ]
            )
            styles.append("bold blue" if item.get("is_directory") else "bold green")
        out.print_table(["Path", "Size", "Updated"], rows, styles)
        return

    for item in files:
        style = "blue" if item.get("is_directory") else "green"
        out.console.print(
            item.get("path", ""), style=f"bold {style}", markup=False
        )


@main.command()
@click.argument("root", type=str)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be pushed without pushing"
)
@click.option(
    "--prune",
    is_flag=True,
    help="Delete files on the site that do not exist locally",
)
@click.option(
    "--no-gitignore",
    is_flag=True,
    help="Don't use .gitignore to exclude files",
)
@click.option(
    "--exclude",
    "-e",
    multiple=True,
    help="Exclude a file or directory (repeatable)",
)
@click.option(
    "--workers",
    type=int,
    default=1,
    help="Number of parallel workers for uploads (default: 1)",
)
@click.pass_context
def push(
    ctx: Any,
    root: str,
    dry_run: bool,
    prune: bool,
    no_gitignore: bool,
    exclude: tuple[str, ...],
    workers: int,
) -> None:
    """Recursively upload a local directory to your site.

    Files whose content already matches the site are not uploaded again.

    Examples:
        neocities push .                                # Push current directory
        neocities push -e node_modules -e secret.txt .  # Exclude paths
        neocities push --no-gitignore .                 # Ignore .gitignore
        neocities push --prune .                        # Delete stale files
        neocities push --dry-run --prune .              # Preview only
    """
    out: OutputFormatter = ctx.obj["out"]
    root_path = Path(root)

    # Validate before asking for credentials
    if not root_path.exists():
        out.error(f"Path {root} does not exist")
        ctx.exit(1)
    if not root_path.is_dir():
        out.error("Provided path is not a directory")
        ctx.exit(1)
    if workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)

    options = PushOptions(
        root=root_path,
        dry_run=dry_run,
        prune=prune,
        use_gitignore=not no_gitignore,
        excluded=exclude,
        max_workers=workers,
    )

    client = _get_client(ctx, out)
    engine = SyncEngine(client, out)

    try:
        stats = engine.push(options)
    except KeyboardInterrupt:
        out.warning("\nPush cancelled by user")
        ctx.exit(130)
        return  # Unreachable, but helps type checker
    except (SyncValidationError, IgnoreFileError) as e:
        out.error(str(e))
        ctx.exit(1)
        return
    except NeocitiesError as e:
        out.error(f"API error: {e}")
        ctx.exit(1)
        return
    finally:
        client.close()

    if out.json_output:
        out.output_json(stats)


@main.command()
@click.argument("root", type=str, default=".")
@click.option(
    "--quiet",
    "-q",
    "quiet_pull",
    is_flag=True,
    help="Hide per-file output and show a spinner instead",
)
@click.option(
    "--workers",
    type=int,
    default=1,
    help="Number of parallel workers for downloads (default: 1)",
)
@click.pass_context
def pull(ctx: Any, root: str, quiet_pull: bool, workers: int) -> None:
    """Download your site into a local directory.

    Files not updated on the site since the last pull into the same
    directory are skipped.

    Examples:
        neocities pull               # Pull into the current directory
        neocities pull ./mysite -q   # Pull quietly into ./mysite
    """
    out: OutputFormatter = ctx.obj["out"]
    root_path = Path(root)

    if root_path.exists() and not root_path.is_dir():
        out.error("Provided path is not a directory")
        ctx.exit(1)
    if workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)

    client = _get_client(ctx, out)
    engine = SyncEngine(client, out, checkpoints=CheckpointStore(config.state_dir))

    try:
        sitename = require_sitename(ctx, client)
        stats = engine.pull(
            PullOptions(
                root=root_path,
                sitename=sitename,
                quiet=quiet_pull,
                max_workers=workers,
            )
        )
    except KeyboardInterrupt:
        out.warning("\nPull cancelled by user")
        ctx.exit(130)
        return  # Unreachable, but helps type checker
    except SyncValidationError as e:
        out.error(str(e))
        ctx.exit(1)
        return
    except NeocitiesError as e:
        out.error(f"API error: {e}")
        ctx.exit(1)
        return
    finally:
        client.close()

    if out.json_output:
        out.output_json(stats)


@main.command()
@click.argument("sitename", required=False)
@click.pass_context
def info(ctx: Any, sitename: Optional[str]) -> None:
    """Show information and stats for a site.

    Examples:
        neocities info           # Info for your own site
        neocities info fauux     # Info for the 'fauux' site
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _get_client(ctx, out)

    try:
        response = client.info(sitename or ctx.obj.get("sitename") or config.sitename)
    except NeocitiesAPIError as e:
        out.error(str(e))
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    site_info = response.get("info") or {}
    items = []
    for key, value in site_info.items():
        if key in ("created_at", "last_updated"):
            value = format_local_time(value)
        elif isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        items.append((key, "" if value is None else str(value)))

    out.print_summary("Site info", items)


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def logout(ctx: Any, yes: bool) -> None:
    """Remove the stored API key and pull checkpoint."""
    out: OutputFormatter = ctx.obj["out"]

    if not config.get_config_path().exists():
        out.warning("Not logged in.")
        return

    if not yes and not click.confirm(
        "Remove the stored API key? You will need to log in again"
    ):
        out.warning("Logout cancelled.")
        return

    sitename = config.sitename
    if sitename:
        CheckpointStore(config.state_dir).clear(sitename)
    config.clear_credentials()
    out.success(f"Removed credentials from {config.get_config_path()}")


if __name__ == "__main__":
    main()
