"""CLI interface for S3 workspace sync."""

import logging
from typing import Any, Callable, Optional

import click

from .cli_progress import SyncProgressDisplay
from .config import config
from .exceptions import S3WorkspaceError
from .models import SyncResult
from .output import OutputFormatter
from .sync import SyncEngine, SyncOptions

logger = logging.getLogger(__name__)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output results in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="s3-workspace-sync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """S3 Workspace Sync - keep a local directory in sync with an S3 prefix."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["quiet"] = quiet

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("s3workspace").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def sync_options(func: Callable) -> Callable:
    """Options shared by pull, push and sync."""
    decorators = [
        click.option(
            "--bucket",
            "-b",
            help="Bucket name (default: S3_WORKSPACE_BUCKET or USER_STORAGE_BUCKET_NAME)",
        ),
        click.option(
            "--prefix", "-p", required=True, help="Key prefix of the workspace"
        ),
        click.option(
            "--dir",
            "-d",
            "directory",
            type=click.Path(file_okay=False),
            help="Local workspace directory (default: WORKSPACE_DIRECTORY or /tmp/ws)",
        ),
        click.option(
            "--ignore",
            "-i",
            multiple=True,
            help="Extra gitignore-style pattern (can be used multiple times)",
        ),
        click.option(
            "--download-concurrency",
            type=click.IntRange(min=1),
            help="Maximum parallel downloads (default: 50)",
        ),
        click.option(
            "--upload-concurrency",
            type=click.IntRange(min=1),
            help="Maximum parallel uploads (default: 10)",
        ),
        click.option("--no-progress", is_flag=True, help="Disable progress bars"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _build_engine(
    bucket: Optional[str],
    prefix: str,
    directory: Optional[str],
    ignore: tuple[str, ...],
    download_concurrency: Optional[int],
    upload_concurrency: Optional[int],
) -> SyncEngine:
    return SyncEngine(
        SyncOptions(
            bucket=bucket or config.bucket or "",
            prefix=prefix,
            workspace_dir=directory or config.workspace_directory,
            region=config.region,
            endpoint_url=config.endpoint_url,
            download_concurrency=download_concurrency or config.download_concurrency,
            upload_concurrency=upload_concurrency or config.upload_concurrency,
            ignore_patterns=list(ignore),
        )
    )


def _run_with_progress(
    operation: Callable[..., SyncResult], show_progress: bool
) -> SyncResult:
    if not show_progress:
        return operation()
    with SyncProgressDisplay() as display:
        return operation(progress_callback=display.handle_progress)


def _print_result(out: OutputFormatter, title: str, result: SyncResult) -> None:
    rows = [("Status", "✓ Success" if result.success else "✗ Completed with errors")]
    if result.downloaded_files:
        rows.append(("Downloaded", str(result.downloaded_files)))
    if result.uploaded_files:
        rows.append(("Uploaded", str(result.uploaded_files)))
    if result.deleted_files:
        rows.append(("Deleted locally", str(result.deleted_files)))
    rows.append(("Duration", f"{result.duration} ms"))
    out.print_summary(title, rows)

    for error in result.errors:
        out.error(error)


def _execute(
    ctx: Any,
    operations: list[str],
    no_progress: bool,
    **engine_kwargs: Any,
) -> None:
    out: OutputFormatter = ctx.obj["out"]
    show_progress = not no_progress and not ctx.obj["quiet"] and not out.json_output

    try:
        with _build_engine(**engine_kwargs) as engine:
            out.info(f"Workspace: {engine.get_workspace_path()}")
            out.info(f"Remote: s3://{engine.bucket}/{engine.prefix}")

            results: dict[str, SyncResult] = {}
            for name in operations:
                result = _run_with_progress(getattr(engine, name), show_progress)
                results[name] = result
                if not out.json_output:
                    _print_result(out, f"{name.capitalize()} Complete", result)
    except KeyboardInterrupt:
        out.warning("Sync cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except S3WorkspaceError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({name: result.to_dict() for name, result in results.items()})

    if not all(result.success for result in results.values()):
        ctx.exit(1)


@main.command()
@sync_options
@click.pass_context
def pull(ctx: Any, no_progress: bool, **kwargs: Any) -> None:
    """Download the remote prefix into the local directory.

    Local files that no longer exist remotely are deleted, except those
    matching the ignore rules.

    Examples:
        s3-workspace-sync pull -b my-bucket -p users/42/ -d ./ws
    """
    _execute(ctx, ["pull"], no_progress, **kwargs)


@main.command()
@sync_options
@click.pass_context
def push(ctx: Any, no_progress: bool, **kwargs: Any) -> None:
    """Upload new and changed local files to the remote prefix.

    Without a prior pull in the same run every local file counts as new.

    Examples:
        s3-workspace-sync push -b my-bucket -p users/42/ -d ./ws
    """
    _execute(ctx, ["push"], no_progress, **kwargs)


@main.command()
@sync_options
@click.pass_context
def sync(ctx: Any, no_progress: bool, **kwargs: Any) -> None:
    """Pull the remote prefix, then push local changes.

    Examples:
        s3-workspace-sync sync -p users/42/ -i "*.csv" -i "!keep.csv"
    """
    _execute(ctx, ["pull", "push"], no_progress, **kwargs)


if __name__ == "__main__":
    main()
