"""CLI interface for treesync."""

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Callable, Optional

import click

from .cli_progress import ConsoleReporter, display_summary
from .config import config
from .exceptions import SyncCancelledError, TreeSyncError
from .output import OutputFormatter
from .remote import is_reachable
from .sync import (
    CancellationToken,
    SyncEngine,
    SyncMode,
    SyncPair,
    load_sync_pairs_from_json,
)

logger = logging.getLogger(__name__)

MODE_HELP = (
    "Transport mode: local (both trees local), push (source local, "
    "destination remote), pull (source remote, destination local)"
)


def _pair_options(func: Callable) -> Callable:
    """Attach the options that describe a sync pair."""
    options = [
        click.argument("source", required=False),
        click.argument("destination", required=False),
        click.option(
            "--mode", "-m", default="local", show_default=True, help=MODE_HELP
        ),
        click.option("--host", "-H", help="Remote host for push/pull modes"),
        click.option(
            "--port", "-p", type=int, default=None, help="Remote SSH port (default: 22)"
        ),
        click.option("--user", "-u", help="Remote user name"),
        click.option(
            "--key-file",
            "-i",
            type=click.Path(dir_okay=False),
            help="Private key file for the remote host",
        ),
        click.option(
            "--ask-password",
            is_flag=True,
            help="Prompt for the remote password",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@contextmanager
def _interrupt_cancels(
    token: CancellationToken, out: OutputFormatter
) -> Iterator[None]:
    """Turn the first Ctrl+C into a cancellation of token.

    The run then stops after the operation in progress. A second Ctrl+C
    raises KeyboardInterrupt right away. Outside the main thread no
    handler can be installed and Ctrl+C keeps its default behaviour.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT) or signal.SIG_DFL

    def on_interrupt(signum: int, frame: Any) -> None:
        if token.is_cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        out.warning("\nCancelling after the current operation (Ctrl+C to abort)")
        token.cancel()

    signal.signal(signal.SIGINT, on_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _build_pair(
    source: Optional[str],
    destination: Optional[str],
    mode: str,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    key_file: Optional[str],
    ask_password: bool,
) -> SyncPair:
    """Build a sync pair from command-line values."""
    if not source or not destination:
        raise click.UsageError("SOURCE and DESTINATION are required")
    try:
        sync_mode = SyncMode.from_string(mode)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--mode") from e

    password = None
    if ask_password:
        password = click.prompt("Password", hide_input=True, err=True)

    pair = SyncPair(
        source=source,
        destination=destination,
        sync_mode=sync_mode,
        host=host,
        port=port if port is not None else config.port,
        username=user,
        password=password,
        key_filename=key_file,
    )
    pair.validate()
    return pair


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="treesync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """treesync - Make a destination directory tree match a source tree."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("treesync").setLevel(logging.DEBUG)
        # paramiko is chatty at DEBUG
        logging.getLogger("paramiko").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@_pair_options
@click.option(
    "--pairs-file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with sync pairs to run in order",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option(
    "--workers",
    type=int,
    default=1,
    help="Parallel workers within an operation group, local trees only (default: 1)",
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def sync(
    ctx: Any,
    source: Optional[str],
    destination: Optional[str],
    mode: str,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    key_file: Optional[str],
    ask_password: bool,
    pairs_file: Optional[str],
    dry_run: bool,
    workers: int,
    no_progress: bool,
) -> None:
    """Sync DESTINATION so it matches SOURCE.

    Extra files and directories in DESTINATION are deleted, missing
    directories are created, and new or changed files are copied.
    Files are compared by size and modification time.

    Examples:
        treesync sync ./photos /mnt/backup/photos
        treesync sync ./site /var/www/site --mode push --host web1 -u deploy
        treesync sync /srv/logs ./logs --mode pull --host web1 --dry-run
        treesync sync --pairs-file pairs.json
    """
    out: OutputFormatter = ctx.obj["out"]

    if workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)

    try:
        if pairs_file:
            if source or destination:
                raise click.UsageError(
                    "Cannot combine SOURCE/DESTINATION with --pairs-file"
                )
            pairs = load_sync_pairs_from_json(pairs_file)
        else:
            pairs = [
                _build_pair(
                    source, destination, mode, host, port, user, key_file, ask_password
                )
            ]

        token = CancellationToken()
        results = []
        for pair in pairs:
            if not out.quiet:
                out.info(f"Sync mode: {pair.mode.value}")
                out.info(f"Syncing: {pair.display_name}")
                if dry_run:
                    out.info("Dry run: No changes will be made")
                out.print("")

            with ConsoleReporter(out, show_progress=not no_progress) as reporter:
                engine = SyncEngine(reporter=reporter, max_workers=workers)
                with _interrupt_cancels(token, out):
                    stats = engine.sync_pair(
                        pair, dry_run=dry_run, cancel_token=token
                    )
            results.append(stats)

            if not out.quiet:
                display_summary(out, stats)
                out.print("")

        if out.json_output:
            out.output_json(results if pairs_file else results[0])

    except (KeyboardInterrupt, SyncCancelledError):
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
    except TreeSyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)


@main.command()
@_pair_options
@click.pass_context
def plan(
    ctx: Any,
    source: Optional[str],
    destination: Optional[str],
    mode: str,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    key_file: Optional[str],
    ask_password: bool,
) -> None:
    """Show every operation needed to make DESTINATION match SOURCE.

    Nothing is changed.

    Examples:
        treesync plan ./photos /mnt/backup/photos
        treesync --json plan ./site /var/www/site --mode push --host web1
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        pair = _build_pair(
            source, destination, mode, host, port, user, key_file, ask_password
        )
        reporter = ConsoleReporter(out, show_progress=False, list_paths=True)
        token = CancellationToken()
        with _interrupt_cancels(token, out):
            sync_plan = SyncEngine(reporter=reporter).plan_pair(
                pair, cancel_token=token
            )
    except (KeyboardInterrupt, SyncCancelledError):
        out.warning("\nCancelled by user")
        ctx.exit(130)
        return
    except TreeSyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {
                "files_to_delete": sorted(sync_plan.files_to_delete),
                "directories_to_delete": sync_plan.ordered_directories_to_delete(),
                "directories_to_create": sync_plan.ordered_directories_to_create(),
                "files_to_copy": sorted(sync_plan.files_to_copy),
                "files_to_overwrite": sorted(sync_plan.files_to_overwrite),
            }
        )


@main.command()
@click.argument("host")
@click.option("--port", "-p", type=int, default=None, help="SSH port (default: 22)")
@click.option(
    "--timeout", "-t", type=float, default=5.0, help="Seconds to wait (default: 5)"
)
@click.pass_context
def probe(ctx: Any, host: str, port: Optional[int], timeout: float) -> None:
    """Check whether HOST accepts connections on its SSH port."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        port = port if port is not None else config.port
    except TreeSyncError as e:
        out.error(f"Error: {e}")
        ctx.exit(1)
        return

    reachable = is_reachable(host, port, timeout)

    if out.json_output:
        out.output_json({"host": host, "port": port, "reachable": reachable})
    elif reachable:
        out.success(f"{host}:{port} is reachable")
    else:
        out.error(f"{host}:{port} is not reachable")

    if not reachable:
        ctx.exit(1)


if __name__ == "__main__":
    main()
