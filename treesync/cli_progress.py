"""CLI progress display for sync operations.

This module provides a Rich-based reporter that renders the sync
engine's reporter hooks: scan results, the plan summary, and a
progress bar per operation group.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .output import OutputFormatter
from .sync.models import SyncPlan, TreeSnapshot
from .sync.reporter import OperationKind, SyncReporter


class ConsoleReporter(SyncReporter):
    """Reporter that prints to the console through an OutputFormatter.

    Use as a context manager so the progress display is started and
    stopped around the run.
    """

    def __init__(
        self,
        out: OutputFormatter,
        show_progress: bool = True,
        list_paths: bool = False,
    ):
        """Initialize the console reporter.

        Args:
            out: Output formatter
            show_progress: Show a progress bar per operation group
            list_paths: Print every planned path, not only counts
        """
        self.out = out
        self.show_progress = show_progress and not (out.quiet or out.json_output)
        self.list_paths = list_paths
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def scan_started(self, side: str, location: str) -> None:
        self.out.info(f"Scanning {side}: {location}")

    def scan_complete(self, side: str, location: str, snapshot: TreeSnapshot) -> None:
        size = self.out.format_size(snapshot.total_size)
        self.out.info(
            f"  Found {len(snapshot.files)} file(s) ({size}) "
            f"in {len(snapshot.directories)} director(ies)"
        )

    def plan_computed(self, plan: SyncPlan) -> None:
        out = self.out
        out.print("")
        if plan.is_empty:
            out.success("No changes needed - everything is in sync!")
            return

        out.info("Sync plan:")
        if plan.files_to_delete:
            out.info(f"  ✗ Delete files: {len(plan.files_to_delete)}")
        if plan.directories_to_delete:
            out.info(f"  ✗ Delete directories: {len(plan.directories_to_delete)}")
        if plan.directories_to_create:
            out.info(f"  + Create directories: {len(plan.directories_to_create)}")
        if plan.files_to_copy:
            out.info(f"  → Copy files: {len(plan.files_to_copy)}")
        if plan.files_to_overwrite:
            out.info(f"  ↻ Overwrite files: {len(plan.files_to_overwrite)}")
        out.info(f"  Transfer size: {out.format_size(plan.transfer_bytes)}")

        if self.list_paths:
            out.print("")
            for path in sorted(plan.files_to_delete):
                out.info(f"  delete file  {path}")
            for path in plan.ordered_directories_to_delete():
                out.info(f"  delete dir   {path}/")
            for path in plan.ordered_directories_to_create():
                out.info(f"  create dir   {path}/")
            for path in sorted(plan.files_to_copy):
                out.info(f"  copy         {path}")
            for path in sorted(plan.files_to_overwrite):
                out.info(f"  overwrite    {path}")
        out.print("")

    def group_started(self, kind: OperationKind, count: int) -> None:
        if self._progress is None:
            return
        if self._task is not None:
            self._progress.update(self._task, visible=False)
        self._task = self._progress.add_task(kind.label, total=count)

    def operation_applied(self, kind: OperationKind, relative_path: str) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, advance=1)

    def __enter__(self) -> "ConsoleReporter":
        """Enter context manager - start progress display."""
        if self.show_progress:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self.out.console,
                transient=True,
            )
            self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None


def display_summary(out: OutputFormatter, stats: dict) -> None:
    """Display the summary of a finished sync.

    Args:
        out: Output formatter
        stats: Statistics returned by SyncEngine.sync_pair
    """
    if stats["dry_run"]:
        out.success("Dry run complete!")
        return

    out.success("Sync complete!")
    lines = [
        ("Deleted files", stats["files_deleted"]),
        ("Deleted directories", stats["directories_deleted"]),
        ("Created directories", stats["directories_created"]),
        ("Copied files", stats["files_copied"]),
        ("Overwritten files", stats["files_overwritten"]),
    ]
    total = sum(count for _, count in lines)
    if total == 0:
        return
    out.info(f"Total actions: {total}")
    for label, count in lines:
        if count > 0:
            out.info(f"  {label}: {count}")
