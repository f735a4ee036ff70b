"""Plan execution across execution contexts."""

import logging
import shutil
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, TypeVar

from ..exceptions import TransferError, TreeSyncError
from ..utils import DEFAULT_COPY_BUFFER_SIZE
from .cancel import CancellationToken
from .contexts import ExecutionContext
from .models import FileEntry, SyncPlan
from .reporter import OperationKind, SyncReporter

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (relative path, payload handed to the group's action)
WorkItem = tuple[str, T]

STAT_KEYS = {
    OperationKind.DELETE_FILE: "files_deleted",
    OperationKind.DELETE_DIRECTORY: "directories_deleted",
    OperationKind.CREATE_DIRECTORY: "directories_created",
    OperationKind.COPY_FILE: "files_copied",
    OperationKind.OVERWRITE_FILE: "files_overwritten",
}


def create_empty_stats() -> dict[str, int]:
    """Create a statistics dictionary with zero counts."""
    return {key: 0 for key in STAT_KEYS.values()}


class PlanExecutor:
    """Applies a SyncPlan to the destination tree.

    Groups run strictly in this order, each one finishing before the
    next starts:

    1. delete files
    2. delete directories, deepest first
    3. create directories, parents first
    4. copy new files
    5. overwrite changed files

    The first failing operation aborts the run. Nothing already applied
    is rolled back.
    """

    def __init__(
        self,
        reporter: Optional[SyncReporter] = None,
        max_workers: int = 1,
        buffer_size: int = DEFAULT_COPY_BUFFER_SIZE,
    ):
        """Initialize plan executor.

        Args:
            reporter: Receives group_started and operation_applied notifications
            max_workers: Parallel workers within a group (only used when both
                contexts support concurrency)
            buffer_size: Buffer size for streaming file content
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.reporter = reporter or SyncReporter()
        self.max_workers = max_workers
        self.buffer_size = buffer_size

    def execute(
        self,
        plan: SyncPlan,
        source_root: str,
        destination_root: str,
        source_context: ExecutionContext,
        destination_context: ExecutionContext,
        cancel_token: Optional[CancellationToken] = None,
    ) -> dict[str, int]:
        """Execute a plan.

        Args:
            plan: Plan computed by the comparator
            source_root: Root of the source tree
            destination_root: Root of the destination tree
            source_context: Context the source was scanned through
            destination_context: Context the destination was scanned through
            cancel_token: Checked before each operation

        Returns:
            Dictionary with counts of applied operations

        Raises:
            TransferError: If an operation fails
            SyncCancelledError: If the token is cancelled; operations
                already applied are kept
        """
        token = cancel_token or CancellationToken()
        stats = create_empty_stats()
        parallel = (
            self.max_workers > 1
            and source_context.supports_concurrency
            and destination_context.supports_concurrency
        )
        host = destination_context.host or source_context.host
        errors = source_context.transport_errors + destination_context.transport_errors

        def destination_path(relative_path: str) -> str:
            return destination_context.join(destination_root, relative_path)

        def transfer(entry: FileEntry) -> None:
            self._transfer(
                entry,
                source_context.join(source_root, entry.relative_path),
                destination_path(entry.relative_path),
                source_context,
                destination_context,
            )

        def by_path(paths: list[str]) -> list[WorkItem[str]]:
            return [(path, path) for path in paths]

        def by_entry(entries: dict[str, FileEntry]) -> list[WorkItem[FileEntry]]:
            return [(path, entries[path]) for path in sorted(entries)]

        groups: list[tuple[OperationKind, list[WorkItem], Callable]] = [
            (
                OperationKind.DELETE_FILE,
                by_path(sorted(plan.files_to_delete)),
                lambda path: destination_context.remove_file(destination_path(path)),
            ),
            (
                OperationKind.DELETE_DIRECTORY,
                by_path(plan.ordered_directories_to_delete()),
                lambda path: destination_context.remove_directory(
                    destination_path(path)
                ),
            ),
            (
                OperationKind.CREATE_DIRECTORY,
                by_path(plan.ordered_directories_to_create()),
                lambda path: destination_context.make_directory(
                    destination_path(path)
                ),
            ),
            (
                OperationKind.COPY_FILE,
                by_entry(plan.files_to_copy),
                transfer,
            ),
            (
                OperationKind.OVERWRITE_FILE,
                by_entry(plan.files_to_overwrite),
                transfer,
            ),
        ]

        start = time.time()
        for kind, items, action in groups:
            if not items:
                continue
            token.raise_if_cancelled()
            self.reporter.group_started(kind, len(items))
            # Directory groups stay sequential: their order is part of correctness
            group_parallel = parallel and kind in (
                OperationKind.DELETE_FILE,
                OperationKind.COPY_FILE,
                OperationKind.OVERWRITE_FILE,
            )
            stats[STAT_KEYS[kind]] = self._run_group(
                kind, items, action, errors, host, group_parallel, token
            )

        logger.debug(
            "Executed %d operation(s) in %.2fs",
            sum(stats.values()),
            time.time() - start,
        )
        return stats

    def _run_group(
        self,
        kind: OperationKind,
        items: list[WorkItem[T]],
        action: Callable[[T], None],
        errors: tuple[type[BaseException], ...],
        host: Optional[str],
        parallel: bool,
        token: CancellationToken,
    ) -> int:
        """Run one operation group, stopping at the first failure."""
        if not parallel or len(items) < 2:
            for relative_path, payload in items:
                self._apply(
                    kind, relative_path, payload, action, errors, host, token
                )
            return len(items)

        logger.debug(
            "Running %d %s operation(s) with %d workers",
            len(items),
            kind.value,
            self.max_workers,
        )
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(
                    self._apply,
                    kind,
                    relative_path,
                    payload,
                    action,
                    errors,
                    host,
                    token,
                )
                for relative_path, payload in items
            ]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return len(items)

    def _apply(
        self,
        kind: OperationKind,
        relative_path: str,
        payload: T,
        action: Callable[[T], None],
        errors: tuple[type[BaseException], ...],
        host: Optional[str],
        token: CancellationToken,
    ) -> None:
        """Apply one operation, wrapping transport failures."""
        token.raise_if_cancelled()
        try:
            action(payload)
        except TreeSyncError:
            raise
        except errors as e:
            raise TransferError(kind.label, relative_path, str(e), host) from e
        logger.debug("%s: %s", kind.label, relative_path)
        self.reporter.operation_applied(kind, relative_path)

    def _transfer(
        self,
        entry: FileEntry,
        source_path: str,
        destination_path: str,
        source_context: ExecutionContext,
        destination_context: ExecutionContext,
    ) -> None:
        """Stream one file and stamp it with the source modification time.

        The destination is opened for truncating write, so an existing
        file is replaced in place.
        """
        with source_context.open_read(source_path) as reader:
            with destination_context.open_write(destination_path) as writer:
                shutil.copyfileobj(reader, writer, self.buffer_size)
        destination_context.set_modified_time(destination_path, entry.last_modified_utc)
