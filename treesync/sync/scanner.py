"""Tree scanning for sync operations."""

import logging
import time
from pathlib import PurePath, PurePosixPath
from typing import Optional

from ..exceptions import TreeAccessError
from ..utils import PATH_SEPARATOR
from .cancel import CancellationToken
from .contexts import DIRECTORY, FILE, ExecutionContext
from .models import DirectoryEntry, FileEntry, TreeSnapshot
from .reporter import DESTINATION, SOURCE, SyncReporter

logger = logging.getLogger(__name__)


def normalize_relative_path(path: str) -> str:
    """Normalize an already-relative, '/'-separated path.

    Leading and trailing separators, repeated separators, and "."
    segments are dropped. Backslashes are left alone because they are
    valid file name characters on POSIX hosts.

    Args:
        path: Relative path

    Returns:
        Canonical relative path ("" for the root itself)

    Raises:
        ValueError: If the path climbs out of its root with ".."

    Examples:
        >>> normalize_relative_path("./docs//notes/")
        'docs/notes'
        >>> normalize_relative_path("/")
        ''
    """
    parts = [part for part in path.split(PATH_SEPARATOR) if part not in ("", ".")]
    if ".." in parts:
        raise ValueError(f"Relative path escapes its root: {path}")
    return PATH_SEPARATOR.join(parts)


def relative_path(
    path: str,
    root: str,
    flavour: type[PurePath] = PurePosixPath,
) -> str:
    """Derive the canonical relative path of ``path`` below ``root``.

    Both paths are interpreted with the given path flavour, so drive
    roots ("C:\\"), UNC roots ("\\\\server\\share\\") and trailing
    separators are handled by the flavour's own parsing. The result
    always uses "/" so local and remote snapshots compare exactly.

    Args:
        path: Path as reported while enumerating root
        root: The scanned root
        flavour: PurePosixPath or PureWindowsPath

    Returns:
        Relative path without leading or trailing separators

    Raises:
        TreeAccessError: If path is not below root

    Examples:
        >>> relative_path("/srv/data/a/b.txt", "/srv/data/")
        'a/b.txt'
        >>> from pathlib import PureWindowsPath
        >>> relative_path("C:\\\\docs\\\\x.txt", "C:\\\\", PureWindowsPath)
        'docs/x.txt'
    """
    try:
        relative = flavour(path).relative_to(flavour(root))
        return normalize_relative_path(relative.as_posix())
    except ValueError as e:
        raise TreeAccessError(root, f"Path is outside the root: {path}") from e


class TreeScanner:
    """Builds structural snapshots of trees through execution contexts.

    Examples:
        >>> scanner = TreeScanner()
        >>> snapshot = scanner.scan("/home/user/docs", LocalContext())  # doctest: +SKIP
        >>> sorted(snapshot.files)  # doctest: +SKIP
        ['notes.txt', 'sub/report.pdf']
    """

    def __init__(self, reporter: Optional[SyncReporter] = None):
        """Initialize tree scanner.

        Args:
            reporter: Receives a scan_complete notification per scan
        """
        self.reporter = reporter or SyncReporter()

    def scan(
        self, root: str, context: ExecutionContext, side: str = SOURCE
    ) -> TreeSnapshot:
        """Scan one tree.

        Args:
            root: Root directory of the tree
            context: Context through which the tree is reached
            side: SOURCE or DESTINATION, for reporting

        Returns:
            Snapshot of every directory and regular file below root;
            symlinks and special files are listed in other_entries

        Raises:
            TreeAccessError: If root is missing, not a directory, or
                enumeration fails
        """
        start = time.time()
        self.reporter.scan_started(side, context.describe(root))
        context.ensure_directory_root(root)

        snapshot = TreeSnapshot()
        for raw in context.iter_entries(root):
            rel = relative_path(raw.path, root, context.path_flavour)
            if not rel:
                continue
            try:
                if raw.kind == DIRECTORY:
                    snapshot.add_directory(DirectoryEntry(rel))
                elif raw.kind == FILE:
                    snapshot.add_file(
                        FileEntry(
                            relative_path=rel,
                            last_modified_utc=raw.modified,
                            size_bytes=raw.size,
                        )
                    )
                else:
                    snapshot.add_other(rel)
            except ValueError as e:
                raise TreeAccessError(root, str(e), context.host) from e

        elapsed = time.time() - start
        logger.debug(
            "Scanned %s in %.2fs: %d director(ies), %d file(s)",
            context.describe(root),
            elapsed,
            len(snapshot.directories),
            len(snapshot.files),
        )
        self.reporter.scan_complete(side, context.describe(root), snapshot)
        return snapshot

    def scan_pair(
        self,
        source_root: str,
        destination_root: str,
        source_context: ExecutionContext,
        destination_context: ExecutionContext,
        cancel_token: Optional[CancellationToken] = None,
    ) -> tuple[TreeSnapshot, TreeSnapshot]:
        """Scan source then destination.

        The cancellation token is checked before each scan.

        Returns:
            Tuple of (source snapshot, destination snapshot)
        """
        token = cancel_token or CancellationToken()
        token.raise_if_cancelled()
        source = self.scan(source_root, source_context, SOURCE)
        token.raise_if_cancelled()
        destination = self.scan(destination_root, destination_context, DESTINATION)
        return source, destination
