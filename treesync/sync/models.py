"""Snapshot and plan data structures for sync runs."""

from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime

from ..utils import normalize_utc, truncate_to_second


@dataclass(frozen=True)
class DirectoryEntry:
    """A directory below a scanned root."""

    relative_path: str
    """Path relative to the root, '/'-separated, no leading or trailing '/'"""


@dataclass(frozen=True)
class FileEntry:
    """A file below a scanned root with its change-detection fingerprint."""

    relative_path: str
    """Path relative to the root, '/'-separated, no leading or trailing '/'"""

    last_modified_utc: datetime
    """Last write time in UTC, microsecond precision"""

    size_bytes: int
    """File size in bytes"""

    def __post_init__(self) -> None:
        # Frozen dataclass, so bypass __setattr__ for the normalized value
        object.__setattr__(
            self, "last_modified_utc", normalize_utc(self.last_modified_utc)
        )

    def is_equivalent(self, other: "FileEntry", whole_seconds: bool = False) -> bool:
        """Check whether two entries carry the same fingerprint.

        Paths are not compared; callers match entries by path first.

        Args:
            other: Entry to compare with
            whole_seconds: Ignore sub-second differences in the
                modification time
        """
        if self.size_bytes != other.size_bytes:
            return False
        if whole_seconds:
            return truncate_to_second(self.last_modified_utc) == truncate_to_second(
                other.last_modified_utc
            )
        return self.last_modified_utc == other.last_modified_utc


@dataclass
class TreeSnapshot:
    """Structural snapshot of one tree, keyed by relative path.

    The root itself is never part of the snapshot. Symlinks and special
    files are not synced, but their paths are kept in ``other_entries``
    so a destination can be cleared of them.
    """

    directories: dict[str, DirectoryEntry] = field(default_factory=dict)
    files: dict[str, FileEntry] = field(default_factory=dict)
    other_entries: set[str] = field(default_factory=set)

    def add_directory(self, entry: DirectoryEntry) -> None:
        """Add a directory entry.

        Raises:
            ValueError: If the path is empty or already present
        """
        self._check_new_path(entry.relative_path, self.directories)
        self.directories[entry.relative_path] = entry

    def add_file(self, entry: FileEntry) -> None:
        """Add a file entry.

        Raises:
            ValueError: If the path is empty or already present
        """
        self._check_new_path(entry.relative_path, self.files)
        self.files[entry.relative_path] = entry

    def add_other(self, relative_path: str) -> None:
        """Record a symlink or special file.

        Raises:
            ValueError: If the path is empty or already present
        """
        self._check_new_path(relative_path, self.other_entries)
        self.other_entries.add(relative_path)

    @staticmethod
    def _check_new_path(relative_path: str, existing: Collection[str]) -> None:
        if not relative_path:
            raise ValueError("The snapshot root cannot be added as an entry")
        if relative_path in existing:
            raise ValueError(f"Duplicate path in snapshot: {relative_path}")

    @classmethod
    def from_entries(
        cls,
        directories: list[DirectoryEntry],
        files: list[FileEntry],
    ) -> "TreeSnapshot":
        """Build a snapshot from entry lists."""
        snapshot = cls()
        for directory in directories:
            snapshot.add_directory(directory)
        for file_entry in files:
            snapshot.add_file(file_entry)
        return snapshot

    @property
    def total_size(self) -> int:
        """Sum of all file sizes in bytes."""
        return sum(f.size_bytes for f in self.files.values())

    def __len__(self) -> int:
        return len(self.directories) + len(self.files)


@dataclass
class SyncPlan:
    """Operations that converge a destination tree onto a source tree.

    Delete and create groups hold relative paths. Copy and overwrite
    groups hold the source entries, whose timestamps are stamped onto
    the transferred files.
    """

    directories_to_delete: set[str] = field(default_factory=set)
    directories_to_create: set[str] = field(default_factory=set)
    files_to_delete: set[str] = field(default_factory=set)
    files_to_copy: dict[str, FileEntry] = field(default_factory=dict)
    files_to_overwrite: dict[str, FileEntry] = field(default_factory=dict)

    def ordered_directories_to_delete(self) -> list[str]:
        """Directories to delete, deepest first (descending path order)."""
        return sorted(self.directories_to_delete, reverse=True)

    def ordered_directories_to_create(self) -> list[str]:
        """Directories to create, parents first (ascending path order)."""
        return sorted(self.directories_to_create)

    @property
    def total_operations(self) -> int:
        """Number of operations across all five groups."""
        return (
            len(self.files_to_delete)
            + len(self.directories_to_delete)
            + len(self.directories_to_create)
            + len(self.files_to_copy)
            + len(self.files_to_overwrite)
        )

    @property
    def is_empty(self) -> bool:
        """True when the destination is already in sync."""
        return self.total_operations == 0

    @property
    def transfer_bytes(self) -> int:
        """Bytes that copying and overwriting will transfer."""
        return sum(f.size_bytes for f in self.files_to_copy.values()) + sum(
            f.size_bytes for f in self.files_to_overwrite.values()
        )

    def summary(self) -> dict[str, int]:
        """Operation counts per group."""
        return {
            "files_to_delete": len(self.files_to_delete),
            "directories_to_delete": len(self.directories_to_delete),
            "directories_to_create": len(self.directories_to_create),
            "files_to_copy": len(self.files_to_copy),
            "files_to_overwrite": len(self.files_to_overwrite),
        }
