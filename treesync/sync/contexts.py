"""Execution contexts: where a tree lives and how to touch it.

Scanning and executing go through the same small interface whether a
tree is on the local filesystem or behind an SSH session, so callers
never branch on the sync mode.
"""

import logging
import os
import posixpath
import shlex
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePath, PurePosixPath
from typing import BinaryIO, Iterator, Optional

import paramiko

from ..exceptions import TreeAccessError
from ..remote import RemoteSession
from ..utils import epoch_text_to_ns, ns_to_utc, utc_to_ns

logger = logging.getLogger(__name__)

DIRECTORY = "d"
FILE = "f"
OTHER = "o"


@dataclass
class RawEntry:
    """An enumerated path before it is made relative to the root."""

    kind: str
    """DIRECTORY, FILE or OTHER (symlink or special file)"""

    path: str
    """Path as reported by the context (root-prefixed)"""

    modified: datetime
    """Modification time in UTC"""

    size: int
    """Size in bytes (0 unless FILE)"""


class ExecutionContext(ABC):
    """Filesystem operations against one side of a sync run."""

    name: str = "context"
    is_remote: bool = False
    supports_concurrency: bool = False
    path_flavour: type[PurePath] = PurePosixPath
    transport_errors: tuple[type[BaseException], ...] = (OSError,)
    host: Optional[str] = None

    @abstractmethod
    def join(self, root: str, relative_path: str) -> str:
        """Join a root and a '/'-separated relative path."""

    @abstractmethod
    def ensure_directory_root(self, root: str) -> None:
        """Check that root exists and is a directory.

        Raises:
            TreeAccessError: If it does not
        """

    @abstractmethod
    def iter_entries(self, root: str) -> Iterator[RawEntry]:
        """Enumerate every entry below root without following symlinks.

        Raises:
            TreeAccessError: If enumeration fails
        """

    @abstractmethod
    def make_directory(self, path: str) -> None:
        """Create one directory (its parent must exist)."""

    @abstractmethod
    def remove_directory(self, path: str) -> None:
        """Remove one empty directory."""

    @abstractmethod
    def remove_file(self, path: str) -> None:
        """Remove one file."""

    @abstractmethod
    def open_read(self, path: str) -> BinaryIO:
        """Open a file for binary reading."""

    @abstractmethod
    def open_write(self, path: str) -> BinaryIO:
        """Open a file for binary writing, truncating it in place."""

    @abstractmethod
    def set_modified_time(self, path: str, modified: datetime) -> None:
        """Set a file's access and modification time."""

    def close(self) -> None:
        """Release resources held by this context."""

    def describe(self, path: str) -> str:
        """Human-readable location of a path."""
        return f"{self.host}:{path}" if self.host else path


class LocalContext(ExecutionContext):
    """The local filesystem."""

    name = "local"
    supports_concurrency = True
    path_flavour = type(PurePath())

    def join(self, root: str, relative_path: str) -> str:
        if not relative_path:
            return root
        return os.path.join(root, *relative_path.split("/"))

    def ensure_directory_root(self, root: str) -> None:
        path = Path(root)
        if not path.exists():
            raise TreeAccessError(root, "Directory does not exist")
        if not path.is_dir():
            raise TreeAccessError(root, "Path is not a directory")

    def iter_entries(self, root: str) -> Iterator[RawEntry]:
        def on_error(error: OSError) -> None:
            raise TreeAccessError(root, f"Cannot list directory: {error}") from error

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            for name in dirnames + filenames:
                full_path = os.path.join(dirpath, name)
                try:
                    st = os.lstat(full_path)
                except OSError as e:
                    raise TreeAccessError(
                        root, f"Cannot stat {full_path}: {e}"
                    ) from e
                modified = ns_to_utc(st.st_mtime_ns)
                if stat.S_ISDIR(st.st_mode):
                    yield RawEntry(DIRECTORY, full_path, modified, 0)
                elif stat.S_ISREG(st.st_mode):
                    yield RawEntry(FILE, full_path, modified, st.st_size)
                else:
                    logger.debug("Non-regular entry: %s", full_path)
                    yield RawEntry(OTHER, full_path, modified, 0)

    def make_directory(self, path: str) -> None:
        os.mkdir(path)

    def remove_directory(self, path: str) -> None:
        os.rmdir(path)

    def remove_file(self, path: str) -> None:
        os.remove(path)

    def open_read(self, path: str) -> BinaryIO:
        return open(path, "rb")

    def open_write(self, path: str) -> BinaryIO:
        return open(path, "wb")

    def set_modified_time(self, path: str, modified: datetime) -> None:
        timestamp_ns = utc_to_ns(modified)
        os.utime(path, ns=(timestamp_ns, timestamp_ns))


class RemoteContext(ExecutionContext):
    """A tree on a remote host, reached through an SSH session.

    Enumeration runs ``find`` on the remote host; every mutation and
    file stream goes through the session's SFTP channel. Remote paths
    are POSIX paths; relative roots resolve against the login directory.
    SFTP sets modification times in whole seconds.
    """

    name = "remote"
    is_remote = True
    supports_concurrency = False
    path_flavour = PurePosixPath
    transport_errors = (OSError, paramiko.SSHException)

    # One NUL-terminated record per entry: type, mtime, size, path
    FIND_FORMAT = r"%y\t%T@\t%s\t%p\0"

    def __init__(self, session: RemoteSession):
        self.session = session
        self.host = session.host

    def join(self, root: str, relative_path: str) -> str:
        if not relative_path:
            return root
        return posixpath.join(root, relative_path)

    def ensure_directory_root(self, root: str) -> None:
        try:
            attributes = self.session.sftp.stat(root)
        except FileNotFoundError as e:
            raise TreeAccessError(root, "Directory does not exist", self.host) from e
        except (OSError, paramiko.SSHException) as e:
            raise TreeAccessError(root, f"Cannot access root: {e}", self.host) from e
        if attributes.st_mode is None or not stat.S_ISDIR(attributes.st_mode):
            raise TreeAccessError(root, "Path is not a directory", self.host)

    def build_find_command(self, root: str) -> str:
        """Build the remote enumeration command for root."""
        return (
            f"find {shlex.quote(root)} -mindepth 1 -printf '{self.FIND_FORMAT}'"
        )

    def iter_entries(self, root: str) -> Iterator[RawEntry]:
        command = self.build_find_command(root)
        try:
            result = self.session.run(command)
        except (OSError, paramiko.SSHException) as e:
            raise TreeAccessError(
                root, f"Remote enumeration failed: {e}", self.host
            ) from e
        if not result.ok:
            raise TreeAccessError(
                root,
                f"Remote enumeration exited with status {result.exit_status}: "
                f"{result.stderr}",
                self.host,
            )
        return iter(self.parse_find_output(root, result.stdout))

    def parse_find_output(self, root: str, output: bytes) -> list[RawEntry]:
        """Parse NUL-separated ``find -printf`` records.

        Raises:
            TreeAccessError: If a record is malformed
        """
        entries: list[RawEntry] = []
        for record in output.split(b"\0"):
            if not record:
                continue
            try:
                kind, mtime, size, raw_path = record.split(b"\t", 3)
                entry = RawEntry(
                    kind=kind.decode("ascii"),
                    path=raw_path.decode("utf-8"),
                    modified=ns_to_utc(epoch_text_to_ns(mtime.decode("ascii"))),
                    size=int(size),
                )
            except (ValueError, OverflowError, UnicodeDecodeError) as e:
                raise TreeAccessError(
                    root, f"Malformed enumeration record {record!r}: {e}", self.host
                ) from e
            if entry.kind != FILE:
                entry.size = 0
            if entry.kind not in (DIRECTORY, FILE):
                entry.kind = OTHER
            entries.append(entry)
        return entries

    def make_directory(self, path: str) -> None:
        self.session.sftp.mkdir(path)

    def remove_directory(self, path: str) -> None:
        self.session.sftp.rmdir(path)

    def remove_file(self, path: str) -> None:
        self.session.sftp.remove(path)

    def open_read(self, path: str) -> BinaryIO:
        handle = self.session.sftp.open(path, "rb")
        handle.prefetch()
        return handle  # type: ignore[return-value]

    def open_write(self, path: str) -> BinaryIO:
        handle = self.session.sftp.open(path, "wb")
        handle.set_pipelined(True)
        return handle  # type: ignore[return-value]

    def set_modified_time(self, path: str, modified: datetime) -> None:
        seconds = utc_to_ns(modified) // 1_000_000_000
        self.session.sftp.utime(path, (seconds, seconds))

    def close(self) -> None:
        self.session.close()
