"""Custom exceptions for treesync."""

from typing import Optional


class TreeSyncError(Exception):
    """Base exception for all treesync errors."""

    pass


class ConfigError(TreeSyncError):
    """Raised when configuration values or sync pair files are invalid."""

    pass


class MisconfigurationError(TreeSyncError):
    """Raised when a sync run is described with an invalid combination of inputs.

    This is always raised before any I/O takes place.
    """

    pass


class ConnectivityError(TreeSyncError):
    """Raised when a remote host is unreachable or the session cannot be set up."""

    def __init__(self, host: str, message: str):
        self.host = host
        self.message = message
        super().__init__(f"{host}: {message}")


class TreeAccessError(TreeSyncError):
    """Raised when a tree root cannot be scanned.

    The root may not exist, may not be a directory, or enumeration
    may have failed locally or on the remote host.
    """

    def __init__(self, root: str, message: str, host: Optional[str] = None):
        self.root = root
        self.host = host
        self.message = message
        location = f"{host}:{root}" if host else root
        super().__init__(f"{location}: {message}")


class TransferError(TreeSyncError):
    """Raised when a create, delete, or copy operation fails mid-execution."""

    def __init__(
        self,
        operation: str,
        path: str,
        message: str,
        host: Optional[str] = None,
    ):
        self.operation = operation
        self.path = path
        self.host = host
        self.message = message
        location = f"{host}:{path}" if host else path
        super().__init__(f"{operation} failed for {location}: {message}")


class SyncCancelledError(TreeSyncError):
    """Raised when a sync run is cancelled through its cancellation token."""

    pass
