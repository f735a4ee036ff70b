"""treesync - one-direction directory tree synchronization, local or over SSH."""

from .exceptions import (
    ConfigError,
    ConnectivityError,
    MisconfigurationError,
    SyncCancelledError,
    TransferError,
    TreeAccessError,
    TreeSyncError,
)
from .sync import SyncEngine, SyncMode, SyncPair

__version__ = "0.1.0"

__all__ = [
    "SyncEngine",
    "SyncMode",
    "SyncPair",
    "TreeSyncError",
    "ConfigError",
    "ConnectivityError",
    "MisconfigurationError",
    "SyncCancelledError",
    "TransferError",
    "TreeAccessError",
]
