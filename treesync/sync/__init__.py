"""Sync engine for treesync - one-direction directory tree synchronization."""

from .cancel import CancellationToken
from .comparator import SnapshotComparator
from .config import load_sync_pairs_from_json
from .contexts import ExecutionContext, LocalContext, RemoteContext
from .engine import SyncEngine
from .executor import PlanExecutor
from .models import DirectoryEntry, FileEntry, SyncPlan, TreeSnapshot
from .modes import SyncMode
from .pair import SyncPair
from .reporter import LoggingReporter, OperationKind, SyncReporter
from .scanner import TreeScanner, normalize_relative_path, relative_path
from .transport import TransportSelector

__all__ = [
    "SyncEngine",
    "SyncMode",
    "SyncPair",
    "load_sync_pairs_from_json",
    "TreeScanner",
    "SnapshotComparator",
    "PlanExecutor",
    "TransportSelector",
    "ExecutionContext",
    "LocalContext",
    "RemoteContext",
    "DirectoryEntry",
    "FileEntry",
    "TreeSnapshot",
    "SyncPlan",
    "SyncReporter",
    "LoggingReporter",
    "OperationKind",
    "CancellationToken",
    "normalize_relative_path",
    "relative_path",
]
