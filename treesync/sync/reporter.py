"""Reporter hooks for sync runs.

Components receive a reporter explicitly and call it at fixed points
(scan started/complete, plan computed, group started, operation
applied). The base class does nothing, so callers only override the
hooks they care about.
"""

import logging
from enum import Enum

from .models import SyncPlan, TreeSnapshot

logger = logging.getLogger(__name__)

SOURCE = "source"
DESTINATION = "destination"


class OperationKind(str, Enum):
    """The five operation groups, in execution order."""

    DELETE_FILE = "delete_file"
    DELETE_DIRECTORY = "delete_directory"
    CREATE_DIRECTORY = "create_directory"
    COPY_FILE = "copy_file"
    OVERWRITE_FILE = "overwrite_file"

    @property
    def label(self) -> str:
        """Short human-readable label."""
        return _LABELS[self]


_LABELS = {
    OperationKind.DELETE_FILE: "Delete file",
    OperationKind.DELETE_DIRECTORY: "Delete directory",
    OperationKind.CREATE_DIRECTORY: "Create directory",
    OperationKind.COPY_FILE: "Copy file",
    OperationKind.OVERWRITE_FILE: "Overwrite file",
}


class SyncReporter:
    """No-op reporter; subclass and override the hooks you need."""

    def scan_started(self, side: str, location: str) -> None:
        """A tree scan is about to start."""

    def scan_complete(self, side: str, location: str, snapshot: TreeSnapshot) -> None:
        """A tree scan finished."""

    def plan_computed(self, plan: SyncPlan) -> None:
        """The comparator produced a plan."""

    def group_started(self, kind: OperationKind, count: int) -> None:
        """A non-empty operation group is about to run."""

    def operation_applied(self, kind: OperationKind, relative_path: str) -> None:
        """One operation finished successfully."""


class LoggingReporter(SyncReporter):
    """Routes reporter hooks to the standard logging module."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def scan_started(self, side: str, location: str) -> None:
        self.log.debug("Scanning %s tree %s", side, location)

    def scan_complete(self, side: str, location: str, snapshot: TreeSnapshot) -> None:
        self.log.info(
            "Scanned %s tree %s: %d director(ies), %d file(s)",
            side,
            location,
            len(snapshot.directories),
            len(snapshot.files),
        )

    def plan_computed(self, plan: SyncPlan) -> None:
        self.log.info("Plan: %s", plan.summary())

    def group_started(self, kind: OperationKind, count: int) -> None:
        self.log.debug("%s: %d operation(s)", kind.label, count)

    def operation_applied(self, kind: OperationKind, relative_path: str) -> None:
        self.log.debug("%s: %s", kind.label, relative_path)
