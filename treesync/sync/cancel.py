"""Cooperative cancellation for sync runs."""

import threading

from ..exceptions import SyncCancelledError


class CancellationToken:
    """A flag that a running sync checks between scans and operations.

    Cancellation is cooperative: an operation that has already started
    runs to completion, and the run stops at the next check.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise if cancellation has been requested.

        Raises:
            SyncCancelledError: If cancel() was called
        """
        if self._event.is_set():
            raise SyncCancelledError("Sync cancelled")
