"""Sync modes (transport combinations) for treesync."""

from enum import Enum


class SyncMode(str, Enum):
    """Where the source and destination trees live.

    Modes are mutually exclusive. Remote trees are reached through an
    SSH session; local trees through the local filesystem.
    """

    LOCAL = "local"
    """Both trees are on the local machine"""

    PUSH_TO_REMOTE = "pushToRemote"
    """Source is local, destination is on the remote host"""

    PULL_FROM_REMOTE = "pullFromRemote"
    """Source is on the remote host, destination is local"""

    @property
    def source_is_remote(self) -> bool:
        """Whether the source tree is reached through a remote session."""
        return self == SyncMode.PULL_FROM_REMOTE

    @property
    def destination_is_remote(self) -> bool:
        """Whether the destination tree is reached through a remote session."""
        return self == SyncMode.PUSH_TO_REMOTE

    @property
    def requires_remote(self) -> bool:
        """Whether this mode needs a remote host."""
        return self.source_is_remote or self.destination_is_remote

    @classmethod
    def from_string(cls, value: str) -> "SyncMode":
        """Parse a sync mode from its name or abbreviation.

        Args:
            value: Mode name (e.g. "pushToRemote") or alias ("push", "ptr")

        Returns:
            Matching SyncMode

        Raises:
            ValueError: If the value does not name a mode

        Examples:
            >>> SyncMode.from_string("push")
            <SyncMode.PUSH_TO_REMOTE: 'pushToRemote'>
            >>> SyncMode.from_string("pullFromRemote")
            <SyncMode.PULL_FROM_REMOTE: 'pullFromRemote'>
        """
        key = value.strip().lower()
        for mode in cls:
            if key == mode.value.lower():
                return mode
        if key in _ALIASES:
            return _ALIASES[key]
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown sync mode '{value}'. Valid modes: {valid}")


_ALIASES = {
    "l": SyncMode.LOCAL,
    "push": SyncMode.PUSH_TO_REMOTE,
    "ptr": SyncMode.PUSH_TO_REMOTE,
    "pull": SyncMode.PULL_FROM_REMOTE,
    "pfr": SyncMode.PULL_FROM_REMOTE,
}
