"""Sync pair: the description of one sync run."""

import os
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..exceptions import MisconfigurationError
from .modes import SyncMode

DEFAULT_PORT = 22


@dataclass
class SyncPair:
    """Source root, destination root, and how each is reached.

    Examples:
        >>> pair = SyncPair("/data/src", "/srv/backup", "push", host="nas")
        >>> pair.sync_mode
        <SyncMode.PUSH_TO_REMOTE: 'pushToRemote'>
    """

    source: str
    """Root of the tree to copy from"""

    destination: str
    """Root of the tree to converge onto the source"""

    sync_mode: Union[SyncMode, str] = SyncMode.LOCAL
    """Transport combination"""

    host: Optional[str] = None
    """Remote host (required for remote modes)"""

    port: int = DEFAULT_PORT
    """Remote SSH port"""

    username: Optional[str] = None
    """Remote user name (defaults to the SSH client's default)"""

    password: Optional[str] = None
    """Optional password credential"""

    key_filename: Optional[str] = None
    """Optional private key credential"""

    alias: Optional[str] = None
    """Optional display name for this pair"""

    def __post_init__(self) -> None:
        if isinstance(self.sync_mode, str) and not isinstance(
            self.sync_mode, SyncMode
        ):
            try:
                self.sync_mode = SyncMode.from_string(self.sync_mode)
            except ValueError as e:
                raise MisconfigurationError(str(e)) from e
        self.source = str(self.source)
        self.destination = str(self.destination)
        if self.host is not None:
            self.host = self.host.strip() or None
        if self.key_filename:
            self.key_filename = os.path.expanduser(self.key_filename)

    @property
    def mode(self) -> SyncMode:
        """The sync mode as an enum member."""
        return SyncMode.from_string(self.sync_mode)

    @property
    def display_name(self) -> str:
        """Human-readable name of this pair."""
        if self.alias:
            return self.alias
        source = self.source
        destination = self.destination
        if self.mode.source_is_remote:
            source = f"{self.host}:{source}"
        if self.mode.destination_is_remote:
            destination = f"{self.host}:{destination}"
        return f"{source} -> {destination}"

    def validate(self) -> None:
        """Reject invalid combinations of run-mode inputs.

        Raises:
            MisconfigurationError: If the pair cannot describe a valid run
        """
        if not self.source.strip():
            raise MisconfigurationError("Source path is required")
        if not self.destination.strip():
            raise MisconfigurationError("Destination path is required")
        if self.mode.requires_remote and not self.host:
            raise MisconfigurationError(
                f"Sync mode {self.mode.value} requires a remote host"
            )
        if not self.mode.requires_remote and self.host:
            raise MisconfigurationError(
                f"Sync mode {self.mode.value} does not use a remote host "
                f"(got '{self.host}')"
            )
        if not 0 < self.port <= 65535:
            raise MisconfigurationError(f"Invalid port: {self.port}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncPair":
        """Create a sync pair from a dictionary (camelCase keys).

        Args:
            data: Dictionary with "source", "destination", "syncMode" and
                optional "host", "port", "username", "password", "keyFile",
                "alias" keys

        Returns:
            SyncPair instance

        Raises:
            MisconfigurationError: If required keys are missing
        """
        missing = [key for key in ("source", "destination") if not data.get(key)]
        if missing:
            raise MisconfigurationError(
                f"Sync pair is missing required field(s): {', '.join(missing)}"
            )
        port = data.get("port", DEFAULT_PORT)
        try:
            port = int(port)
        except (TypeError, ValueError) as e:
            raise MisconfigurationError(f"Invalid port: {port!r}") from e

        return cls(
            source=data["source"],
            destination=data["destination"],
            sync_mode=data.get("syncMode", SyncMode.LOCAL),
            host=data.get("host"),
            port=port,
            username=data.get("username"),
            password=data.get("password"),
            key_filename=data.get("keyFile"),
            alias=data.get("alias"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary (credentials omitted)."""
        data: dict[str, Any] = {
            "source": self.source,
            "destination": self.destination,
            "syncMode": self.mode.value,
        }
        if self.host:
            data["host"] = self.host
            data["port"] = self.port
        if self.username:
            data["username"] = self.username
        if self.key_filename:
            data["keyFile"] = self.key_filename
        if self.alias:
            data["alias"] = self.alias
        return data
