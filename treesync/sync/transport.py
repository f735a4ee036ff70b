"""Transport selection: which side of a run is reached how."""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Callable, Optional

from ..config import Config, config
from ..exceptions import MisconfigurationError
from ..remote import RemoteSession
from .contexts import ExecutionContext, LocalContext, RemoteContext
from .pair import SyncPair

logger = logging.getLogger(__name__)

SessionFactory = Callable[[SyncPair], RemoteSession]


class TransportSelector:
    """Opens the execution contexts for a sync pair.

    A remote session is established once when the contexts are opened
    and closed once when they are released, even if the run fails.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        settings: Optional[Config] = None,
    ):
        """Initialize transport selector.

        Args:
            session_factory: Builds an unconnected RemoteSession for a pair
                (defaults to one built from the pair and configuration)
            settings: Configuration used to fill in missing credentials
        """
        self.settings = settings or config
        self.session_factory = session_factory or self._default_session

    def _default_session(self, pair: SyncPair) -> RemoteSession:
        if not pair.host:
            raise MisconfigurationError(
                f"Sync mode {pair.mode.value} requires a remote host"
            )
        return RemoteSession(
            host=pair.host,
            port=pair.port,
            username=pair.username or self.settings.username,
            password=pair.password or self.settings.password,
            key_filename=pair.key_filename or self.settings.key_filename,
            connect_timeout=self.settings.connect_timeout,
            command_timeout=self.settings.command_timeout,
        )

    @contextmanager
    def open(
        self, pair: SyncPair
    ) -> Generator[tuple[ExecutionContext, ExecutionContext], None, None]:
        """Open (source_context, destination_context) for a pair.

        Raises:
            MisconfigurationError: If the pair is invalid (before any I/O)
            ConnectivityError: If the remote session cannot be established
        """
        pair.validate()
        local = LocalContext()

        if not pair.mode.requires_remote:
            logger.debug("Transport: local -> local")
            yield local, local
            return

        session = self.session_factory(pair)
        session.connect()
        remote = RemoteContext(session)
        try:
            if pair.mode.source_is_remote:
                logger.debug("Transport: %s (remote) -> local", pair.host)
                yield remote, local
            else:
                logger.debug("Transport: local -> %s (remote)", pair.host)
                yield local, remote
        finally:
            remote.close()
