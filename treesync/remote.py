"""SSH session management for remote trees.

A :class:`RemoteSession` wraps one paramiko ``SSHClient`` and one lazily
opened ``SFTPClient``. Shell commands are used to enumerate trees; SFTP
is used for mutations and for streaming file content.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Optional

import paramiko

from .exceptions import ConnectivityError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a remote shell command."""

    exit_status: int
    stdout: bytes
    stderr: str

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.exit_status == 0


class RemoteSession:
    """A single long-lived SSH channel to one remote host.

    The session is connected once per sync run and closed once at the
    end, however many scans and operations use it.

    Examples:
        >>> session = RemoteSession("nas.local", username="backup")
        >>> session.connect()  # doctest: +SKIP
        >>> result = session.run("uname -a")  # doctest: +SKIP
        >>> session.close()  # doctest: +SKIP
    """

    def __init__(
        self,
        host: str,
        port: int = 22,
        username: Optional[str] = None,
        password: Optional[str] = None,
        key_filename: Optional[str] = None,
        connect_timeout: float = 10.0,
        command_timeout: float = 300.0,
        strict_host_keys: bool = False,
    ):
        """Initialize a remote session (does not connect).

        Args:
            host: Remote host name or address
            port: SSH port
            username: Remote user name
            password: Optional password credential
            key_filename: Optional private key file
            connect_timeout: Seconds allowed for connecting and authenticating
            command_timeout: Seconds allowed for a single remote command
            strict_host_keys: Reject hosts missing from known_hosts
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.key_filename = key_filename
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.strict_host_keys = strict_host_keys
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    @property
    def is_connected(self) -> bool:
        """Whether the underlying transport is active."""
        if self._client is None:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def connect(self) -> None:
        """Establish the SSH session.

        Raises:
            ConnectivityError: If the host is unreachable or authentication fails
        """
        if self._client is not None:
            return

        target = f"{self.username}@{self.host}" if self.username else self.host
        logger.debug("Connecting to %s:%d", target, self.port)

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        if self.strict_host_keys:
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        kwargs: dict = dict(
            hostname=self.host,
            port=self.port,
            username=self.username,
            timeout=self.connect_timeout,
            banner_timeout=self.connect_timeout,
            auth_timeout=self.connect_timeout,
        )
        if self.key_filename:
            kwargs["key_filename"] = self.key_filename
        if self.password:
            kwargs["password"] = self.password

        try:
            client.connect(**kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise ConnectivityError(self.host, f"Authentication failed: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ConnectivityError(self.host, f"Cannot connect: {e}") from e

        self._client = client
        logger.debug("Connected to %s:%d", target, self.port)

    def close(self) -> None:
        """Close the SFTP channel and the SSH session."""
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Disconnected from %s", self.host)

    def _require_client(self) -> paramiko.SSHClient:
        if self._client is None:
            raise ConnectivityError(self.host, "Session is not connected")
        return self._client

    @property
    def sftp(self) -> paramiko.SFTPClient:
        """The session's SFTP client, opened on first use."""
        if self._sftp is None:
            client = self._require_client()
            try:
                self._sftp = client.open_sftp()
            except (paramiko.SSHException, OSError) as e:
                raise ConnectivityError(
                    self.host, f"Cannot open SFTP channel: {e}"
                ) from e
        return self._sftp

    def run(self, command: str, timeout: Optional[float] = None) -> CommandResult:
        """Run a shell command on the remote host.

        Args:
            command: Shell command line (already quoted)
            timeout: Seconds allowed; defaults to ``command_timeout``

        Returns:
            CommandResult with exit status, raw stdout and decoded stderr

        Raises:
            paramiko.SSHException: On channel failures
            socket.timeout: If the command exceeds the timeout
        """
        client = self._require_client()
        logger.debug("Running on %s: %s", self.host, command)
        _, stdout, stderr = client.exec_command(
            command, timeout=timeout or self.command_timeout
        )
        out = stdout.read()
        err = stderr.read().decode("utf-8", errors="replace")
        status = stdout.channel.recv_exit_status()
        return CommandResult(exit_status=status, stdout=out, stderr=err.strip())

    def __enter__(self) -> "RemoteSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def is_reachable(host: str, port: int = 22, timeout: float = 5.0) -> bool:
    """Check whether a TCP connection to host:port can be opened.

    Args:
        host: Host name or address
        port: TCP port
        timeout: Seconds to wait

    Returns:
        True if the port accepted a connection
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as e:
        logger.debug("Probe of %s:%d failed: %s", host, port, e)
        return False
