"""Single SSH session to the audit target.

State machine:
    NOT_CONNECTED -> CONNECTED -> DISCONNECTED

Every remote call blocks until it completes or hits the per-command timeout.
Operations run one at a time; there is no fan-out over the connection.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any

import asyncssh

from server_audit.errors import AuditConnectionError, OperationError
from server_audit.models import AuditTarget, CommandResult
from server_audit.services.executors import download_file, run_command, stat_path

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle of an SSH session."""

    NOT_CONNECTED = "not_connected"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class SSHSession:
    """One SSH connection to one target, used for the whole run."""

    def __init__(
        self,
        target: AuditTarget,
        connect_timeout: int = 30,
        command_timeout: int = 120,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = False,
        password: str | None = None,
    ) -> None:
        """Initialize the session without connecting.

        Args:
            target: Host, user, port and key to connect with
            connect_timeout: Seconds allowed for connect and authentication
            command_timeout: Seconds allowed for each remote command
            known_hosts: Path to known_hosts file, or None to disable verification
            strict_host_key_checking: Whether to reject unverifiable host keys
            password: Optional password, tried along with keys and agent
        """
        self.target = target
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self._known_hosts = known_hosts
        self._strict_host_key = strict_host_key_checking
        self._password = password
        self._conn: asyncssh.SSHClientConnection | None = None
        self._state = SessionState.NOT_CONNECTED

    @property
    def state(self) -> SessionState:
        return self._state

    def _connect_options(self, known_hosts: str | None) -> dict[str, Any]:
        options: dict[str, Any] = {
            "port": self.target.port,
            "username": self.target.user,
            "known_hosts": known_hosts,
            "client_keys": (
                [self.target.identity_file] if self.target.identity_file else None
            ),
            "connect_timeout": self.connect_timeout,
        }
        if self._password:
            options["password"] = self._password
        return options

    async def connect(self) -> None:
        """Open the SSH connection.

        Raises:
            AuditConnectionError: On network, authentication, key or timeout failure
            RuntimeError: If the session was already used
        """
        if self._state is not SessionState.NOT_CONNECTED:
            raise RuntimeError(f"Session is {self._state.value}, cannot connect")

        logger.info("Opening SSH connection to %s", self.target.destination)

        try:
            try:
                self._conn = await asyncssh.connect(
                    self.target.host, **self._connect_options(self._known_hosts)
                )
            except asyncssh.HostKeyNotVerifiable as e:
                if self._strict_host_key:
                    logger.error(
                        "Host key verification failed for %s: %s. "
                        "Add the host key to %s or set "
                        "AUDIT_STRICT_HOST_KEY_CHECKING=false",
                        self.target.host,
                        e,
                        self._known_hosts,
                    )
                    raise
                logger.warning(
                    "Host key not verified for %s (strict mode disabled): %s",
                    self.target.host,
                    e,
                )
                self._conn = await asyncssh.connect(
                    self.target.host, **self._connect_options(None)
                )
        except Exception as e:
            logger.error("Connection to %s failed: %s", self.target.destination, e)
            raise AuditConnectionError(self.target.destination, e) from e

        self._state = SessionState.CONNECTED
        logger.info("SSH connection established to %s", self.target.destination)

    def _require_connection(self) -> asyncssh.SSHClientConnection:
        if self._state is not SessionState.CONNECTED or self._conn is None:
            raise RuntimeError(f"Session is {self._state.value}, not connected")
        return self._conn

    async def run(self, command: str) -> CommandResult:
        """Run a remote shell command.

        Returns:
            CommandResult; a non-zero exit status is not an error here

        Raises:
            OperationError: If the command times out or the channel fails
        """
        conn = self._require_connection()
        logger.debug("Running: %s", command)
        try:
            return await run_command(conn, command, self.command_timeout)
        except asyncio.TimeoutError as e:
            raise OperationError(
                command, f"timed out after {self.command_timeout}s"
            ) from e
        except (asyncssh.Error, OSError) as e:
            raise OperationError(command, str(e)) from e

    async def exists(self, path: str) -> bool:
        """Check whether a remote path exists.

        Raises:
            OperationError: If the check itself fails
        """
        conn = self._require_connection()
        try:
            return await stat_path(conn, path, self.command_timeout)
        except asyncio.TimeoutError as e:
            raise OperationError(
                f"stat {path}", f"timed out after {self.command_timeout}s"
            ) from e
        except (asyncssh.Error, OSError) as e:
            raise OperationError(f"stat {path}", str(e)) from e

    async def fetch(self, remote_path: str, local_path: Path | str) -> bool:
        """Copy a remote file to local_path if it exists.

        Returns:
            False when the remote path does not exist, True once copied

        Raises:
            OperationError: If the transfer fails
        """
        conn = self._require_connection()
        if not await self.exists(remote_path):
            return False

        try:
            size = await download_file(conn, remote_path, str(local_path))
        except (asyncssh.Error, OSError) as e:
            raise OperationError(f"fetch {remote_path}", str(e)) from e

        logger.debug("Fetched %s (%d bytes) to %s", remote_path, size, local_path)
        return True

    async def close(self) -> None:
        """Close the connection. Safe to call in any state."""
        if self._conn is not None:
            logger.info("Closing SSH connection to %s", self.target.destination)
            self._conn.close()
            await self._conn.wait_closed()
            self._conn = None
        if self._state is SessionState.CONNECTED:
            self._state = SessionState.DISCONNECTED

    async def __aenter__(self) -> "SSHSession":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
