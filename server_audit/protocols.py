"""Protocol interfaces for dependency inversion.

The runner and fact collectors depend on RemoteSession, not on asyncssh,
so they can be exercised with an in-memory session in tests.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from server_audit.models import CommandResult


@runtime_checkable
class RemoteSession(Protocol):
    """Protocol for the command channel to the audit target.

    connect, run-command to output, fetch-file to bytes-or-absent, disconnect.
    """

    async def connect(self) -> None:
        """Open the session.

        Raises:
            AuditConnectionError: If the target cannot be reached or authenticated
        """
        ...

    async def run(self, command: str) -> CommandResult:
        """Run a shell command and capture its output.

        Raises:
            OperationError: If the command could not be executed
        """
        ...

    async def exists(self, path: str) -> bool:
        """Check whether a remote path exists."""
        ...

    async def fetch(self, remote_path: str, local_path: Path | str) -> bool:
        """Copy a remote file locally.

        Returns:
            False if the remote path does not exist
        """
        ...

    async def close(self) -> None:
        """Close the session."""
        ...
