"""Dependency container and SSH engine check for server-audit.

Replaces the environment hand-off of the destination directory with
explicit objects passed to the components that need them.
"""

import importlib.util
from dataclasses import dataclass
from typing import TYPE_CHECKING

from server_audit.config import HostKeyVerifier, Settings
from server_audit.errors import DependencyError
from server_audit.models import AuditTarget

if TYPE_CHECKING:
    from server_audit.services.session import SSHSession

ENGINE_PACKAGE = "asyncssh"


def check_engine() -> None:
    """Verify the SSH engine can be imported.

    Raises:
        DependencyError: If asyncssh is not installed
    """
    if importlib.util.find_spec(ENGINE_PACKAGE) is None:
        raise DependencyError(
            ENGINE_PACKAGE,
            f"Install it (e.g. 'pip install {ENGINE_PACKAGE}') and run again.",
        )


@dataclass
class Dependencies:
    """Container for server-audit dependencies.

    Example:
        deps = Dependencies.from_settings(Settings.from_env())
        session = deps.session_for(target)
    """

    settings: Settings
    host_keys: HostKeyVerifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "Dependencies":
        host_keys = HostKeyVerifier(
            known_hosts_path=settings.known_hosts,
            strict_checking=settings.strict_host_key_checking,
        )
        return cls(settings=settings, host_keys=host_keys)

    def session_for(self, target: AuditTarget) -> "SSHSession":
        """Build an unconnected SSH session for the target."""
        from server_audit.services.session import SSHSession

        return SSHSession(
            target,
            connect_timeout=self.settings.connect_timeout,
            command_timeout=self.settings.command_timeout,
            known_hosts=self.host_keys.get_known_hosts_path(),
            strict_host_key_checking=self.host_keys.strict_checking,
            password=self.settings.password,
        )
