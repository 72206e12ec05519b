"""SSH host key verification policy.

Verification is off unless a known_hosts file is configured, matching the
non-interactive behaviour of the audit (no prompts about new host keys).
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification policy.

    Resolves the known_hosts setting into a path for asyncssh, or None to
    disable verification.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = False,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file, 'none' or None to disable
            strict_checking: Reject host keys that cannot be verified

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if not value or value.lower() == "none":
            if self.strict_checking:
                logger.warning(
                    "Strict host key checking requested without AUDIT_KNOWN_HOSTS, "
                    "falling back to ~/.ssh/known_hosts"
                )
                return self._resolve_known_hosts(str(Path.home() / ".ssh" / "known_hosts"))
            logger.warning(
                "SSH host key verification DISABLED. "
                "Set AUDIT_KNOWN_HOSTS to a known_hosts file to enable it."
            )
            return None

        path = Path(os.path.expanduser(value))
        if not path.exists():
            if self.strict_checking:
                raise FileNotFoundError(
                    f"SSH host key verification required but "
                    f"known_hosts file not found: {path}\n\n"
                    f"To fix this:\n"
                    f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                    f"2. Or disable strict checking: "
                    f"AUDIT_STRICT_HOST_KEY_CHECKING=false"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled",
                path,
            )
            return None
        return str(path)

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        return self._known_hosts

    def is_enabled(self) -> bool:
        return self._known_hosts is not None
