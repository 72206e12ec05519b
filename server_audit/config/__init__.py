"""Configuration module for server-audit.

- Settings: Environment variable configuration
- HostKeyVerifier: SSH host key verification policy
"""

from server_audit.config.host_keys import HostKeyVerifier
from server_audit.config.settings import Settings

__all__ = ["HostKeyVerifier", "Settings"]
