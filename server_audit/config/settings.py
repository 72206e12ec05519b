"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Output layout
    report_dir: str | None = field(default=None)
    output_root: str = field(default=".")

    # SSH
    connect_timeout: int = field(default=30)
    command_timeout: int = field(default=120)
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=False)
    password: str | None = field(default=None, repr=False)

    # Collection
    top_processes: int = field(default=50)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            report_dir=os.getenv("AUDIT_DIR") or None,
            output_root=os.getenv("AUDIT_OUTPUT_ROOT", "."),
            connect_timeout=cls._get_int("AUDIT_CONNECT_TIMEOUT", 30),
            command_timeout=cls._get_int("AUDIT_COMMAND_TIMEOUT", 120),
            known_hosts=os.getenv("AUDIT_KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool(
                "AUDIT_STRICT_HOST_KEY_CHECKING", False
            ),
            password=os.getenv("AUDIT_SSH_PASSWORD") or None,
            top_processes=cls._get_int("AUDIT_TOP_PROCESSES", 50),
            log_level=os.getenv("AUDIT_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("AUDIT_LOG_COLORS", True),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get a positive integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("%s must be > 0, got %d, using default %d", key, parsed, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")
