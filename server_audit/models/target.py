"""Audit target data model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AuditTarget:
    """The single remote host being audited.

    Built once from command line input and never modified during the run.
    """

    host: str
    user: str
    port: int = 22
    identity_file: str | None = None

    @property
    def destination(self) -> str:
        """Get a user@host:port label for logs and error messages."""
        return f"{self.user}@{self.host}:{self.port}"

    def to_inventory(self) -> dict[str, str | int | None]:
        """Describe the target the way it is recorded in inventory.json."""
        return {
            "host": self.host,
            "user": self.user,
            "port": self.port,
            "identity_file": self.identity_file,
        }
