"""Collection operation data models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any


class OperationKind(Enum):
    """How an operation collects its data."""

    FACTS = "facts"
    PACKAGES = "packages"
    SERVICES = "services"
    COMMAND = "command"
    FETCH = "fetch"


class OutputFormat(Enum):
    """How an operation's result is written locally."""

    JSON = "json"
    TEXT = "txt"
    FILE = "file"


_FORMATS = {
    OperationKind.FACTS: OutputFormat.JSON,
    OperationKind.PACKAGES: OutputFormat.JSON,
    OperationKind.SERVICES: OutputFormat.JSON,
    OperationKind.COMMAND: OutputFormat.TEXT,
    OperationKind.FETCH: OutputFormat.FILE,
}


@dataclass(frozen=True)
class Operation:
    """One read-only data collection step.

    Command operations carry a shell command, fetch operations a remote
    path. Structured kinds (facts, packages, services) carry neither.
    """

    name: str
    kind: OperationKind
    artifact: str = ""
    command: str | None = None
    path: str | None = None
    fatal: bool = False

    def __post_init__(self) -> None:
        if self.kind is OperationKind.COMMAND and not self.command:
            raise ValueError(f"Command operation {self.name!r} needs a command")
        if self.kind is OperationKind.FETCH and not self.path:
            raise ValueError(f"Fetch operation {self.name!r} needs a path")

    @property
    def output_format(self) -> OutputFormat:
        return _FORMATS[self.kind]

    def filename(self, host: str) -> str:
        """Get the local file name for this operation's result.

        Returns:
            '<artifact>_<host>.<json|txt>', or the remote base name for fetches
        """
        if self.kind is OperationKind.FETCH:
            return PurePosixPath(self.path or "").name
        return f"{self.artifact}_{host}.{self.output_format.value}"

    def describe(self) -> dict[str, Any]:
        """Describe the operation the way it is recorded in tasks.json."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "artifact": self.artifact or None,
            "command": self.command,
            "path": self.path,
            "fatal": self.fatal,
        }


@dataclass
class OperationResult:
    """Outcome of one operation.

    output is None when the result is absent (failed command, missing
    remote file).
    """

    operation: Operation
    output: str | dict[str, Any] | None = None
    returncode: int | None = None
    error: str | None = None
    written_to: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None
