"""Audit run aggregate."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from server_audit.models.operation import Operation, OperationResult
from server_audit.models.target import AuditTarget


@dataclass
class AuditRun:
    """One execution of the tool against one target."""

    target: AuditTarget
    output_dir: Path
    report_dir: Path
    operations: list[Operation] = field(default_factory=list)
    results: list[OperationResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def configs_dir(self) -> Path:
        return self.report_dir / "configs"

    @property
    def failed(self) -> list[OperationResult]:
        """Results of operations that failed."""
        return [r for r in self.results if r.failed]

    @property
    def written(self) -> list[str]:
        """Local paths written by this run."""
        return [r.written_to for r in self.results if r.written_to]

    def record(self, result: OperationResult) -> None:
        self.results.append(result)
