"""Data models for server-audit."""

from server_audit.models.command import CommandResult
from server_audit.models.operation import (
    Operation,
    OperationKind,
    OperationResult,
    OutputFormat,
)
from server_audit.models.run import AuditRun
from server_audit.models.target import AuditTarget

__all__ = [
    "AuditRun",
    "AuditTarget",
    "CommandResult",
    "Operation",
    "OperationKind",
    "OperationResult",
    "OutputFormat",
]
