"""Exception hierarchy for server-audit.

Only usage, dependency and connection errors reach the process exit status.
Operation errors are caught at the operation boundary by the runner.
"""


class AuditError(Exception):
    """Base class for all audit errors."""


class UsageError(AuditError):
    """Malformed or missing command line arguments."""


class DependencyError(AuditError):
    """Required SSH engine is not installed."""

    def __init__(self, package: str, hint: str):
        """Initialize dependency error.

        Args:
            package: Name of the missing distribution
            hint: Remediation shown to the user
        """
        self.package = package
        self.hint = hint
        super().__init__(f"Missing '{package}'. {hint}")


class AuditConnectionError(AuditError):
    """Failed to connect or authenticate to the target."""

    def __init__(self, destination: str, original_error: Exception):
        """Initialize connection error.

        Args:
            destination: user@host:port of the target
            original_error: Exception raised by the SSH layer
        """
        self.destination = destination
        self.original_error = original_error
        super().__init__(f"Cannot connect to {destination}: {original_error}")


class OperationError(AuditError):
    """A single collection operation failed. Never fatal."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation}: {reason}")
