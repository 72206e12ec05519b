"""Sequential task runner for one audit run.

Connect once, gather facts, pick the OS-family branch, then run every
operation in order. Only the connection is fatal: each operation's failure
is caught at its own boundary, recorded as an empty or absent result, and
the run moves on.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from server_audit.errors import OperationError
from server_audit.models import (
    AuditRun,
    Operation,
    OperationKind,
    OperationResult,
    OutputFormat,
)
from server_audit.operations import GATHER_FACTS, operations_for
from server_audit.protocols import RemoteSession
from server_audit.services.facts import gather_facts, gather_packages, gather_services
from server_audit.services.sink import ResultSink

logger = logging.getLogger(__name__)

Collector = Callable[[RemoteSession], Awaitable[dict[str, Any]]]

COLLECTORS: dict[OperationKind, Collector] = {
    OperationKind.FACTS: gather_facts,
    OperationKind.PACKAGES: gather_packages,
    OperationKind.SERVICES: gather_services,
}

# What a failed operation leaves behind, per output format
EMPTY_OUTPUT: dict[OutputFormat, Any] = {
    OutputFormat.JSON: {},
    OutputFormat.TEXT: "",
}


class AuditRunner:
    """Runs the fixed operation list against one target over one session."""

    def __init__(
        self,
        run: AuditRun,
        session: RemoteSession,
        sink: ResultSink,
        top_processes: int = 50,
    ) -> None:
        self.run = run
        self.session = session
        self.sink = sink
        self.top_processes = top_processes
        self._handlers: dict[
            OperationKind, Callable[[Operation], Awaitable[OperationResult]]
        ] = {
            OperationKind.FACTS: self._collect_structured,
            OperationKind.PACKAGES: self._collect_structured,
            OperationKind.SERVICES: self._collect_structured,
            OperationKind.COMMAND: self._collect_command,
            OperationKind.FETCH: self._collect_fetch,
        }

    async def execute(self) -> AuditRun:
        """Connect and run every operation in sequence.

        Returns:
            The run with one result per executed operation

        Raises:
            AuditConnectionError: If the target cannot be reached
        """
        await self.session.connect()
        try:
            facts = await self.run_operation(GATHER_FACTS)
            os_family = None
            if isinstance(facts.output, dict):
                os_family = facts.output.get("os_family")

            for operation in operations_for(os_family, self.top_processes):
                await self.run_operation(operation)
        finally:
            await self.session.close()

        elapsed = (datetime.now() - self.run.started_at).total_seconds()
        logger.info(
            "Reports for %s saved to %s (%d operations, %d failed, %d files, %.1fs)",
            self.run.target.host,
            self.run.report_dir,
            len(self.run.results),
            len(self.run.failed),
            len(self.run.written),
            elapsed,
        )
        return self.run

    async def run_operation(self, operation: Operation) -> OperationResult:
        """Run one operation and write its result. Never raises OperationError."""
        self.run.operations.append(operation)
        logger.info("Running %s", operation.name)

        try:
            result = await self._handlers[operation.kind](operation)
        except (OperationError, OSError, ValueError) as e:
            if operation.fatal:
                raise
            logger.warning("Operation %s failed: %s", operation.name, e)
            result = OperationResult(operation, error=str(e))
            self._write_empty(result)

        self.run.record(result)
        return result

    def _write_empty(self, result: OperationResult) -> None:
        empty = EMPTY_OUTPUT.get(result.operation.output_format)
        if empty is None:
            return
        try:
            result.output = empty
            result.written_to = str(self.sink.write(result.operation, empty))
        except OSError as e:
            logger.error("Cannot write %s: %s", result.operation.name, e)

    async def _collect_structured(self, operation: Operation) -> OperationResult:
        data = await COLLECTORS[operation.kind](self.session)
        path = self.sink.write(operation, data)
        return OperationResult(operation, output=data, written_to=str(path))

    async def _collect_command(self, operation: Operation) -> OperationResult:
        command = await self.session.run(operation.command or "")
        if not command.ok:
            logger.info(
                "%s exited with %d: %s",
                operation.name,
                command.returncode,
                command.error.strip()[:200],
            )
        path = self.sink.write(operation, command.output)
        return OperationResult(
            operation,
            output=command.output,
            returncode=command.returncode,
            written_to=str(path),
        )

    async def _collect_fetch(self, operation: Operation) -> OperationResult:
        remote_path = operation.path or ""
        if not await self.session.exists(remote_path):
            logger.debug("%s not present on target", remote_path)
            return OperationResult(operation)

        destination = self.sink.fetch_path(operation)
        if not await self.session.fetch(remote_path, destination):
            return OperationResult(operation)
        return OperationResult(operation, output=remote_path, written_to=str(destination))
