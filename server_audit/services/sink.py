"""Writes operation results under the report directory."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from server_audit.models import Operation, OutputFormat

logger = logging.getLogger(__name__)

FILE_MODE = 0o644


class ResultSink:
    """Local destination for one run's results.

    Files are named '<artifact>_<host>.<json|txt>'; fetched configs go to
    'configs/<basename>'.
    """

    def __init__(self, report_dir: Path | str, host: str) -> None:
        self.report_dir = Path(report_dir)
        self.host = host

    @property
    def configs_dir(self) -> Path:
        return self.report_dir / "configs"

    def path_for(self, operation: Operation) -> Path:
        if operation.output_format is OutputFormat.FILE:
            return self.configs_dir / operation.filename(self.host)
        return self.report_dir / operation.filename(self.host)

    def write(self, operation: Operation, output: str | dict[str, Any]) -> Path:
        """Write a JSON or text result.

        Returns:
            Path of the written file

        Raises:
            ValueError: If the operation produces fetched files
            OSError: If the file cannot be written
        """
        fmt = operation.output_format
        if fmt is OutputFormat.JSON:
            content = json.dumps(output, indent=4, sort_keys=True)
        elif fmt is OutputFormat.TEXT:
            content = output if isinstance(output, str) else str(output)
        else:
            raise ValueError(f"{operation.name} is a fetch operation, use fetch_path()")

        path = self.path_for(operation)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        os.chmod(path, FILE_MODE)
        logger.debug("Wrote %s (%d chars)", path.name, len(content))
        return path

    def fetch_path(self, operation: Operation) -> Path:
        """Get the local destination for a fetched file, creating configs/."""
        self.configs_dir.mkdir(parents=True, exist_ok=True)
        return self.path_for(operation)

    def listing(self, max_depth: int = 2) -> list[Path]:
        """List produced files at most max_depth levels below the report dir."""
        if not self.report_dir.exists():
            return []
        files = [
            path
            for path in self.report_dir.rglob("*")
            if path.is_file()
            and len(path.relative_to(self.report_dir).parts) <= max_depth
        ]
        return sorted(files)
