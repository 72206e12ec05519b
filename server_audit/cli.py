"""Command line front-end.

Parses `[-p PORT] [-i KEY_PATH] user@host`, lays out the run directory and
writes the plan artifacts before any remote work begins.
"""

import argparse
import json
import os
import sys
from datetime import datetime
from pathlib import Path

from server_audit.config import Settings
from server_audit.errors import UsageError
from server_audit.models import AuditTarget
from server_audit.operations import describe_plan
from server_audit.utils.validation import validate_host, validate_port, validate_user

RUN_PREFIX = "server-audit"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

EPILOG = """\
examples:
  %(prog)s root@203.0.113.10
  %(prog)s -p 2222 -i ~/.ssh/id_ed25519 admin@my.server.example
"""


class AuditArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _port(value: str) -> int:
    try:
        return validate_port(int(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid port {value!r}: {e}") from e


def build_parser(prog: str | None = None) -> AuditArgumentParser:
    parser = AuditArgumentParser(
        prog=prog,
        description="Read-only audit of a remote Linux host over SSH.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-p", dest="port", type=_port, default=22, metavar="PORT",
                        help="SSH port (default: 22)")
    parser.add_argument("-i", dest="identity_file", metavar="SSH_KEY",
                        help="private key file")
    parser.add_argument("target", metavar="user@host", help="login user and host to audit")
    return parser


def parse_target(value: str, port: int = 22, identity_file: str | None = None) -> AuditTarget:
    """Build an AuditTarget from 'user@host'.

    Raises:
        UsageError: If the user or host part is missing or invalid
    """
    user, sep, host = value.strip().rpartition("@")
    if not sep:
        raise UsageError(f"expected user@host, got {value!r}")
    try:
        validate_user(user)
        validate_host(host)
    except ValueError as e:
        raise UsageError(str(e)) from e

    if identity_file:
        identity_file = os.path.expanduser(identity_file)
    return AuditTarget(host=host, user=user, port=port, identity_file=identity_file)


def parse_args(argv: list[str] | None = None) -> AuditTarget:
    """Parse command line arguments into the audit target.

    Exits with status 1 and usage text on any usage error.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return parse_target(args.target, args.port, args.identity_file)
    except UsageError as e:
        parser.error(str(e))
        raise  # unreachable, parser.error exits


def run_directory_name(host: str, now: datetime) -> str:
    return f"{RUN_PREFIX}_{host}_{now.strftime(TIMESTAMP_FORMAT)}"


def prepare_directories(
    target: AuditTarget,
    settings: Settings,
    now: datetime | None = None,
) -> tuple[Path, Path]:
    """Create the run directory and its report subdirectory.

    Returns:
        (output_dir, report_dir)
    """
    now = now or datetime.now()
    output_dir = Path(settings.output_root) / run_directory_name(target.host, now)
    report_dir = Path(settings.report_dir) if settings.report_dir else output_dir / "report"

    output_dir.mkdir(parents=True, exist_ok=True)
    report_dir.mkdir(parents=True, exist_ok=True)
    return output_dir, report_dir


def write_plan(output_dir: Path, target: AuditTarget, top_processes: int = 50) -> list[Path]:
    """Write inventory.json and tasks.json describing the run."""
    inventory = output_dir / "inventory.json"
    inventory.write_text(json.dumps(target.to_inventory(), indent=4) + "\n", encoding="utf-8")

    tasks = output_dir / "tasks.json"
    tasks.write_text(json.dumps(describe_plan(top_processes), indent=4) + "\n", encoding="utf-8")
    return [inventory, tasks]


def format_listing(report_dir: Path, files: list[Path]) -> str:
    """Final user-facing summary naming the report dir and its files."""
    lines = ["", f"Done. Results are in: {report_dir}"]
    lines += [f"- {path}" for path in files]
    return "\n".join(lines)
