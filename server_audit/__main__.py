"""Entry point for server-audit."""

import asyncio
import logging
import sys
from pathlib import Path

from server_audit.cli import format_listing, parse_args, prepare_directories, write_plan
from server_audit.config import Settings
from server_audit.dependencies import Dependencies, check_engine
from server_audit.errors import AuditConnectionError, DependencyError
from server_audit.models import AuditRun, AuditTarget
from server_audit.utils.console import ColorfulFormatter

logger = logging.getLogger("server_audit")


def configure_logging(settings: Settings) -> None:
    """Configure colorful stderr logging for the server_audit package."""
    use_colors = settings.log_colors and sys.stderr.isatty()

    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
        logger.addHandler(handler)
        logger.propagate = False

    # Suppress noisy third-party loggers
    logging.getLogger("asyncssh").setLevel(logging.WARNING)
    logging.getLogger("asyncssh.sftp").setLevel(logging.WARNING)


async def audit(
    deps: Dependencies,
    target: AuditTarget,
    output_dir: Path,
    report_dir: Path,
) -> AuditRun:
    """Run the full audit against target."""
    from server_audit.services import AuditRunner, ResultSink

    run = AuditRun(target=target, output_dir=output_dir, report_dir=report_dir)
    runner = AuditRunner(
        run,
        deps.session_for(target),
        ResultSink(report_dir, target.host),
        top_processes=deps.settings.top_processes,
    )
    return await runner.execute()


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the audit and print where results went.

    Returns:
        Process exit status: 0 on success, 1 on usage, dependency or
        connection errors, 130 when interrupted
    """
    target = parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings)

    try:
        check_engine()
    except DependencyError as e:
        print(str(e), file=sys.stderr)
        return 1

    try:
        deps = Dependencies.from_settings(settings)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1

    output_dir, report_dir = prepare_directories(target, settings)
    write_plan(output_dir, target, settings.top_processes)
    logger.info("Auditing %s into %s", target.destination, output_dir)
    if not deps.host_keys.is_enabled():
        logger.warning("Host key verification disabled for %s", target.destination)

    try:
        asyncio.run(audit(deps, target, output_dir, report_dir))
    except AuditConnectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted, partial results left in place.", file=sys.stderr)
        return 130

    from server_audit.services import ResultSink

    print(format_listing(report_dir, ResultSink(report_dir, target.host).listing()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
