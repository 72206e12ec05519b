"""Tests for the console log formatter."""

import logging

from server_audit.utils.console import ColorfulFormatter


def _record(name: str, msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_plain_format_without_colors() -> None:
    formatter = ColorfulFormatter(use_colors=False)

    line = formatter.format(_record("server_audit.services.runner", "Running df"))

    assert "\033[" not in line
    assert "INFO" in line
    assert "services.runner" in line
    assert line.endswith("Running df")


def test_colors_highlight_destination() -> None:
    formatter = ColorfulFormatter(use_colors=True)

    line = formatter.format(
        _record("server_audit.services.session", "Opening SSH connection to root@10.0.0.5:22")
    )

    assert "\033[95mroot@10.0.0.5:22\033[0m" in line
