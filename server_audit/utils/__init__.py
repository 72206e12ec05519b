"""Utilities for server-audit."""

from server_audit.utils.console import ColorfulFormatter
from server_audit.utils.shell import decode_output, quote_path
from server_audit.utils.validation import validate_host, validate_port, validate_user

__all__ = [
    "ColorfulFormatter",
    "decode_output",
    "quote_path",
    "validate_host",
    "validate_port",
    "validate_user",
]
