"""Shell command safety utilities."""

import shlex


def quote_path(path: str) -> str:
    """Safely quote a path for shell commands.

    Args:
        path: File system path to quote

    Returns:
        Shell-safe quoted path
    """
    return shlex.quote(path)


def decode_output(data: str | bytes | None) -> str:
    """Normalize command output to text.

    asyncssh returns str by default but bytes when an encoding of None is
    requested; either way the caller gets a str.
    """
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
