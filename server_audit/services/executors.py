"""SSH command executors for read-only collection."""

import asyncio
import logging
from pathlib import Path

import asyncssh

from server_audit.models import CommandResult
from server_audit.utils.shell import decode_output, quote_path

logger = logging.getLogger(__name__)


async def run_command(
    conn: asyncssh.SSHClientConnection,
    command: str,
    timeout: int,
) -> CommandResult:
    """Execute a shell command on the remote host.

    Output is read as raw bytes and decoded here, so invalid UTF-8 from the
    target turns into replacement characters instead of a channel error.
    A non-zero exit status is returned in the result, not raised.

    Returns:
        CommandResult with stdout, stderr, and return code.

    Raises:
        asyncio.TimeoutError: If the command runs longer than timeout seconds.
    """
    result = await asyncio.wait_for(
        conn.run(command, check=False, encoding=None), timeout
    )

    returncode = result.returncode if result.returncode is not None else 0

    return CommandResult(
        output=decode_output(result.stdout),
        error=decode_output(result.stderr),
        returncode=returncode,
    )


async def stat_path(
    conn: asyncssh.SSHClientConnection,
    path: str,
    timeout: int,
) -> bool:
    """Check whether a remote path exists.

    Returns:
        True if the path exists (any file type), False otherwise.
    """
    result = await asyncio.wait_for(
        conn.run(f"test -e {quote_path(path)}", check=False, encoding=None),
        timeout,
    )
    return result.returncode == 0


async def _cat_file(
    conn: asyncssh.SSHClientConnection,
    remote_path: str,
    local_path: str,
) -> None:
    result = await conn.run(f"cat {quote_path(remote_path)}", check=False, encoding=None)
    if result.returncode != 0:
        raise OSError(
            f"cat {remote_path} exited with {result.returncode}: "
            f"{decode_output(result.stderr).strip()}"
        )
    Path(local_path).write_bytes(result.stdout or b"")


async def download_file(
    conn: asyncssh.SSHClientConnection,
    remote_path: str,
    local_path: str,
) -> int:
    """Copy a remote file to a local path.

    Uses SFTP; when the target refuses the SFTP subsystem the file is piped
    through `cat` on an exec channel instead.

    Returns:
        Number of bytes written locally.

    Raises:
        asyncssh.SFTPError: If the remote file cannot be read over SFTP.
        OSError: If the fallback read fails or the local file cannot be written.
    """
    try:
        async with conn.start_sftp_client() as sftp:
            await sftp.get(remote_path, local_path)
    except asyncssh.ChannelOpenError as e:
        logger.info("SFTP unavailable (%s), reading %s with cat", e.reason, remote_path)
        await _cat_file(conn, remote_path, local_path)

    dest = Path(local_path)
    return dest.stat().st_size if dest.exists() else 0
