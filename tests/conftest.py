"""Shared fixtures: an in-memory stand-in for the SSH session."""

from pathlib import Path

import pytest

from server_audit.errors import OperationError
from server_audit.models import CommandResult
from server_audit.services.facts import PACKAGE_MANAGERS

OS_RELEASE = "cat /etc/os-release 2>/dev/null || cat /usr/lib/os-release"
DPKG_QUERY = PACKAGE_MANAGERS[0][1]

UBUNTU_RELEASE = """\
PRETTY_NAME="Ubuntu 22.04.3 LTS"
NAME="Ubuntu"
VERSION_ID="22.04"
VERSION_CODENAME=jammy
ID=ubuntu
ID_LIKE=debian
"""

ROCKY_RELEASE = """\
NAME="Rocky Linux"
VERSION_ID="9.3"
ID="rocky"
ID_LIKE="rhel centos fedora"
"""


class FakeSession:
    """Session that answers commands from a table.

    Unknown commands behave like a missing binary (exit 127, no output).
    An Exception value in the table is raised instead of returned.
    """

    def __init__(
        self,
        outputs: dict[str, str | CommandResult | Exception] | None = None,
        files: dict[str, bytes] | None = None,
    ) -> None:
        self.outputs = outputs or {}
        self.files = files or {}
        self.commands: list[str] = []
        self.fetched: list[str] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        outcome = self.outputs.get(command)
        if outcome is None:
            return CommandResult(output="", error="command not found", returncode=127)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, str):
            return CommandResult(output=outcome, error="", returncode=0)
        return outcome

    async def exists(self, path: str) -> bool:
        return path in self.files

    async def fetch(self, remote_path: str, local_path: Path | str) -> bool:
        content = self.files.get(remote_path)
        if content is None:
            return False
        if isinstance(content, Exception):
            raise content
        Path(local_path).write_bytes(content)
        self.fetched.append(remote_path)
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def debian_session() -> FakeSession:
    """A Debian-family host with a few tools answering."""
    return FakeSession(
        outputs={
            OS_RELEASE: UBUNTU_RELEASE,
            "hostname": "web01",
            "command -v dpkg-query": "/usr/bin/dpkg-query",
            DPKG_QUERY: "bash\t5.1-6ubuntu1\tamd64\tinstalled\n",
            "dpkg -l": "ii  bash  5.1-6ubuntu1  amd64  GNU Bourne Again SHell\n",
            "df -h": "Filesystem  Size  Used Avail Use% Mounted on\n/dev/sda1  20G  5G  15G  25% /\n",
            "ss -tulpn": CommandResult(output="", error="ss: permission denied", returncode=1),
            "lsblk -o NAME,FSTYPE,SIZE,MOUNTPOINT,TYPE": OperationError("lsblk", "timed out"),
        },
        files={
            "/etc/hosts": b"127.0.0.1 localhost\n",
            "/etc/ssh/sshd_config": b"PermitRootLogin no\n",
        },
    )


@pytest.fixture
def redhat_session() -> FakeSession:
    """A RedHat-family host."""
    return FakeSession(
        outputs={
            OS_RELEASE: ROCKY_RELEASE,
            "rpm -qa": "bash-5.1.8-6.el9.x86_64\n",
        },
    )


@pytest.fixture
def empty_session() -> FakeSession:
    """A host where every command is missing."""
    return FakeSession()


@pytest.fixture
def make_session() -> type[FakeSession]:
    """Factory for sessions with custom command tables."""
    return FakeSession
