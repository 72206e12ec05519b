"""Tests for the sequential audit runner."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from server_audit.errors import AuditConnectionError, OperationError
from server_audit.models import AuditRun, AuditTarget, CommandResult, OperationKind
from server_audit.protocols import RemoteSession
from server_audit.services import runner as runner_module
from server_audit.services.runner import AuditRunner
from server_audit.services.session import SSHSession
from server_audit.services.sink import ResultSink

HOST = "10.0.0.5"

EXPECTED_FILES = [
    f"facts_{HOST}.json",
    f"packages_{HOST}.json",
    f"services_{HOST}.json",
    f"services_running_{HOST}.txt",
    f"listening_ports_{HOST}.txt",
    f"lsblk_{HOST}.txt",
    f"df_{HOST}.txt",
    f"top_cpu_{HOST}.txt",
    f"top_mem_{HOST}.txt",
]


def make_runner(session, tmp_path: Path) -> AuditRunner:
    target = AuditTarget(host=HOST, user="root")
    report_dir = tmp_path / "report"
    report_dir.mkdir(parents=True)
    run = AuditRun(target=target, output_dir=tmp_path, report_dir=report_dir)
    return AuditRunner(run, session, ResultSink(report_dir, HOST))


@pytest.mark.asyncio
async def test_debian_run_writes_every_artifact(debian_session, tmp_path: Path) -> None:
    """All JSON and text artifacts are written for a Debian host."""
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    report = run.report_dir
    for name in EXPECTED_FILES:
        assert (report / name).is_file(), name
    assert (report / f"packages_dpkg_{HOST}.txt").is_file()
    assert not (report / f"packages_rpm_{HOST}.txt").exists()

    facts = json.loads((report / f"facts_{HOST}.json").read_text())
    assert facts["os_family"] == "Debian"
    assert facts["hostname"] == "web01"

    packages = json.loads((report / f"packages_{HOST}.json").read_text())
    assert packages["bash"][0]["version"] == "5.1-6ubuntu1"


@pytest.mark.asyncio
async def test_failed_commands_do_not_abort_run(debian_session, tmp_path: Path) -> None:
    """Non-zero exits and channel failures leave empty files and the run goes on."""
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    report = run.report_dir
    # ss exited 1, lsblk raised: both still produce (empty) files
    assert (report / f"listening_ports_{HOST}.txt").read_text() == ""
    assert (report / f"lsblk_{HOST}.txt").read_text() == ""
    # operations after the failures still ran
    assert (report / f"df_{HOST}.txt").read_text().startswith("Filesystem")
    assert (report / f"top_mem_{HOST}.txt").exists()

    failed = [r.operation.name for r in run.failed]
    assert failed == ["lsblk"]


@pytest.mark.asyncio
async def test_nonzero_exit_keeps_stdout(debian_session, tmp_path: Path) -> None:
    """Captured stdout is written even when the command exits non-zero."""
    debian_session.outputs["df -h"] = CommandResult(
        output="partial table\n", error="df: /mnt: Stale handle", returncode=1
    )
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    assert (run.report_dir / f"df_{HOST}.txt").read_text() == "partial table\n"


@pytest.mark.asyncio
async def test_undecodable_output_does_not_stop_later_operations(tmp_path: Path) -> None:
    """A process title with invalid UTF-8 is written and the run carries on."""
    replies = {
        "ps aux --sort=-%cpu | head -n 50": b"USER PID COMMAND\nroot 42 worker \xff\xfe\n",
        "ps aux --sort=-rss | head -n 50": b"USER PID RSS\n",
        "df -h": b"Filesystem Size\n",
    }

    async def remote_run(command: str, **kwargs):
        if command in replies:
            return MagicMock(stdout=replies[command], stderr=b"", returncode=0)
        return MagicMock(stdout=b"", stderr=b"not found", returncode=127)

    conn = MagicMock()
    conn.run = AsyncMock(side_effect=remote_run)
    conn.wait_closed = AsyncMock()
    runner = make_runner(SSHSession(AuditTarget(host=HOST, user="root")), tmp_path)

    with patch("asyncssh.connect", new_callable=AsyncMock, return_value=conn):
        run = await runner.execute()

    report = run.report_dir
    assert (report / f"top_cpu_{HOST}.txt").read_text() == (
        "USER PID COMMAND\nroot 42 worker \ufffd\ufffd\n"
    )
    assert (report / f"top_mem_{HOST}.txt").read_text() == "USER PID RSS\n"
    assert (report / f"df_{HOST}.txt").read_text() == "Filesystem Size\n"
    assert run.failed == []
    assert all(call.kwargs["encoding"] is None for call in conn.run.call_args_list)


@pytest.mark.asyncio
async def test_only_existing_configs_are_fetched(debian_session, tmp_path: Path) -> None:
    """Config candidates missing remotely produce no file."""
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    configs = run.configs_dir
    assert sorted(p.name for p in configs.iterdir()) == ["hosts", "sshd_config"]
    assert (configs / "hosts").read_bytes() == b"127.0.0.1 localhost\n"


@pytest.mark.asyncio
async def test_fetch_failure_is_not_fatal(debian_session, tmp_path: Path) -> None:
    """A failing transfer is recorded and later fetches still happen."""
    debian_session.files["/etc/ssh/sshd_config"] = OperationError(
        "fetch /etc/ssh/sshd_config", "permission denied"
    )
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    assert not (run.configs_dir / "sshd_config").exists()
    assert (run.configs_dir / "hosts").exists()
    assert "config:/etc/ssh/sshd_config" in [r.operation.name for r in run.failed]


@pytest.mark.asyncio
async def test_redhat_run_lists_rpm_only(redhat_session, tmp_path: Path) -> None:
    """RedHat family gets the rpm listing and never the dpkg one."""
    runner = make_runner(redhat_session, tmp_path)

    run = await runner.execute()

    report = run.report_dir
    assert (report / f"packages_rpm_{HOST}.txt").read_text() == "bash-5.1.8-6.el9.x86_64\n"
    assert not (report / f"packages_dpkg_{HOST}.txt").exists()


@pytest.mark.asyncio
async def test_unknown_family_lists_neither(empty_session, tmp_path: Path) -> None:
    """An unrecognized OS family skips both raw package listings."""
    runner = make_runner(empty_session, tmp_path)

    run = await runner.execute()

    report = run.report_dir
    assert not (report / f"packages_dpkg_{HOST}.txt").exists()
    assert not (report / f"packages_rpm_{HOST}.txt").exists()
    assert "dpkg -l" not in runner.session.commands
    assert "rpm -qa" not in runner.session.commands
    # collectors that found nothing still write an empty mapping
    assert json.loads((report / f"packages_{HOST}.json").read_text()) == {}


@pytest.mark.asyncio
async def test_failed_collector_writes_empty_json(
    debian_session, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A structured collector that fails leaves '{}' behind."""
    monkeypatch.setitem(
        runner_module.COLLECTORS,
        OperationKind.SERVICES,
        AsyncMock(side_effect=OperationError("services", "channel closed")),
    )
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    assert json.loads((run.report_dir / f"services_{HOST}.json").read_text()) == {}
    assert (run.report_dir / f"services_running_{HOST}.txt").exists()


@pytest.mark.asyncio
async def test_operations_run_in_order(debian_session, tmp_path: Path) -> None:
    """Facts come first, then packages, then the OS listing."""
    runner = make_runner(debian_session, tmp_path)

    run = await runner.execute()

    names = [op.name for op in run.operations]
    assert names[:4] == ["facts", "packages", "packages_dpkg", "services"]
    assert names[-1] == "config:/etc/resolv.conf"
    assert len(run.results) == len(run.operations)


@pytest.mark.asyncio
async def test_session_closed_after_run(debian_session, tmp_path: Path) -> None:
    """The session is closed once all operations finished."""
    runner = make_runner(debian_session, tmp_path)

    await runner.execute()

    assert debian_session.connected
    assert debian_session.closed


@pytest.mark.asyncio
async def test_connection_failure_is_fatal(tmp_path: Path) -> None:
    """A connection error propagates and nothing is written."""
    session = AsyncMock()
    session.connect.side_effect = AuditConnectionError("root@10.0.0.5:22", OSError("refused"))
    runner = make_runner(session, tmp_path)

    with pytest.raises(AuditConnectionError):
        await runner.execute()

    assert list(runner.run.report_dir.iterdir()) == []
    session.run.assert_not_called()


@pytest.mark.asyncio
async def test_two_runs_produce_same_file_set(debian_session, tmp_path: Path) -> None:
    """Repeated runs yield structurally identical outputs."""
    first = await make_runner(debian_session, tmp_path / "a").execute()
    second = await make_runner(debian_session, tmp_path / "b").execute()

    def names(run: AuditRun) -> list[str]:
        return [str(p.relative_to(run.report_dir)) for p in ResultSink(run.report_dir, HOST).listing()]

    assert names(first) == names(second)


def test_sessions_satisfy_remote_session(debian_session) -> None:
    """The fake and the asyncssh-backed session share one contract."""
    assert isinstance(debian_session, RemoteSession)
    assert isinstance(SSHSession(AuditTarget(host=HOST, user="root")), RemoteSession)
