"""
Where: cgibridge/gateway/tests/test_process_invoker.py
What: Tests for the per-request CGI process lifecycle.
Why: Body delivery, failure mapping and child cleanup are the risky parts.
"""

import asyncio
import os
from pathlib import Path

import pytest

from cgibridge.gateway.core.exceptions import CgiTimeoutError, SpawnError
from cgibridge.gateway.services.process_invoker import ProcessInvoker


def _process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


@pytest.fixture
def count_stdin_script(cgi_script):
    return cgi_script(
        """
        import sys

        data = sys.stdin.buffer.read()
        sys.stdout.write("Content-Type: text/plain\\n\\n%d" % len(data))
        """
    )


@pytest.mark.asyncio
async def test_body_bytes_reach_stdin_exactly(count_stdin_script, tmp_path):
    invoker = ProcessInvoker(count_stdin_script, str(tmp_path))
    body = os.urandom(3 * 1024 * 1024 + 17)

    outcome = await invoker.invoke({}, body)

    assert outcome.returncode == 0
    assert outcome.stdout.endswith(b"\n\n%d" % len(body))


@pytest.mark.asyncio
async def test_no_body_means_empty_stdin(count_stdin_script, tmp_path):
    invoker = ProcessInvoker(count_stdin_script, str(tmp_path))

    outcome = await asyncio.wait_for(invoker.invoke({}, None), timeout=10)

    assert outcome.stdout.endswith(b"\n\n0")


@pytest.mark.asyncio
async def test_environment_and_working_directory(cgi_script, tmp_path):
    script = cgi_script(
        """
        import os

        print("Content-Type: text/plain")
        print()
        print(os.environ["REQUEST_METHOD"])
        print(os.getcwd())
        print(os.environ.get("PATH", "<unset>"))
        """
    )
    workdir = tmp_path / "work"
    workdir.mkdir()

    inherited = await ProcessInvoker(script, str(workdir)).invoke({"REQUEST_METHOD": "GET"})
    lines = inherited.stdout.decode().splitlines()
    assert lines[2] == "GET"
    assert Path(lines[3]).resolve() == workdir.resolve()
    assert lines[4] == os.environ.get("PATH", "<unset>")

    isolated = await ProcessInvoker(script, str(workdir), inherit_env=False).invoke(
        {"REQUEST_METHOD": "PUT"}
    )
    lines = isolated.stdout.decode().splitlines()
    assert lines[2] == "PUT"
    assert lines[4] == "<unset>"


@pytest.mark.asyncio
async def test_non_zero_exit_still_returns_output(cgi_script, tmp_path):
    script = cgi_script(
        """
        import sys

        sys.stdout.write("Status: 500 Broken\\n\\n")
        sys.exit(3)
        """
    )

    outcome = await ProcessInvoker(script, str(tmp_path)).invoke({})

    assert outcome.returncode == 3
    assert outcome.stdout == b"Status: 500 Broken\n\n"


@pytest.mark.asyncio
async def test_stderr_is_discarded_unless_debug(cgi_script, tmp_path, capfd):
    script = cgi_script(
        """
        import sys

        sys.stderr.write("diagnostic-on-stderr\\n")
        sys.stdout.write("\\n")
        """
    )

    await ProcessInvoker(script, str(tmp_path), debug=False).invoke({})
    assert "diagnostic-on-stderr" not in capfd.readouterr().err

    await ProcessInvoker(script, str(tmp_path), debug=True).invoke({})
    assert "diagnostic-on-stderr" in capfd.readouterr().err


@pytest.mark.asyncio
async def test_missing_executable_raises_spawn_error(tmp_path):
    invoker = ProcessInvoker(str(tmp_path / "does-not-exist"), str(tmp_path))

    with pytest.raises(SpawnError) as excinfo:
        await invoker.invoke({})

    assert isinstance(excinfo.value.cause, FileNotFoundError)


@pytest.mark.asyncio
async def test_non_executable_file_raises_spawn_error(tmp_path):
    plain = tmp_path / "plain.txt"
    plain.write_text("not a program")
    plain.chmod(0o644)

    with pytest.raises(SpawnError):
        await ProcessInvoker(str(plain), str(tmp_path)).invoke({})


@pytest.mark.asyncio
async def test_missing_working_directory_raises_spawn_error(count_stdin_script, tmp_path):
    invoker = ProcessInvoker(count_stdin_script, str(tmp_path / "no-such-dir"))

    with pytest.raises(SpawnError):
        await invoker.invoke({})


@pytest.mark.skipif(os.geteuid() == 0, reason="root may switch to any user")
@pytest.mark.asyncio
async def test_privilege_drop_failure_raises_spawn_error(count_stdin_script, tmp_path):
    invoker = ProcessInvoker(count_stdin_script, str(tmp_path), uid=0, gid=0)

    with pytest.raises(SpawnError):
        await invoker.invoke({})


@pytest.fixture
def sleeper_script(cgi_script):
    return cgi_script(
        """
        import os
        import time

        with open(os.environ["PID_FILE"], "w") as f:
            f.write(str(os.getpid()))
        time.sleep(30)
        print("Content-Type: text/plain")
        print()
        """
    )


async def _wait_for_pid(pid_file: Path) -> int:
    for _ in range(500):
        if pid_file.exists() and pid_file.read_text():
            return int(pid_file.read_text())
        await asyncio.sleep(0.01)
    raise AssertionError("CGI program never started")


@pytest.mark.asyncio
async def test_timeout_kills_process(sleeper_script, tmp_path):
    pid_file = tmp_path / "timeout.pid"
    invoker = ProcessInvoker(sleeper_script, str(tmp_path), timeout=1.0)

    with pytest.raises(CgiTimeoutError):
        await invoker.invoke({"PID_FILE": str(pid_file)})

    assert not _process_alive(int(pid_file.read_text()))


@pytest.mark.asyncio
async def test_cancellation_kills_process(sleeper_script, tmp_path):
    pid_file = tmp_path / "cancel.pid"
    invoker = ProcessInvoker(sleeper_script, str(tmp_path))

    task = asyncio.create_task(invoker.invoke({"PID_FILE": str(pid_file)}))
    pid = await _wait_for_pid(pid_file)
    assert _process_alive(pid)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not _process_alive(pid)


def test_from_config_copies_settings(make_config):
    gateway_config = make_config(
        CGI_EXECUTABLE="/usr/bin/cgi",
        CGI_WORKING_DIR="/srv",
        RUN_AS_UID=1026,
        RUN_AS_GID=100,
        DEBUG=True,
        CGI_TIMEOUT_SECONDS=12.5,
        CGI_INHERIT_ENV=False,
    )

    invoker = ProcessInvoker.from_config(gateway_config)

    assert invoker.executable == "/usr/bin/cgi"
    assert invoker.working_dir == "/srv"
    assert (invoker.uid, invoker.gid) == (1026, 100)
    assert invoker.debug is True
    assert invoker.timeout == 12.5
    assert invoker.inherit_env is False
