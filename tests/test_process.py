import os
import subprocess
from unittest import mock

import pytest

from apptoolkit.process import ProcessError, build_go_source, run_binary, run_container


def _done(code, output):
    return subprocess.CompletedProcess(args=[], returncode=code, stdout=output)


def test_run_binary_starts_absolute_path_and_cancel_kills():
    with mock.patch("subprocess.Popen") as popen:
        popen.return_value.poll.return_value = None
        cancel = run_binary("bin/tool", "-v", "--port=1")
        assert popen.call_args.args[0] == [os.path.abspath("bin/tool"), "-v", "--port=1"]
        assert cancel() is None
    assert popen.return_value.kill.call_count == 1
    assert popen.return_value.wait.call_count == 1


def test_run_binary_cancel_after_exit_does_not_kill():
    with mock.patch("subprocess.Popen") as popen:
        popen.return_value.poll.return_value = 0
        cancel = run_binary("bin/tool")
        assert cancel() is None
    assert popen.return_value.kill.call_count == 0


def test_run_binary_missing(tmp_path):
    with pytest.raises(ProcessError):
        run_binary(str(tmp_path / "missing-binary"))


def test_build_go_source_failure():
    with mock.patch("subprocess.run", return_value=_done(1, b"boom")) as run:
        with pytest.raises(ProcessError, match="unable to build package") as info:
            build_go_source("./cmd/app", "app-bin")
    assert "boom" in str(info.value)
    assert run.call_args.args[0] == ["go", "build", "-o", "app-bin", "./cmd/app"]


def test_build_go_source_cleanup_removes_output(tmp_path):
    output = tmp_path / "app-bin"
    output.write_bytes(b"binary")
    with mock.patch("subprocess.run", return_value=_done(0, b"")):
        cleanup = build_go_source("./cmd/app", str(output))
    assert output.exists()
    cleanup()
    assert not output.exists()


def test_run_container_and_kill():
    with mock.patch("subprocess.run", return_value=_done(0, b"abc123\nmore\n")) as run:
        kill = run_container("postgres:latest", ["--rm", "--publish=1:2"], ["-c", "x"])
        assert run.call_args.args[0] == [
            "docker", "run", "-d", "--rm", "--publish=1:2", "postgres:latest", "-c", "x",
        ]
        assert kill() is None
        assert run.call_args.args[0] == ["docker", "kill", "abc123"]


def test_run_container_failure_reports_output():
    with mock.patch("subprocess.run", return_value=_done(125, b"no such image")):
        with pytest.raises(ProcessError, match="no such image"):
            run_container("missing:image", [], [])


def test_run_container_kill_failure():
    outcomes = [_done(0, b"abc123\n"), _done(1, b"no such container")]
    with mock.patch("subprocess.run", side_effect=outcomes):
        kill = run_container("postgres:latest", [], [])
        with pytest.raises(ProcessError, match="no such container"):
            kill()


def test_missing_executable_raises_process_error():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("docker")):
        with pytest.raises(ProcessError, match="docker"):
            run_container("postgres:latest", [], [])