"""Starting binaries, building Go packages and running docker containers."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Sequence


class ProcessError(Exception):
    """Raised when an external program cannot be started or fails."""


def _run_combined(command: Sequence[str]) -> tuple[int, str]:
    try:
        done = subprocess.run(
            list(command), stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False
        )
    except OSError as exc:
        raise ProcessError(f"{command[0]}: {exc}") from exc
    output = done.stdout or b""
    if isinstance(output, bytes):
        output = output.decode(errors="replace")
    return done.returncode, output


def run_binary(bin_path: str, *args: str) -> Callable[[], None]:
    """Start ``bin_path`` with ``args`` and return a function that kills it."""
    absolute = os.path.abspath(bin_path)
    try:
        proc = subprocess.Popen([absolute, *args])
    except OSError as exc:
        raise ProcessError(f"{absolute}: {exc}") from exc

    def cancel() -> None:
        if proc.poll() is None:
            proc.kill()
            proc.wait()

    return cancel


def build_go_source(package_path: str, output: str) -> Callable[[], None]:
    """Build a Go package into ``output`` and return a function that removes the binary."""
    code, out = _run_combined(["go", "build", "-o", output, package_path])
    if code != 0:
        raise ProcessError(f"unable to build package: exit status {code} ({out})")

    def cleanup() -> None:
        os.remove(output)

    return cleanup


def run_container(
    image: str, docker_args: Sequence[str], runtime_args: Sequence[str]
) -> Callable[[], None]:
    """Start a detached docker container and return a function that kills it."""
    code, out = _run_combined(["docker", "run", "-d", *docker_args, image, *runtime_args])
    if code != 0:
        raise ProcessError(f"exit status {code}: {out}")
    container_id = out.split("\n")[0]

    def kill() -> None:
        kill_code, kill_out = _run_combined(["docker", "kill", container_id])
        if kill_code != 0:
            raise ProcessError(f"exit status {kill_code}: {kill_out}")

    return kill