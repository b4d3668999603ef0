from __future__ import annotations

import os
import shlex
import signal
import subprocess
from pathlib import Path
from typing import List, Protocol


class ProcessLauncher(Protocol):
    """Starts one external tool with piped, text-mode stdout and stderr."""

    def launch(self, cmd: List[str], cwd: Path) -> subprocess.Popen:
        ...


_POSIX = os.name == "posix"


class SubprocessLauncher:
    """
    Launcher for the real TPP executables.

    On POSIX every tool gets its own session, so terminate/kill reach the
    whole process group (xinteract spawns helper programs of its own).
    """

    @staticmethod
    def cmd_to_shell(cmd: List[str]) -> str:
        """
        Convert command list to a shell-safe string.
        """
        return " ".join(shlex.quote(str(x)) for x in cmd)

    def launch(self, cmd: List[str], cwd: Path) -> subprocess.Popen:
        return subprocess.Popen(
            [str(x) for x in cmd],
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=_POSIX,
        )


def _signal_group(proc: subprocess.Popen, sig: int) -> None:
    # The leader may already be reaped while helpers in its group still hold the pipes.
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass


def terminate_process(proc: subprocess.Popen) -> None:
    if _POSIX:
        _signal_group(proc, signal.SIGTERM)
    elif proc.poll() is None:
        proc.terminate()


def kill_process(proc: subprocess.Popen) -> None:
    if _POSIX:
        _signal_group(proc, signal.SIGKILL)
    elif proc.poll() is None:
        proc.kill()
