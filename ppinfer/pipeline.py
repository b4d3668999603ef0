from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import IO, List, Optional, Sequence

from .errors import LaunchError, StageFailure
from .models import JobRequest, PipelineRun, PipelineState, StageRecord
from .runner import ProcessLauncher, SubprocessLauncher, kill_process, terminate_process
from .utils import timing, write_cmd

XINTERACT_OUT = "xinteractout.pep.xml"
# xinteract -i runs iProphet and writes <name>.ipro.pep.xml next to <name>.pep.xml
IPROPHET_OUT = "xinteractout.ipro.pep.xml"
PROTXML_OUT = "proteinprophet.protXML"
EXCEL_OUT = "proteinprophet.xls"

STAGE_XINTERACT = "xinteract"
STAGE_PROTEINPROPHET = "ProteinProphet"


def build_xinteract_cmd(request: JobRequest, inputs: Sequence[Path], workdir: Path) -> List[str]:
    cmd = [
        str(request.xinteract),
        f"-D{request.database}",
        f"-e{request.enzyme}",
        "-nP",
        "-Ot",
        f"-d{request.decoy_prefix}",
        f"-THREADS={int(request.threads)}",
        "-i",
        f"-N{workdir / XINTERACT_OUT}",
    ]
    cmd += [str(p) for p in inputs]
    return cmd


def build_proteinprophet_cmd(request: JobRequest, workdir: Path) -> List[str]:
    return [
        str(request.proteinprophet),
        str(workdir / IPROPHET_OUT),
        str(workdir / PROTXML_OUT),
        "IPROPHET",
        f"MINPROB{float(request.min_probability)}",
        "NOPLOT",
        "EXCELPEPS",
    ]


def _drain(stream: Optional[IO[str]], sink: List[str]) -> None:
    if stream is None:
        return
    with stream:
        for line in iter(stream.readline, ""):
            sink.append(line.rstrip("\r\n"))


class PipelineExecutor:
    """
    Runs xinteract (merge + iProphet) and then ProteinProphet inside one
    workspace. Exit codes are recorded but never trusted: success means the
    protXML report exists once ProteinProphet is done.

    cancel() and kill() are safe to call from another thread while run() is
    executing.
    """

    def __init__(
        self,
        request: JobRequest,
        inputs: Sequence[Path],
        workdir: Path,
        launcher: Optional[ProcessLauncher] = None,
    ):
        self.request = request
        self.inputs = [Path(p) for p in inputs]
        self.workdir = Path(workdir)
        self.launcher = launcher or SubprocessLauncher()
        self.run_state = PipelineRun()
        self.commands_sh = self.workdir / "commands.sh"
        self._lock = threading.Lock()
        self._cancelled = False

    # -------------------------- control --------------------------

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def cancel(self) -> None:
        """Stop before the next launch and send SIGTERM to the live tool."""
        with self._lock:
            self._cancelled = True
            proc = self.run_state.process
        if proc is not None:
            print(f"[PipelineExecutor] Cancel requested, terminating pid {proc.pid}")
            terminate_process(proc)

    def kill(self) -> None:
        with self._lock:
            self._cancelled = True
            proc = self.run_state.process
        if proc is not None:
            print(f"[PipelineExecutor] Killing pid {proc.pid}")
            kill_process(proc)

    # -------------------------- stages --------------------------

    def _run_stage(self, name: str, cmd: List[str], state: PipelineState) -> bool:
        """
        Launch one tool and block until it exits with both pipes drained.
        Returns False if the stage was not launched (cancelled or launch error).
        """
        with self._lock:
            if self._cancelled:
                self.run_state.state = PipelineState.CANCELLED
                return False
            record = StageRecord(stage=name, cmd=cmd)
            self.run_state.stages.append(record)
            write_cmd(self.commands_sh, SubprocessLauncher.cmd_to_shell(cmd))
            try:
                proc = self.launcher.launch(cmd, self.workdir)
            except OSError as e:
                err = LaunchError(f"Failed to start {name} ({cmd[0]}): {e}")
                record.stderr.append(str(err))
                self.run_state.error = str(err)
                self.run_state.state = PipelineState.FAILED
                print(f"[PipelineExecutor] ERROR: {err}")
                return False
            record.pid = proc.pid
            record.started_at = time.time()
            self.run_state.process = proc
            self.run_state.state = state

        print(f"[PipelineExecutor] {name} started (pid {proc.pid})")
        with ThreadPoolExecutor(max_workers=2) as ex:
            out_f = ex.submit(_drain, proc.stdout, record.stdout)
            err_f = ex.submit(_drain, proc.stderr, record.stderr)
            record.returncode = proc.wait()
            out_f.result()
            err_f.result()
        record.finished_at = time.time()

        with self._lock:
            self.run_state.process = None
        print(f"[PipelineExecutor] {name} exited with code {record.returncode}")
        return True

    @timing(STAGE_XINTERACT)
    def run_xinteract(self) -> bool:
        cmd = build_xinteract_cmd(self.request, self.inputs, self.workdir)
        return self._run_stage(STAGE_XINTERACT, cmd, PipelineState.STAGE_ONE_RUNNING)

    @timing(STAGE_PROTEINPROPHET)
    def run_proteinprophet(self) -> bool:
        cmd = build_proteinprophet_cmd(self.request, self.workdir)
        return self._run_stage(STAGE_PROTEINPROPHET, cmd, PipelineState.STAGE_TWO_RUNNING)

    # -------------------------- driver --------------------------

    def _finish_cancelled(self) -> PipelineRun:
        self.run_state.state = PipelineState.CANCELLED
        self.run_state.report_path = None
        self.run_state.summary_path = None
        print("[PipelineExecutor] Cancelled")
        return self.run_state

    def run(self) -> PipelineRun:
        if not self.run_xinteract():
            if self.run_state.state is PipelineState.CANCELLED:
                return self._finish_cancelled()
            return self.run_state
        if self.cancelled:
            return self._finish_cancelled()

        if not (self.workdir / IPROPHET_OUT).exists():
            print(f"[PipelineExecutor] WARNING: xinteract did not write {IPROPHET_OUT}; running ProteinProphet anyway")

        if not self.run_proteinprophet():
            if self.run_state.state is PipelineState.CANCELLED:
                return self._finish_cancelled()
            return self.run_state
        if self.cancelled:
            return self._finish_cancelled()

        report = self.workdir / PROTXML_OUT
        if report.exists():
            self.run_state.report_path = report
            self.run_state.summary_path = self.workdir / EXCEL_OUT
            self.run_state.state = PipelineState.SUCCEEDED
        else:
            err = StageFailure(f"ProteinProphet did not create {report}")
            self.run_state.error = str(err)
            self.run_state.state = PipelineState.FAILED
            print(f"[PipelineExecutor] ERROR: {err}")
        return self.run_state
