from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Optional, Union

from .enzymes import ENZYMES
from .errors import PipelineError
from .models import JobOutcome, JobRequest, JobStatus, PipelineRun, PipelineState
from .pipeline import PipelineExecutor
from .runner import ProcessLauncher
from .sanitizer import sanitize_inputs
from .workspace import ScratchWorkspace

CancelSignal = Union[threading.Event, Callable[[], bool], None]


def _as_predicate(cancel: CancelSignal) -> Callable[[], bool]:
    if cancel is None:
        return lambda: False
    if isinstance(cancel, threading.Event):
        return cancel.is_set
    return cancel


class JobSupervisor:
    """
    Runs a PipelineExecutor on a background worker and watches a caller
    supplied cancel signal every poll_interval seconds.

    Cancellation sends SIGTERM first; if the tool is still alive after
    kill_grace seconds it gets SIGKILL. run() only returns once the worker
    and its child process have finished.
    """

    def __init__(self, executor: PipelineExecutor, poll_interval: float = 1.0, kill_grace: float = 5.0):
        self.executor = executor
        self.poll_interval = float(poll_interval)
        self.kill_grace = float(kill_grace)

    def run(self, cancel: CancelSignal = None) -> PipelineRun:
        is_cancelled = _as_predicate(cancel)

        if is_cancelled():
            self.executor.cancel()

        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="ppinfer-job") as pool:
            future = pool.submit(self.executor.run)
            while True:
                done, _ = wait([future], timeout=self.poll_interval)
                if done:
                    break
                if is_cancelled():
                    print("[JobSupervisor] Cancellation requested")
                    self.executor.cancel()
                    done, _ = wait([future], timeout=self.kill_grace)
                    if not done:
                        self.executor.kill()
                    break
            run = future.result()

        return run


def _outcome(run: PipelineRun, workspace: Optional[Path]) -> JobOutcome:
    if run.state is PipelineState.SUCCEEDED:
        status = JobStatus.SUCCEEDED
    elif run.state is PipelineState.CANCELLED:
        status = JobStatus.CANCELLED
    else:
        status = JobStatus.FAILED
    return JobOutcome(
        status=status,
        stdout="\n".join(run.stdout_lines),
        stderr="\n".join(run.stderr_lines),
        report_path=run.report_path,
        summary_path=run.summary_path,
        workspace=workspace,
        error=run.error,
        run=run,
    )


def run_job(
    request: JobRequest,
    cancel: CancelSignal = None,
    launcher: Optional[ProcessLauncher] = None,
    workspace_root: Optional[Path] = None,
    keep_workspace: bool = False,
    poll_interval: float = 1.0,
    kill_grace: float = 5.0,
) -> JobOutcome:
    """
    Full job: workspace -> sanitized inputs -> xinteract -> ProteinProphet.

    Errors before any tool is launched (bad inputs, no workspace) come back as
    a failed outcome with the message in stderr. On success the workspace is
    left in place for the caller and removed at interpreter exit unless
    keep_workspace is set; otherwise it is removed right away.
    """
    workspace: Optional[ScratchWorkspace] = None
    try:
        request.validate()
        workspace = ScratchWorkspace.create(root=workspace_root)
        inputs = sanitize_inputs(request.inputs, request.enzyme, workspace.path, ENZYMES)
    except PipelineError as e:
        print(f"[JobSupervisor] ERROR: {e}")
        if workspace is not None and not keep_workspace:
            workspace.remove()
        run = PipelineRun(state=PipelineState.FAILED, error=str(e))
        return JobOutcome(
            status=JobStatus.FAILED,
            stdout="",
            stderr=str(e),
            workspace=workspace.path if (workspace is not None and keep_workspace) else None,
            error=str(e),
            run=run,
        )

    executor = PipelineExecutor(request, inputs, workspace.path, launcher=launcher)
    try:
        run = JobSupervisor(executor, poll_interval=poll_interval, kill_grace=kill_grace).run(cancel)
    except BaseException:
        if not keep_workspace:
            workspace.remove()
        raise
    outcome = _outcome(run, workspace.path)

    if not keep_workspace:
        if outcome.succeeded:
            workspace.remove_at_exit()
        else:
            workspace.remove()
            outcome.workspace = None
    print(f"[JobSupervisor] Job {outcome.status.value} (workspace {workspace.path})")
    return outcome
