from __future__ import annotations

import enum
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .enzymes import ENZYMES
from .errors import InputError, UnknownEnzymeError


@dataclass(frozen=True)
class JobRequest:
    """Everything one protein-inference run needs; built once by the caller."""
    inputs: Tuple[Path, ...]
    database: Path
    enzyme: str
    xinteract: Path
    proteinprophet: Path
    decoy_prefix: str = "decoy_"
    threads: int = 1
    min_probability: float = 0.05

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", tuple(Path(p) for p in self.inputs))
        object.__setattr__(self, "database", Path(self.database))
        object.__setattr__(self, "xinteract", Path(self.xinteract))
        object.__setattr__(self, "proteinprophet", Path(self.proteinprophet))

    def validate(self) -> None:
        if not self.inputs:
            raise InputError("At least one pepXML input file is required")
        if self.enzyme not in ENZYMES:
            raise UnknownEnzymeError(f"Unknown enzyme code: {self.enzyme!r}")
        if int(self.threads) < 1:
            raise InputError(f"threads must be a positive integer, got {self.threads}")
        if not 0.0 <= float(self.min_probability) <= 1.0:
            raise InputError(f"min_probability must be within [0, 1], got {self.min_probability}")


class PipelineState(str, enum.Enum):
    NOT_STARTED = "NotStarted"
    STAGE_ONE_RUNNING = "StageOneRunning"
    STAGE_TWO_RUNNING = "StageTwoRunning"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


@dataclass
class StageRecord:
    stage: str
    cmd: List[str]
    pid: Optional[int] = None
    returncode: Optional[int] = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    stdout: List[str] = field(default_factory=list)
    stderr: List[str] = field(default_factory=list)


@dataclass
class PipelineRun:
    state: PipelineState = PipelineState.NOT_STARTED
    process: Optional[subprocess.Popen] = field(default=None, repr=False)
    stages: List[StageRecord] = field(default_factory=list)
    report_path: Optional[Path] = None
    summary_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def stdout_lines(self) -> List[str]:
        return [line for s in self.stages for line in s.stdout]

    @property
    def stderr_lines(self) -> List[str]:
        return [line for s in self.stages for line in s.stderr]

    def stage(self, name: str) -> Optional[StageRecord]:
        for s in self.stages:
            if s.stage == name:
                return s
        return None


class JobStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class JobOutcome:
    status: JobStatus
    stdout: str
    stderr: str
    report_path: Optional[Path] = None
    summary_path: Optional[Path] = None
    workspace: Optional[Path] = None
    error: Optional[str] = None
    run: Optional[PipelineRun] = None

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED
