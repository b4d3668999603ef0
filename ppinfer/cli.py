from __future__ import annotations

import os
import shutil
import signal
import threading
import time
from pathlib import Path
from typing import List, Optional

import typer

from .config import default_config_text, load_config
from .enzymes import ENZYMES, resolve_enzyme
from .errors import UnknownEnzymeError
from .models import JobRequest, JobStatus
from .summary import count_confident_proteins, count_decoys, load_protein_table
from .supervisor import run_job
from .utils import ensure_dir, env_flag

app = typer.Typer(help="ProteinProphet protein inference over pepXML files (TPP xinteract + ProteinProphet)")


def _require_file(p: Path, what: str) -> Path:
    p = p.expanduser().resolve()
    if not p.is_file():
        raise typer.BadParameter(f"{what} not found: {p}")
    return p


def _require_executable(value: Optional[str], what: str) -> Path:
    if not value:
        raise typer.BadParameter(f"{what} executable not configured and not found in $TPP_BIN or PATH")
    p = Path(value).expanduser().resolve()
    if not p.is_file() or not os.access(p, os.X_OK):
        raise typer.BadParameter(f"{what} is not an executable file: {p}")
    return p


def _copy_artifacts(output_dir: Path, *paths: Optional[Path]) -> List[Path]:
    ensure_dir(output_dir)
    copied: List[Path] = []
    for p in paths:
        if p is None or not p.exists():
            continue
        dst = output_dir / p.name
        shutil.copy2(str(p), str(dst))
        copied.append(dst)
    return copied


@app.command()
def run(
    inputs: List[Path] = typer.Argument(..., help="pepXML result files."),
    database: Optional[Path] = typer.Option(None, "--database", "-D", help="FASTA database with decoys."),
    enzyme: Optional[str] = typer.Option(None, help="Enzyme code or name (see `ppinfer enzymes`)."),
    decoy_prefix: Optional[str] = typer.Option(None, help="Decoy protein prefix. Default: decoy_"),
    threads: Optional[int] = typer.Option(None, help="xinteract -THREADS. Default: 1"),
    min_prob: Optional[float] = typer.Option(None, help="ProteinProphet MINPROB. Default: 0.05"),
    xinteract: Optional[Path] = typer.Option(None, help="Path to xinteract. Default: $TPP_BIN or PATH."),
    proteinprophet: Optional[Path] = typer.Option(None, help="Path to ProteinProphet. Default: $TPP_BIN or PATH."),
    config: Optional[Path] = typer.Option(None, help="YAML config (see `ppinfer init-config`)."),
    output_dir: Path = typer.Option(Path("."), help="Copy protXML and xls here when done."),
    workspace_root: Optional[Path] = typer.Option(None, help="Where scratch directories are created."),
    keep_workspace: bool = typer.Option(
        env_flag("PPINFER_KEEP_WORKSPACE"), help="Do not remove the scratch directory."
    ),
    timeout: Optional[float] = typer.Option(None, help="Cancel the job after this many seconds."),
):
    """Run xinteract (with iProphet) and ProteinProphet on INPUTS."""
    cfg = load_config(config)

    input_paths = tuple(_require_file(p, "Input file") for p in inputs)

    db_value = database if database is not None else cfg.database
    if db_value is None:
        raise typer.BadParameter("A FASTA database is required (--database or `database:` in config)")
    db_path = _require_file(Path(db_value), "Database")

    try:
        enzyme_code = resolve_enzyme(enzyme if enzyme is not None else cfg.enzyme)
    except UnknownEnzymeError as e:
        raise typer.BadParameter(str(e))

    request = JobRequest(
        inputs=input_paths,
        database=db_path,
        enzyme=enzyme_code,
        decoy_prefix=decoy_prefix if decoy_prefix is not None else cfg.decoy_prefix,
        threads=threads if threads is not None else cfg.threads,
        min_probability=min_prob if min_prob is not None else cfg.min_probability,
        xinteract=_require_executable(str(xinteract) if xinteract else cfg.xinteract, "xinteract"),
        proteinprophet=_require_executable(
            str(proteinprophet) if proteinprophet else cfg.proteinprophet, "ProteinProphet"
        ),
    )

    targets, decoys = count_decoys(request.database, request.decoy_prefix)
    if decoys == 0:
        typer.echo(
            f"WARNING: no entries with prefix {request.decoy_prefix!r} in {request.database} "
            f"({targets} targets); iProphet needs decoys.",
            err=True,
        )

    cancel = threading.Event()
    deadline = time.monotonic() + timeout if timeout else None

    def cancel_requested() -> bool:
        if deadline is not None and time.monotonic() > deadline:
            cancel.set()
        return cancel.is_set()

    previous = None
    if threading.current_thread() is threading.main_thread():
        previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        outcome = run_job(
            request,
            cancel=cancel_requested,
            workspace_root=workspace_root if workspace_root is not None else cfg.workspace_root,
            keep_workspace=keep_workspace,
            poll_interval=cfg.poll_interval,
            kill_grace=cfg.kill_grace,
        )
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if outcome.stdout:
        typer.echo(outcome.stdout)
    if outcome.stderr:
        typer.echo(outcome.stderr, err=True)

    if outcome.status is JobStatus.CANCELLED:
        typer.echo("Cancelled.")
        raise typer.Exit(code=130)
    if outcome.status is JobStatus.FAILED:
        typer.echo(f"Error while executing ProteinProphet: {outcome.error}", err=True)
        raise typer.Exit(code=1)

    copied = {p.name: p for p in _copy_artifacts(output_dir.resolve(), outcome.report_path, outcome.summary_path)}
    report = copied.get(outcome.report_path.name, outcome.report_path)
    summary = copied.get(outcome.summary_path.name)

    n = count_confident_proteins(load_protein_table(summary), request.min_probability) if summary else 0
    typer.echo(f"protXML: {report}")
    typer.echo(f"Protein table: {summary}")
    typer.echo(f"Proteins with probability >= {request.min_probability}: {n}")
    if keep_workspace:
        typer.echo(f"Workspace: {outcome.workspace}")


@app.command()
def enzymes():
    """List supported enzymes."""
    for code, spec in ENZYMES.items():
        no_cut = spec.no_cut or "-"
        typer.echo(f"{code}\t{spec.display_name}\tcut={spec.cut}\tno_cut={no_cut}\tsense={spec.sense}")


@app.command(name="init-config")
def init_config(
    path: Path = typer.Argument(Path("ppinfer.yaml"), help="Where to write the YAML template."),
    overwrite: bool = typer.Option(False, help="Overwrite an existing file."),
):
    """Write a YAML config template."""
    if path.exists() and not overwrite:
        raise typer.BadParameter(f"{path} exists; use --overwrite to replace it")
    ensure_dir(path.parent)
    path.write_text(default_config_text(), encoding="utf-8")
    typer.echo(f"Config: {path}")


if __name__ == "__main__":
    app()
