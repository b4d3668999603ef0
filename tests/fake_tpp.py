"""Stand-ins for the TPP executables used by the tests.

Each fake is a small Python script with a shebang pointing at the current
interpreter. Its behaviour comes from a JSON file next to it
(<script>.json) and it reports what happened into log_dir:
  <name>.started.json   argv, pid, start time, helper pid if any
                        (written before any work)
  <name>.finished.json  same plus end time (written just before exit)
"""
from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path
from typing import Any, Dict, Optional

_SCRIPT = r'''
import json
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

_HELPER = (
    "import signal, sys, time\n"
    "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
    "open(sys.argv[1], 'w').close()\n"
    "while True:\n"
    "    time.sleep(0.1)\n"
)

cfg = json.loads(Path(__file__ + ".json").read_text())
log_dir = Path(cfg["log_dir"])
name = Path(__file__).name

if cfg.get("ignore_term"):
    signal.signal(signal.SIGTERM, signal.SIG_IGN)

record = {"argv": sys.argv[1:], "pid": os.getpid(), "start": time.time()}
if cfg.get("helper_ignores_term"):
    # shares stdout and stderr with the leader, like a TPP helper parser
    ready = log_dir / (name + ".helper_ready")
    helper = subprocess.Popen([sys.executable, "-c", _HELPER, str(ready)])
    while not ready.exists():
        time.sleep(0.01)
    record["helper_pid"] = helper.pid
(log_dir / (name + ".started.json")).write_text(json.dumps(record))

if cfg.get("hang"):
    while True:
        time.sleep(0.1)

for i in range(int(cfg.get("noise_lines", 0))):
    sys.stdout.write("progress line %d %s\n" % (i, "." * 100))
    sys.stderr.write("warning line %d %s\n" % (i, "." * 100))

print(name + " done")
print(name + " note", file=sys.stderr)

if cfg.get("write_outputs", True):
    args = sys.argv[1:]
    if cfg["role"] == "xinteract":
        out = [a[2:] for a in args if a.startswith("-N")][0]
        Path(out).write_text("<msms_pipeline_analysis/>\n")
        Path(out.replace(".pep.xml", ".ipro.pep.xml")).write_text("<msms_pipeline_analysis/>\n")
    else:
        report = args[1]
        Path(report).write_text("<protein_summary/>\n")
        Path(report.rsplit(".", 1)[0] + ".xls").write_text(
            "entry no.\tgroup probability\tprotein\tprotein probability\n"
            "1\t1.0\tsp|P00001|PROT_A\t0.99\n"
            "2\t0.6\tsp|P00002|PROT_B\t0.30\n"
        )

record["end"] = time.time()
(log_dir / (name + ".finished.json")).write_text(json.dumps(record))
sys.exit(int(cfg.get("exit_code", 0)))
'''


def make_tool(bin_dir: Path, name: str, role: str, log_dir: Path, **options: Any) -> Path:
    """Write an executable fake tool; role is 'xinteract' or 'proteinprophet'."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    log_dir.mkdir(parents=True, exist_ok=True)
    path = bin_dir / name
    path.write_text(f"#!{sys.executable}\n{_SCRIPT}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    cfg: Dict[str, Any] = {"role": role, "log_dir": str(log_dir)}
    cfg.update(options)
    Path(str(path) + ".json").write_text(json.dumps(cfg), encoding="utf-8")
    return path


def make_tools(root: Path, xinteract: Optional[dict] = None, proteinprophet: Optional[dict] = None):
    """Return (xinteract_path, proteinprophet_path, log_dir) under root."""
    log_dir = root / "tool_logs"
    x = make_tool(root / "bin", "xinteract", "xinteract", log_dir, **(xinteract or {}))
    p = make_tool(root / "bin", "ProteinProphet", "proteinprophet", log_dir, **(proteinprophet or {}))
    return x, p, log_dir


def started(log_dir: Path, name: str) -> Optional[dict]:
    p = log_dir / f"{name}.started.json"
    if not p.exists():
        return None
    return json.loads(p.read_text(encoding="utf-8"))


def finished(log_dir: Path, name: str) -> Optional[dict]:
    p = log_dir / f"{name}.finished.json"
    if not p.exists():
        return None
    return json.loads(p.read_text(encoding="utf-8"))


def pid_alive(pid: int) -> bool:
    """False for exited pids, including orphans left as zombies until init reaps them."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    stat_file = Path(f"/proc/{pid}/stat")
    try:
        fields = stat_file.read_text().rsplit(")", 1)[1].split()
    except FileNotFoundError:
        return False
    except (OSError, IndexError):
        return True
    return fields[0] != "Z"


PEPXML_NO_ENZYME = """<?xml version="1.0" encoding="UTF-8"?>
<msms_pipeline_analysis date="2020-01-01" xmlns="http://regis-web.systemsbiology.net/pepXML">
<msms_run_summary base_name="{base}" raw_data_type="raw" raw_data=".mzML">
<search_summary base_name="{base}" search_engine="Comet" precursor_mass_type="monoisotopic">
</search_summary>
<spectrum_query spectrum="{base}.00001.00001.2" start_scan="1" end_scan="1" assumed_charge="2" index="1">
</spectrum_query>
</msms_run_summary>
</msms_pipeline_analysis>
"""

PEPXML_WITH_ENZYME = """<?xml version="1.0" encoding="UTF-8"?>
<msms_pipeline_analysis date="2020-01-01" xmlns="http://regis-web.systemsbiology.net/pepXML">
<msms_run_summary base_name="{base}" raw_data_type="raw" raw_data=".mzML">
<sample_enzyme name="trypsin">
<specificity cut="KR" no_cut="P" sense="C"/>
</sample_enzyme>
<search_summary base_name="{base}" search_engine="X" precursor_mass_type="monoisotopic">
</search_summary>
</msms_run_summary>
</msms_pipeline_analysis>
"""


def write_pepxml(path: Path, with_enzyme: bool = False) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    template = PEPXML_WITH_ENZYME if with_enzyme else PEPXML_NO_ENZYME
    path.write_text(template.format(base=path.name.split(".")[0]), encoding="utf-8")
    return path
