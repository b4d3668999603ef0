from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_DECOY_PREFIX = "decoy_"
DEFAULT_THREADS = 1
DEFAULT_MIN_PROBABILITY = 0.05
DEFAULT_ENZYME = "Trypsin"


def _find_tool(name: str) -> Optional[str]:
    """Look in $TPP_BIN first, then on PATH."""
    tpp_bin = os.environ.get("TPP_BIN", "").strip()
    if tpp_bin:
        candidate = Path(tpp_bin) / name
        if candidate.exists():
            return str(candidate)
    return shutil.which(name)


@dataclass
class PipelineConfig:
    """
    Lightweight wrapper for YAML config.
    Missing keys fall back to the module defaults.
    """
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def database(self) -> Optional[str]:
        return self.raw.get("database")

    @property
    def enzyme(self) -> str:
        return str(self.raw.get("enzyme", DEFAULT_ENZYME))

    @property
    def decoy_prefix(self) -> str:
        return str(self.raw.get("decoy_prefix", DEFAULT_DECOY_PREFIX))

    @property
    def threads(self) -> int:
        return int(self.raw.get("threads", DEFAULT_THREADS))

    @property
    def min_probability(self) -> float:
        return float(self.raw.get("min_probability", DEFAULT_MIN_PROBABILITY))

    @property
    def xinteract(self) -> Optional[str]:
        return self._section("tools").get("xinteract") or _find_tool("xinteract")

    @property
    def proteinprophet(self) -> Optional[str]:
        return self._section("tools").get("proteinprophet") or _find_tool("ProteinProphet")

    @property
    def workspace_root(self) -> Optional[str]:
        return self._section("workspace").get("root")

    @property
    def poll_interval(self) -> float:
        return float(self._section("supervisor").get("poll_interval", 1.0))

    @property
    def kill_grace(self) -> float:
        return float(self._section("supervisor").get("kill_grace", 5.0))


def load_config(path: Optional[Path]) -> PipelineConfig:
    """
    Load user YAML config into a PipelineConfig instance.
    """
    if path is None:
        return PipelineConfig(raw={})
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must contain a YAML mapping")
    return PipelineConfig(raw=data)


def default_config_text() -> str:
    return f"""# ppinfer configuration
# FASTA database with target and decoy entries
database: null
# Enzyme code (T, S, C, ...) or name (Trypsin, AspN, ...); see `ppinfer enzymes`
enzyme: {DEFAULT_ENZYME}
decoy_prefix: {DEFAULT_DECOY_PREFIX}
threads: {DEFAULT_THREADS}
# ProteinProphet MINPROB
min_probability: {DEFAULT_MIN_PROBABILITY}

tools:
  # Leave empty to use $TPP_BIN or PATH
  xinteract: null
  proteinprophet: null

workspace:
  # Scratch directories are created here (default: system temp dir)
  root: null

supervisor:
  poll_interval: 1.0
  kill_grace: 5.0
"""
