from __future__ import annotations

from pathlib import Path
from typing import Tuple

import pandas as pd
from Bio import SeqIO

PROBABILITY_COLUMN = "protein probability"


def load_protein_table(xls_path: Path) -> pd.DataFrame:
    """
    Read the tab-separated ProteinProphet EXCELPEPS output (*.xls).

    A missing, empty or unparsable file gives an empty DataFrame so callers can
    report "0 proteins" instead of crashing after a successful run.
    """
    xls_path = Path(xls_path)
    if not xls_path.exists() or xls_path.stat().st_size == 0:
        return pd.DataFrame()
    try:
        df = pd.read_csv(xls_path, sep="\t")
    except (pd.errors.EmptyDataError, pd.errors.ParserError):
        return pd.DataFrame()
    df.columns = [str(c).strip() for c in df.columns]
    return df


def count_confident_proteins(df: pd.DataFrame, min_probability: float) -> int:
    if df is None or df.empty or PROBABILITY_COLUMN not in df.columns:
        return 0
    probs = pd.to_numeric(df[PROBABILITY_COLUMN], errors="coerce")
    return int((probs >= float(min_probability)).sum())


def count_decoys(fasta: Path, decoy_prefix: str) -> Tuple[int, int]:
    """Return (targets, decoys) for a FASTA database, decoys by header prefix."""
    targets = 0
    decoys = 0
    for rec in SeqIO.parse(str(fasta), "fasta"):
        if decoy_prefix and rec.id.startswith(decoy_prefix):
            decoys += 1
        else:
            targets += 1
    return targets, decoys
