from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, List, Mapping, Sequence, Tuple

from .enzymes import ENZYMES, EnzymeSpec
from .errors import UnknownEnzymeError, UnreadableInputError, WorkspaceError
from .utils import ensure_dir

ENZYME_MARKER = "<sample_enzyme"
RUN_SUMMARY_MARKER = "<msms_run_summary"
ENGINE_SUFFIX = "-correct"

# One code point per byte: untouched text keeps the bytes of whatever
# encoding the pepXML declares (ISO-8859-1, UTF-8, ...).
PEPXML_CODEC = "latin-1"

_SEARCH_ENGINE_RE = re.compile(r'search_engine="([^"]*)"')


def _lookup_enzyme(enzyme_code: str, enzymes: Mapping[str, EnzymeSpec]) -> EnzymeSpec:
    try:
        return enzymes[enzyme_code]
    except KeyError:
        raise UnknownEnzymeError(f"Unknown enzyme code: {enzyme_code!r}") from None


def _tag_search_engine(line: str) -> str:
    """Suffix every search_engine value once, so TPP does not re-apply its own fixes."""

    def repl(m: re.Match) -> str:
        value = m.group(1)
        if value.endswith(ENGINE_SUFFIX):
            return m.group(0)
        return f'search_engine="{value}{ENGINE_SUFFIX}"'

    return _SEARCH_ENGINE_RE.sub(repl, line)


def _read_lines(path: Path) -> Iterator[str]:
    """Yield lines with their own endings; any read error is an UnreadableInputError."""
    try:
        with path.open("r", encoding=PEPXML_CODEC, newline="") as f:
            yield from f
    except OSError as e:
        raise UnreadableInputError(f"Cannot read input file {path}: {e}") from e


def _split_eol(line: str) -> Tuple[str, str]:
    body = line.rstrip("\r\n")
    return body, line[len(body):]


def _has_enzyme_block(path: Path) -> bool:
    return any(ENZYME_MARKER in line for line in _read_lines(path))


def sanitize_input(
    path: Path,
    enzyme_code: str,
    dest_dir: Path,
    enzymes: Mapping[str, EnzymeSpec] = ENZYMES,
    dest_name: str | None = None,
) -> Path:
    """
    Copy one pepXML file into dest_dir, correcting it on the way:
      - search_engine="X" becomes search_engine="X-correct"
      - a <sample_enzyme> block is added after each <msms_run_summary ...> line
        when the file declares none

    All other bytes, line endings included, are copied unchanged. The original
    file is never modified; a new file is always written.

    Raises UnreadableInputError if the input cannot be read and WorkspaceError
    if the copy cannot be written.
    """
    spec = _lookup_enzyme(enzyme_code, enzymes)
    path = Path(path)
    out_path = Path(dest_dir) / (dest_name or path.name)

    contains_enzyme = _has_enzyme_block(path)
    injected = 0
    try:
        ensure_dir(out_path.parent)
        with out_path.open("w", encoding=PEPXML_CODEC, newline="") as oh:
            for line in _read_lines(path):
                body, eol = _split_eol(line)
                oh.write(_tag_search_engine(body) + eol)
                if not contains_enzyme and RUN_SUMMARY_MARKER in body:
                    block = spec.to_pepxml().replace("\n", eol or "\n")
                    oh.write(block + eol if eol else "\n" + block)
                    injected += 1
    except UnreadableInputError:
        raise
    except OSError as e:
        raise WorkspaceError(f"Cannot write sanitized copy {out_path}: {e}") from e

    if injected:
        print(f"[Sanitizer] {path} needs to add the enzyme tag ({spec.name}).")
    return out_path


def sanitize_inputs(
    paths: Sequence[Path],
    enzyme_code: str,
    dest_dir: Path,
    enzymes: Mapping[str, EnzymeSpec] = ENZYMES,
) -> List[Path]:
    """Sanitize every input into dest_dir, keeping input order."""
    _lookup_enzyme(enzyme_code, enzymes)

    out: List[Path] = []
    used: set[str] = set()
    for p in paths:
        p = Path(p)
        name = p.name
        n = 0
        while name in used:
            n += 1
            name = f"{n}_{p.name}"
        used.add(name)
        out.append(sanitize_input(p, enzyme_code, dest_dir, enzymes, dest_name=name))
    return out
