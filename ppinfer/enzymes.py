from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping

from .errors import UnknownEnzymeError


@dataclass(frozen=True)
class EnzymeSpec:
    code: str
    display_name: str
    name: str          # pepXML sample_enzyme@name
    cut: str
    no_cut: str
    sense: str         # "C" or "N"

    def to_pepxml(self) -> str:
        """Render the <sample_enzyme> block inserted into a msms_run_summary."""
        return (
            f'\t<sample_enzyme name="{self.name}">\n'
            f'\t\t<specificity cut="{self.cut}" no_cut="{self.no_cut}" sense="{self.sense}"/>\n'
            f"\t</sample_enzyme>"
        )


# Enzyme display names mapped to the xinteract -e codes.
ENZYME_NAME_TO_CODE: Mapping[str, str] = MappingProxyType({
    "Trypsin": "T",
    "StrictTrypsin": "S",
    "Chymotrypsin": "C",
    "RalphTrypsin": "R",
    "AspN": "A",
    "GluC": "G",
    "GluC Bicarb": "B",
    "CNBr": "M",
    "Trypsin/CNBr": "D",
    "Chymotrypsin/AspN/Trypsin": "3",
    "Elastase": "E",
    "LysC / Trypsin_K (cuts after K not before P)": "K",
    "LysN (cuts before K)": "L",
    "LysN Promisc (cuts before KASR)": "P",
    "Nonspecific or None": "N",
})

# code: (pepXML name, cut, no_cut, sense); follows the TPP ProteolyticEnzyme definitions
_SPECIFICITIES = {
    "T": ("trypsin", "KR", "P", "C"),
    "S": ("stricttrypsin", "KR", "", "C"),
    "C": ("chymotrypsin", "FWYL", "P", "C"),
    "R": ("ralphtrypsin", "STKR", "P", "C"),
    "A": ("aspn", "D", "", "N"),
    "G": ("gluc", "DE", "P", "C"),
    "B": ("gluc_bicarb", "E", "P", "C"),
    "M": ("cnbr", "M", "", "C"),
    "D": ("trypsin/cnbr", "KRM", "P", "C"),
    "3": ("tca", "FWYLKR", "P", "C"),
    "E": ("elastase", "ALIV", "P", "C"),
    "K": ("trypsin_k", "K", "P", "C"),
    "L": ("lysn", "K", "", "N"),
    "P": ("lysn_promisc", "KASR", "", "N"),
    "N": ("nonspecific", "ACDEFGHIKLMNPQRSTVWY", "", "C"),
}


def build_enzyme_table() -> Mapping[str, EnzymeSpec]:
    """
    Build the read-only code -> EnzymeSpec table.

    Raises if any enzyme offered by name lacks a specificity, so the table is
    always total over ENZYME_NAME_TO_CODE.
    """
    table: Dict[str, EnzymeSpec] = {}
    for display_name, code in ENZYME_NAME_TO_CODE.items():
        if code not in _SPECIFICITIES:
            raise RuntimeError(f"No specificity defined for enzyme {display_name!r} ({code})")
        name, cut, no_cut, sense = _SPECIFICITIES[code]
        table[code] = EnzymeSpec(
            code=code,
            display_name=display_name,
            name=name,
            cut=cut,
            no_cut=no_cut,
            sense=sense,
        )
    return MappingProxyType(table)


ENZYMES: Mapping[str, EnzymeSpec] = build_enzyme_table()


def resolve_enzyme(value: str, enzymes: Mapping[str, EnzymeSpec] = ENZYMES) -> str:
    """Return the enzyme code for a code or a display name (case-insensitive)."""
    v = (value or "").strip()
    if v in enzymes:
        return v
    for code, spec in enzymes.items():
        if v.lower() in {spec.display_name.lower(), spec.name.lower()}:
            return code
    raise UnknownEnzymeError(
        f"Unknown enzyme: {value!r}. Choose one of: {', '.join(sorted(enzymes))}"
    )
