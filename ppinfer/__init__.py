"""Protein inference over pepXML files with TPP xinteract + ProteinProphet."""

__version__ = "0.1.0"
