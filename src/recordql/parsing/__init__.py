"""Parsing module for the record declaration language."""

from recordql.parsing.record_parser import DeclarationSet, RecordParser

__all__ = [
    "DeclarationSet",
    "RecordParser",
]
