"""Read citation and description metadata off a class.

Metadata is looked up on the class itself first, then on its
ancestors in MRO order; the first class that declares it wins.
A subclass without its own citations therefore reports exactly
the citations of its nearest cited ancestor.
"""

from __future__ import annotations

from pkgcite.citations.schemas import CitationRecord
from pkgcite.constants import CITATIONS_ATTR, DESCRIPTION_ATTR, UNDOCUMENTED


def _own_or_inherited(cls: type, attr: str) -> object | None:
    for klass in cls.__mro__:
        value = vars(klass).get(attr)
        if value is not None:
            return value
    return None


def extract_citations(cls: type) -> list[CitationRecord]:
    """Citations declared on ``cls`` or inherited; empty if none."""
    found = _own_or_inherited(cls, CITATIONS_ATTR)
    if not found:
        return []
    return [
        record
        for record in found  # type: ignore[union-attr]
        if isinstance(record, CitationRecord)
    ]


def extract_description(cls: type) -> str:
    """Description declared on ``cls`` or inherited, else the placeholder."""
    found = _own_or_inherited(cls, DESCRIPTION_ATTR)
    if isinstance(found, str):
        return found
    return UNDOCUMENTED
