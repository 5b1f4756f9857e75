"""Class decorators that attach citation metadata to model classes.

Plugin packages decorate their ``ModelObject`` subclasses::

    @description("Strict molecular clock")
    @citation("Zuckerkandl & Pauling (1965)", doi="10.1016/B978-1-4832-2734-4.50017-6")
    class StrictClock(ModelObject):
        ...

``citation`` may be stacked; the citations keep source order. A class
that declares its own citations hides the ones of its parents, and a
class without any inherits them (see :mod:`pkgcite.citations.extractor`).
"""

from __future__ import annotations

from collections.abc import Callable

from pkgcite.citations.schemas import CitationRecord
from pkgcite.constants import CITATIONS_ATTR, DESCRIPTION_ATTR


class ModelObject:
    """Marker base class for the platform's extensible model objects.

    Only subclasses of this type (or of whatever ``Settings.marker_class``
    names) are considered by the package scanner.
    """


def citation[T: type](
    text: str, doi: str = ""
) -> Callable[[T], T]:
    """Attach one citation to the decorated class."""
    record = CitationRecord(text=text, identifier=doi)

    def decorate(cls: T) -> T:
        # Only the class's own citations, never the inherited ones
        own: tuple[CitationRecord, ...] = cls.__dict__.get(CITATIONS_ATTR, ())
        # Decorators apply bottom-up, so prepend to keep source order
        setattr(cls, CITATIONS_ATTR, (record, *own))
        return cls

    return decorate


def description[T: type](text: str) -> Callable[[T], T]:
    """Attach a human-readable description to the decorated class."""

    def decorate(cls: T) -> T:
        setattr(cls, DESCRIPTION_ATTR, text)
        return cls

    return decorate
