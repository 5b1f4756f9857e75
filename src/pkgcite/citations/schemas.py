"""Models for the citation scanning data flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pkgcite.constants import DOI_MAPPING_SEPARATOR, UNDOCUMENTED

logger = logging.getLogger(__name__)


class CitationRecord(BaseModel):
    """One bibliographic reference attached to a class."""

    model_config = ConfigDict(frozen=True)

    text: str
    identifier: str | None = None

    @field_validator("identifier", mode="before")
    @classmethod
    def _blank_is_absent(cls, v: object) -> object:
        """An empty or whitespace identifier means there is none."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def simplified_text(self) -> str:
        """Text on a single line: no newlines or tabs, double spaces halved."""
        simple = self.text.replace("\n", "").replace("\t", "")
        return simple.replace("  ", " ")


class AnnotatedClass(BaseModel):
    """A scanned class that carries at least one citation.

    Only ``description`` may change after construction.
    """

    model_config = ConfigDict(validate_assignment=True)

    class_name: str = Field(frozen=True)
    description: str = UNDOCUMENTED
    citations: tuple[CitationRecord, ...] = Field(
        default_factory=tuple, frozen=True
    )

    def citation_block(self) -> str:
        """Each citation on its own line, followed by its DOI if any."""
        block = ""
        for record in self.citations:
            block += record.text + "\n"
            if record.identifier:
                block += record.identifier + "\n"
        return block

    def citation_lines(self, delimiter: str) -> list[str]:
        """One ``doi<delimiter>text`` line per citation."""
        return [
            f"{record.identifier or ''}{delimiter}{record.simplified_text}"
            for record in self.citations
        ]

    def identifiers(self) -> set[str]:
        """Unique DOIs of this class's citations."""
        dois: set[str] = set()
        for record in self.citations:
            if record.identifier:
                dois.add(record.identifier)
            else:
                logger.warning(
                    "event=citation_without_doi class=%s citation=%r",
                    self.class_name,
                    record.simplified_text,
                )
        return dois


@dataclass(frozen=True, order=True)
class IdentifierMapping:
    """Where a DOI is cited: one (identifier, package, class) triple.

    Field order is the sort key, so sorted() gives deterministic output.
    """

    identifier: str
    package_name: str
    class_name: str

    @property
    def name(self) -> str:
        return DOI_MAPPING_SEPARATOR.join(
            (self.identifier, self.package_name, self.class_name)
        )
