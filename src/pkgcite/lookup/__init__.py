"""Bibliographic metadata lookup by DOI."""

from pkgcite.lookup.crossref import CrossRefClient, normalize_doi
from pkgcite.lookup.schemas import WorkRecord

__all__ = ["CrossRefClient", "WorkRecord", "normalize_doi"]
