"""Citation scanning: extract, scan, aggregate."""

from pkgcite.citations.aggregator import AggregationResult, CitationAggregator
from pkgcite.citations.extractor import extract_citations, extract_description
from pkgcite.citations.scanner import PackageCitations, PackageScanner
from pkgcite.citations.schemas import (
    AnnotatedClass,
    CitationRecord,
    IdentifierMapping,
)
from pkgcite.citations.scope import ResolutionScope

__all__ = [
    "AggregationResult",
    "AnnotatedClass",
    "CitationAggregator",
    "CitationRecord",
    "IdentifierMapping",
    "PackageCitations",
    "PackageScanner",
    "ResolutionScope",
    "extract_citations",
    "extract_description",
]
