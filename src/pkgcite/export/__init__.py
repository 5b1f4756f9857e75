"""Report and export formats for scan results."""

from pkgcite.export.json_export import (
    build_citations_json,
    write_citations_json,
)
from pkgcite.export.report import format_package, summary

__all__ = [
    "build_citations_json",
    "format_package",
    "summary",
    "write_citations_json",
]
