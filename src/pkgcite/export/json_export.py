"""JSON export: unique DOIs with their CrossRef details."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pkgcite.citations.schemas import IdentifierMapping
from pkgcite.constants import JSON_INDENT
from pkgcite.lookup.crossref import CrossRefClient

logger = logging.getLogger(__name__)


def group_by_doi_and_package(
    mappings: set[IdentifierMapping],
) -> dict[tuple[str, str], list[str]]:
    """(doi, package) -> sorted class names citing that DOI."""
    grouped: dict[tuple[str, str], list[str]] = defaultdict(list)
    for m in sorted(mappings):
        grouped[(m.identifier, m.package_name)].append(m.class_name)
    return dict(grouped)


def build_citations_json(
    mappings: set[IdentifierMapping],
    client: CrossRefClient,
) -> dict[str, Any]:
    """One entry per (DOI, package) with the looked-up record and its classes.

    DOIs whose lookup fails are left out.
    """
    grouped = group_by_doi_and_package(mappings)
    records = client.lookup_records(sorted({doi for doi, _ in grouped}))
    entries: list[dict[str, Any]] = []
    for (doi, package_name), classes in grouped.items():
        record = records.get(doi)
        if record is None:
            continue
        entry = record.model_dump()
        entry["package"] = package_name
        entry["classes"] = [{"class": name} for name in classes]
        entries.append(entry)
    return {
        "generated_at": datetime.now(UTC).isoformat(),
        "citation_count": len(entries),
        "citations": entries,
    }


def write_citations_json(payload: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(payload, indent=JSON_INDENT, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info(
        "event=citations_written path=%s count=%d",
        path,
        payload["citation_count"],
    )
