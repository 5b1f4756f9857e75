"""Run orchestration: list packages, optionally install, scan, export."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pkgcite.citations.aggregator import (
    AggregationResult,
    CitationAggregator,
    PackageCallback,
)
from pkgcite.citations.scanner import PackageScanner
from pkgcite.citations.scope import ResolutionScope
from pkgcite.config import Settings
from pkgcite.export.json_export import (
    build_citations_json,
    write_citations_json,
)
from pkgcite.lookup.crossref import CrossRefClient
from pkgcite.registry.installer import collect_packages, install_or_update_all
from pkgcite.registry.protocols import PackageRegistry
from pkgcite.registry.schemas import PackageInfo

logger = logging.getLogger(__name__)


@dataclass
class ScanRun:
    """Packages that were considered and what scanning them found."""

    packages: dict[str, PackageInfo] = field(
        default_factory=lambda: dict[str, PackageInfo]()
    )
    result: AggregationResult = field(default_factory=AggregationResult)


def run_scan(
    settings: Settings,
    registry: PackageRegistry,
    *,
    install_all: bool = False,
    scope: ResolutionScope | None = None,
    on_package: PackageCallback | None = None,
) -> ScanRun:
    """Scan every installed and available package for citations.

    Raises RegistryUnavailableError if the package list cannot be
    retrieved, and ArtifactMissingError / ClassLoadError if a package
    cannot be scanned.
    """
    packages = collect_packages(registry)

    if install_all:
        install_or_update_all(registry, packages)

    owns_scope = scope is None
    active_scope = scope if scope is not None else ResolutionScope()
    try:
        scanner = PackageScanner(active_scope, settings)
        aggregator = CitationAggregator(
            registry,
            scanner,
            active_scope,
            core_packages=settings.core_package_names,
            on_package=on_package,
        )
        result = aggregator.process(packages)
    finally:
        if owns_scope:
            active_scope.clear()

    logger.info(
        "event=scan_complete packages=%d processed=%d cited=%d",
        len(packages),
        len(result.packages),
        result.total_citations,
    )
    return ScanRun(packages=packages, result=result)


def export_citations(
    result: AggregationResult,
    settings: Settings,
    path: Path,
    client: CrossRefClient | None = None,
) -> None:
    """Look up every unique DOI and write the JSON citation list."""
    owns_client = client is None
    active_client = client or CrossRefClient(settings)
    try:
        payload = build_citations_json(
            result.unique_identifiers(), active_client
        )
    finally:
        if owns_client:
            active_client.close()
    write_citations_json(payload, path)
