"""Walk every package in dependency order and aggregate cited classes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from pkgcite.citations.scanner import PackageCitations, PackageScanner
from pkgcite.citations.schemas import IdentifierMapping
from pkgcite.citations.scope import ResolutionScope
from pkgcite.constants import CORE_PACKAGES
from pkgcite.registry.installer import find_package
from pkgcite.registry.protocols import PackageRegistry
from pkgcite.registry.schemas import PackageInfo

logger = logging.getLogger(__name__)

type PackageCallback = Callable[[PackageCitations], None]


@dataclass
class AggregationResult:
    """Everything one run found, keyed by package name."""

    total_citations: int = 0
    packages: dict[str, PackageCitations] = field(
        default_factory=lambda: dict[str, PackageCitations]()
    )

    def unique_identifiers(self) -> set[IdentifierMapping]:
        """One entry per (DOI, package, class) triple across all packages."""
        unique: set[IdentifierMapping] = set()
        for package_citations in self.packages.values():
            for mappings in package_citations.identifier_mappings().values():
                unique.update(mappings)
        logger.info("Find %d unique DOIs.", len(unique))
        return unique


class CitationAggregator:
    """Scans each package once, dependencies first.

    Packages named in ``core_packages`` stay resolvable for the whole
    run; every other package is retired from the scope after each
    top-level package and re-added whenever it is needed again.
    """

    def __init__(
        self,
        registry: PackageRegistry,
        scanner: PackageScanner,
        scope: ResolutionScope,
        *,
        core_packages: tuple[str, ...] | frozenset[str] = CORE_PACKAGES,
        on_package: PackageCallback | None = None,
    ) -> None:
        self.registry = registry
        self.scanner = scanner
        self.scope = scope
        self.core_packages = frozenset(n.lower() for n in core_packages)
        self.on_package = on_package

    def process(self, packages: Mapping[str, PackageInfo]) -> AggregationResult:
        """Scan core packages first, then the rest in registry order.

        Scan failures (missing archives, unloadable modules) propagate
        and abort the run.
        """
        result = AggregationResult()
        # stable: registry order holds within core and non-core
        ordered = sorted(
            packages.values(),
            key=lambda p: p.name.lower() not in self.core_packages,
        )
        for pkg in ordered:
            # Dependencies first, one level deep
            for dep_name in pkg.dependencies:
                dep = find_package(packages, dep_name)
                if dep is None:
                    logger.warning(
                        "event=dependency_missing package=%s dependency=%s",
                        pkg.name,
                        dep_name,
                    )
                    continue
                result.total_citations += self._process_one(dep, result)
            result.total_citations += self._process_one(pkg, result)

            self._retire_non_core(result)
        return result

    def _process_one(
        self, pkg: PackageInfo, result: AggregationResult
    ) -> int:
        processed = result.packages.get(pkg.name)
        if processed is not None:
            # Already scanned: only make it resolvable again
            self.scope.add(processed.artifacts)
            return 0

        logger.debug(
            "event=package_scan_start index=%d package=%s",
            len(result.packages) + 1,
            pkg.name,
        )
        package_citations = self.scanner.scan_package(
            pkg.name, self.registry.package_dir(pkg)
        )
        result.packages[pkg.name] = package_citations
        if self.on_package is not None:
            self.on_package(package_citations)
        return package_citations.cited_count

    def _retire_non_core(self, result: AggregationResult) -> None:
        for name, package_citations in result.packages.items():
            if name.lower() in self.core_packages:
                continue
            self.scope.remove(package_citations.artifacts)
