"""Plain-text citation reports: tab-delimited or verbose."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pkgcite.citations.scanner import PackageCitations
from pkgcite.citations.schemas import IdentifierMapping
from pkgcite.constants import TAB
from pkgcite.registry.schemas import PackageInfo


def tabular_lines(package_citations: PackageCitations) -> list[str]:
    """``package<TAB>class<TAB>doi<TAB>citation`` per citation."""
    lines: list[str] = []
    for class_name, cited in package_citations.cited_classes.items():
        for citation in cited.citation_lines(TAB):
            lines.append(
                TAB.join((package_citations.package_name, class_name, citation))
            )
    return lines


def verbose_report(package_citations: PackageCitations) -> str:
    """Human-readable block: class, citations, description."""
    parts: list[str] = [
        f"====== Package : {package_citations.package_name} ======\n"
    ]
    for class_name, cited in package_citations.cited_classes.items():
        parts.append(class_name)
        parts.append(cited.citation_block())
        parts.append(f"Description : {cited.description}\n")
    parts.append(
        f"Find total {package_citations.cited_count} cited classes.\n"
    )
    return "\n".join(parts)


def format_package(
    package_citations: PackageCitations, *, verbose: bool = False
) -> str:
    """Report text for one package ('' when nothing is cited, tabular)."""
    if verbose:
        return verbose_report(package_citations)
    lines = tabular_lines(package_citations)
    return "".join(line + "\n" for line in lines)


def summary(
    packages: Mapping[str, PackageInfo],
    processed: Mapping[str, PackageCitations],
    total_citations: int,
) -> str:
    return (
        "====== Summary ======\n\n"
        f"Find {len(packages)} packages, processed {len(processed)}.\n"
        f"Find total {total_citations} cited classes.\n"
    )


def doi_lines(mappings: Iterable[IdentifierMapping]) -> list[str]:
    """``doi, package, class`` per mapping, sorted."""
    return [m.name for m in sorted(mappings)]
