"""Merge registry listings and drive install/update of every package."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping

from pkgcite.registry.protocols import PackageRegistry
from pkgcite.registry.schemas import PackageInfo
from pkgcite.resilience.errors import DependencyResolutionError

logger = logging.getLogger(__name__)


def find_package(
    packages: Mapping[str, PackageInfo], name: str
) -> PackageInfo | None:
    """Look a package up by name, ignoring case."""
    found = packages.get(name)
    if found is not None:
        return found
    lowered = name.lower()
    for key, pkg in packages.items():
        if key.lower() == lowered:
            return pkg
    return None


def collect_packages(registry: PackageRegistry) -> dict[str, PackageInfo]:
    """All installed and available packages, ordered by name ignoring case.

    Raises RegistryUnavailableError when the listing cannot be fetched.
    """
    merged: dict[str, PackageInfo] = {}
    for name, pkg in registry.installed_packages().items():
        merged[name] = pkg
    for name, pkg in registry.available_packages().items():
        existing = find_package(merged, name)
        if existing is None:
            merged[name] = pkg
            continue
        merged[existing.name] = existing.model_copy(
            update={
                "latest_version": pkg.latest_version,
                "dependencies": pkg.dependencies,
                "url": pkg.url,
            }
        )

    ordered = dict(sorted(merged.items(), key=lambda kv: kv[0].lower()))
    logger.info("Find installed and available %d packages.", len(ordered))
    return ordered


def install_or_update_all(
    registry: PackageRegistry,
    packages: MutableMapping[str, PackageInfo],
) -> None:
    """Bring every package, and its dependencies, to the latest version.

    ``packages`` is updated in place with the installed versions.
    """
    logger.info("Start update/install all packages ...")
    for name in list(packages):
        pkg = packages[name]
        try:
            to_install = _with_dependencies(pkg, packages)
        except DependencyResolutionError as exc:
            logger.error("Installation aborted: %s", exc)
            continue

        installed: dict[str, str] = {}
        for candidate in to_install:
            # an earlier iteration may have installed it already
            current = packages.get(candidate.name, candidate)
            target = registry.install(current)
            if target is None:
                continue
            installed[current.name] = str(target)
            packages[current.name] = current.model_copy(
                update={"installed_version": current.latest_version}
            )

        if not installed:
            logger.info(
                "Skip installed latest version package %s %s.",
                pkg.name,
                pkg.latest_version,
            )
        for pkg_name, pkg_dir in installed.items():
            logger.info("Package %s is installed in %s.", pkg_name, pkg_dir)


def _with_dependencies(
    pkg: PackageInfo, packages: Mapping[str, PackageInfo]
) -> list[PackageInfo]:
    resolved = [pkg]
    for dep_name in pkg.dependencies:
        dep = find_package(packages, dep_name)
        if dep is None:
            raise DependencyResolutionError(
                f"{pkg.name} depends on {dep_name}, "
                "which is neither installed nor available"
            )
        resolved.append(dep)
    return resolved
