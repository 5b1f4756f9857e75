"""Scan a package's library archives for cited model classes."""

from __future__ import annotations

import importlib
import inspect
import logging
import os
import zipfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType

import pathspec

from pkgcite.citations.extractor import extract_citations, extract_description
from pkgcite.citations.schemas import AnnotatedClass, IdentifierMapping
from pkgcite.citations.scope import ResolutionScope
from pkgcite.config import Settings
from pkgcite.constants import MODULE_SUFFIX, PACKAGE_INIT, PACKAGE_LIB_DIR
from pkgcite.resilience.errors import ArtifactMissingError, ClassLoadError

logger = logging.getLogger(__name__)


@dataclass
class PackageCitations:
    """Cited classes found in one package, keyed by class name."""

    package_name: str
    artifacts: list[Path] = field(default_factory=lambda: list[Path]())
    cited_classes: dict[str, AnnotatedClass] = field(
        default_factory=lambda: dict[str, AnnotatedClass]()
    )

    @property
    def cited_count(self) -> int:
        return len(self.cited_classes)

    def identifier_mappings(self) -> dict[str, set[IdentifierMapping]]:
        """Every DOI cited in this package and where it is cited."""
        dois: dict[str, set[IdentifierMapping]] = {}
        for class_name, cited in self.cited_classes.items():
            for doi in cited.identifiers():
                dois.setdefault(doi, set()).add(
                    IdentifierMapping(
                        identifier=doi,
                        package_name=self.package_name,
                        class_name=class_name,
                    )
                )
        logger.info(
            "event=package_dois package=%s unique=%d",
            self.package_name,
            len(dois),
        )
        return dois


def resolve_marker(import_string: str) -> type:
    """Resolve ``"package.module:ClassName"`` to the marker class."""
    module_name, _, qualname = import_string.partition(":")
    target: object = importlib.import_module(module_name)
    for part in qualname.split("."):
        target = getattr(target, part)
    if not isinstance(target, type):
        raise TypeError(f"{import_string} is not a class")
    return target


def locate_artifacts(
    package_name: str,
    package_dir: Path,
    patterns: Sequence[str],
) -> list[Path]:
    """Archives in ``<package_dir>/lib`` matching the artifact patterns."""
    lib_dir = package_dir / PACKAGE_LIB_DIR
    if not lib_dir.is_dir():
        raise ArtifactMissingError(
            f"Cannot find package {package_name} in path {package_dir}"
        )
    spec = pathspec.PathSpec.from_lines("gitignore", patterns)
    artifacts = sorted(
        p for p in lib_dir.iterdir()
        if p.is_file() and spec.match_file(p.name)
    )
    if not artifacts:
        raise ArtifactMissingError(
            f"Cannot find library archive in package {package_name} "
            f"in path {package_dir}"
        )
    return artifacts


def module_names(
    artifact: Path, skip_prefixes: Sequence[str]
) -> list[str]:
    """Importable module names inside an archive, skipping denied prefixes."""
    prefixes = tuple(skip_prefixes)
    names: list[str] = []
    try:
        archive = zipfile.ZipFile(artifact)
    except zipfile.BadZipFile as exc:
        raise ArtifactMissingError(
            f"{artifact} is not a readable archive"
        ) from exc
    with archive:
        for entry in archive.namelist():
            if not entry.endswith(MODULE_SUFFIX):
                continue
            if prefixes and entry.startswith(prefixes):
                continue
            parts = entry[: -len(MODULE_SUFFIX)].split("/")
            if parts[-1] == PACKAGE_INIT:
                parts = parts[:-1]
            if not parts or not all(p.isidentifier() for p in parts):
                # e.g. pkg-1.0.data/scripts/run-me.py
                logger.debug(
                    "event=entry_not_importable artifact=%s entry=%s",
                    artifact.name,
                    entry,
                )
                continue
            names.append(".".join(parts))
    return names


def defined_classes(module: ModuleType) -> list[type]:
    """Classes defined in ``module`` itself, not imported into it.

    Classes nested in those classes are included after their outer class.
    """
    found: list[type] = []
    for _, cls in inspect.getmembers(module, inspect.isclass):
        if cls.__module__ == module.__name__:
            found.extend(_with_nested(cls))
    return found


def _with_nested(cls: type) -> list[type]:
    classes = [cls]
    for name, member in sorted(vars(cls).items()):
        # aliases of classes defined elsewhere keep their own qualname
        if (
            isinstance(member, type)
            and member.__module__ == cls.__module__
            and member.__qualname__ == f"{cls.__qualname__}.{name}"
        ):
            classes.extend(_with_nested(member))
    return classes


def parent_packages(module_name: str) -> list[str]:
    """``"a.b.c"`` -> ``["a", "a.b"]``."""
    parts = module_name.split(".")
    return [".".join(parts[:depth]) for depth in range(1, len(parts))]


def extend_package_path(package: ModuleType, artifact: Path) -> None:
    """Let an imported package see its directory inside ``artifact`` too.

    A regular package's ``__path__`` is fixed by the archive it was first
    imported from, so its submodules shipped in a later archive would not
    be found. Like ``pkgutil.extend_path``, the archive's directory for the
    package is appended to ``__path__``.
    """
    paths = getattr(package, "__path__", None)
    # namespace packages recompute their path from sys.path
    if not isinstance(paths, list):
        return
    entry = os.path.join(os.fspath(artifact), *package.__name__.split("."))
    if entry not in paths:
        paths.append(entry)
        logger.debug(
            "event=package_path_extended package=%s entry=%s",
            package.__name__,
            entry,
        )


def qualifies(cls: type, marker: type) -> bool:
    """Concrete subclasses of the marker (registered ABCs included)."""
    if cls is marker or inspect.isabstract(cls):
        return False
    try:
        return issubclass(cls, marker)
    except TypeError:
        return False


class PackageScanner:
    """Loads a package's archives and collects its cited classes."""

    def __init__(
        self,
        scope: ResolutionScope,
        settings: Settings | None = None,
        *,
        marker: type | None = None,
    ) -> None:
        self.scope = scope
        self.settings = settings or Settings()
        self._marker = marker

    def scan_package(
        self, package_name: str, package_dir: Path
    ) -> PackageCitations:
        """Locate the package's archives, then scan them."""
        artifacts = locate_artifacts(
            package_name, package_dir, self.settings.artifact_patterns
        )
        return self.scan(package_name, artifacts)

    def scan(
        self, package_name: str, artifacts: Iterable[Path]
    ) -> PackageCitations:
        """Scan the archives in order; the first archive to cite a class wins.

        The archives stay in the scope afterwards so that packages
        depending on this one can import it.
        """
        result = PackageCitations(
            package_name=package_name, artifacts=list(artifacts)
        )
        self.scope.add(result.artifacts)

        merged: dict[str, AnnotatedClass] = {}
        for artifact in result.artifacts:
            if self.settings.verbose:
                logger.info("Load classes from : %s", artifact)
            found = self._cited_classes(artifact)
            for class_name, cited in found.items():
                merged.setdefault(class_name, cited)

        result.cited_classes = dict(sorted(merged.items()))
        logger.debug(
            "event=package_scanned package=%s artifacts=%d cited=%d",
            package_name,
            len(result.artifacts),
            result.cited_count,
        )
        return result

    def _cited_classes(self, artifact: Path) -> dict[str, AnnotatedClass]:
        cited: dict[str, AnnotatedClass] = {}
        names = module_names(artifact, self.settings.skip_prefixes)
        if not names:
            return cited
        marker = self._marker_class(artifact)
        for module_name in names:
            module = self._load(module_name, artifact)
            for cls in defined_classes(module):
                if not qualifies(cls, marker):
                    continue
                citations = extract_citations(cls)
                if not citations:
                    continue
                class_name = f"{module.__name__}.{cls.__qualname__}"
                annotated = AnnotatedClass(
                    class_name=class_name, citations=tuple(citations)
                )
                # description only matters once a class is cited
                annotated.description = extract_description(cls)
                cited[class_name] = annotated
        return cited

    def _marker_class(self, artifact: Path) -> type:
        """The marker, resolved on first use so it may live in a scanned archive."""
        if self._marker is None:
            try:
                self._marker = resolve_marker(self.settings.marker_class)
            except (ImportError, AttributeError, TypeError) as exc:
                logger.error(
                    "event=marker_unresolved marker=%s error=%s",
                    self.settings.marker_class,
                    exc,
                )
                raise ClassLoadError(
                    self.settings.marker_class, str(artifact)
                ) from exc
        return self._marker

    def _load(self, module_name: str, artifact: Path) -> ModuleType:
        try:
            # parents first, so each can be pointed at this archive too
            for parent_name in parent_packages(module_name):
                extend_package_path(
                    importlib.import_module(parent_name), artifact
                )
            return importlib.import_module(module_name)
        except Exception as exc:
            logger.error(
                "event=module_load_failed module=%s artifact=%s error=%s",
                module_name,
                artifact,
                exc,
            )
            raise ClassLoadError(module_name, str(artifact)) from exc
