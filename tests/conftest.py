"""Shared test fixtures: plugin archives built on the fly in tmp_path."""

import json
import textwrap
import zipfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from pkgcite.citations.scope import ResolutionScope
from pkgcite.config import Settings
from pkgcite.constants import PACKAGE_LIB_DIR, PACKAGE_MANIFEST

PLUGIN_HEADER = (
    "from pkgcite.annotations import ModelObject, citation, description\n"
)


def plugin_source(body: str) -> str:
    """Module source that can use the citation decorators."""
    return PLUGIN_HEADER + textwrap.dedent(body)


def make_archive(path: Path, files: dict[str, str]) -> Path:
    """Write a zip archive whose entries are dedented source strings."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, source in files.items():
            archive.writestr(name, textwrap.dedent(source))
    return path


def make_package(
    root: Path,
    name: str,
    files: dict[str, str],
    *,
    version: str = "1.0.0",
    depends: list[str] | None = None,
    archive_name: str | None = None,
) -> Path:
    """Lay out ``<root>/<name>/package.json`` and ``lib/<name>.zip``."""
    pkg_dir = root / name
    (pkg_dir / PACKAGE_LIB_DIR).mkdir(parents=True, exist_ok=True)
    (pkg_dir / PACKAGE_MANIFEST).write_text(
        json.dumps(
            {"name": name, "version": version, "depends": depends or []}
        ),
        encoding="utf-8",
    )
    make_archive(
        pkg_dir / PACKAGE_LIB_DIR / (archive_name or f"{name}.zip"),
        files,
    )
    return pkg_dir


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the developer's .env and home directory."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        packages_dir=tmp_path / "packages",
        package_index_url="",
        lookup_pause_seconds=0,
    )


@pytest.fixture
def scope() -> Iterator[ResolutionScope]:
    """Scope over the real sys.path; everything it added is retired afterwards."""
    s = ResolutionScope()
    yield s
    s.clear()
