"""Tests for the directory-backed registry and its remote index."""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path

import httpx
import pytest

from pkgcite.config import Settings
from pkgcite.registry.local import DirectoryPackageRegistry
from pkgcite.registry.schemas import PackageInfo
from pkgcite.resilience.errors import (
    DependencyResolutionError,
    RegistryUnavailableError,
)
from tests.conftest import make_package

INDEX_URL = "https://packages.example.org/index.json"


def _settings(settings: Settings, **overrides: object) -> Settings:
    return settings.model_copy(
        update={"package_index_url": INDEX_URL, **overrides}
    )


def _registry(
    settings: Settings, handler: httpx.MockTransport | None = None
) -> DirectoryPackageRegistry:
    client = httpx.Client(transport=handler) if handler else None
    return DirectoryPackageRegistry(settings, client=client)


def _zip_bytes(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buf.getvalue()


class TestInstalledPackages:
    def test_reads_manifests(self, settings: Settings) -> None:
        make_package(settings.packages_dir, "beast", {"b.py": ""})
        make_package(
            settings.packages_dir,
            "Clocks",
            {"c.py": ""},
            version="2.1.0",
            depends=["beast"],
        )
        (settings.packages_dir / "stray").mkdir()

        installed = _registry(settings).installed_packages()

        assert set(installed) == {"beast", "Clocks"}
        clocks = installed["Clocks"]
        assert clocks.installed_version == "2.1.0"
        assert clocks.dependencies == ["beast"]
        assert clocks.is_up_to_date

    def test_missing_dir_is_empty(self, settings: Settings) -> None:
        assert _registry(settings).installed_packages() == {}

    def test_unreadable_manifest_is_skipped(
        self, settings: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        bad = settings.packages_dir / "bad"
        bad.mkdir(parents=True)
        (bad / "package.json").write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            installed = _registry(settings).installed_packages()

        assert installed == {}
        assert "manifest_unreadable" in caplog.text


class TestAvailablePackages:
    def test_no_index_configured(self, settings: Settings) -> None:
        assert _registry(settings).available_packages() == {}

    def test_reads_index(self, settings: Settings) -> None:
        body = {
            "packages": [
                {
                    "name": "Clocks",
                    "version": "2.2.0",
                    "depends": ["beast"],
                    "url": "https://packages.example.org/Clocks.zip",
                },
            ]
        }

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == INDEX_URL
            return httpx.Response(200, json=body)

        registry = _registry(_settings(settings), httpx.MockTransport(handler))
        available = registry.available_packages()

        clocks = available["Clocks"]
        assert clocks.latest_version == "2.2.0"
        assert clocks.installed_version is None
        assert clocks.url == "https://packages.example.org/Clocks.zip"

    def test_connection_failure(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        registry = _registry(_settings(settings), httpx.MockTransport(handler))
        with pytest.raises(RegistryUnavailableError) as info:
            registry.available_packages()
        assert info.value.no_connection

    def test_server_error(self, settings: Settings) -> None:
        registry = _registry(
            _settings(settings),
            httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        with pytest.raises(RegistryUnavailableError) as info:
            registry.available_packages()
        assert not info.value.no_connection

    def test_malformed_index(self, settings: Settings) -> None:
        registry = _registry(
            _settings(settings),
            httpx.MockTransport(
                lambda request: httpx.Response(200, json={"packages": [{}]})
            ),
        )
        with pytest.raises(RegistryUnavailableError, match="Malformed"):
            registry.available_packages()


class TestInstall:
    def test_downloads_and_writes_manifest(self, settings: Settings) -> None:
        payload = _zip_bytes({"lib/Clocks.zip": "fake archive"})
        registry = _registry(
            settings,
            httpx.MockTransport(
                lambda request: httpx.Response(200, content=payload)
            ),
        )
        pkg = PackageInfo(
            name="Clocks",
            latest_version="2.2.0",
            dependencies=["beast"],
            url="https://packages.example.org/Clocks.zip",
        )

        target = registry.install(pkg)

        assert target == settings.packages_dir / "Clocks"
        assert (target / "lib" / "Clocks.zip").is_file()
        manifest = json.loads((target / "package.json").read_text())
        assert manifest == {
            "name": "Clocks",
            "version": "2.2.0",
            "depends": ["beast"],
        }
        assert registry.installed_packages()["Clocks"].is_up_to_date

    def test_replaces_older_version(self, settings: Settings) -> None:
        old = make_package(
            settings.packages_dir, "Clocks", {"old.py": ""}, version="1.0.0"
        )
        (old / "lib" / "leftover.zip").write_bytes(b"")
        payload = _zip_bytes({"lib/new.zip": "new"})
        registry = _registry(
            settings,
            httpx.MockTransport(
                lambda request: httpx.Response(200, content=payload)
            ),
        )
        pkg = PackageInfo(
            name="Clocks",
            installed_version="1.0.0",
            latest_version="2.0.0",
            url="https://packages.example.org/Clocks.zip",
        )

        target = registry.install(pkg)

        assert target is not None
        assert sorted(p.name for p in (target / "lib").iterdir()) == ["new.zip"]

    def test_up_to_date_is_skipped(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no download expected")

        registry = _registry(settings, httpx.MockTransport(handler))
        pkg = PackageInfo(
            name="beast", installed_version="2.7.0", latest_version="2.7.0"
        )
        assert registry.install(pkg) is None

    def test_no_url(self, settings: Settings) -> None:
        registry = _registry(settings)
        with pytest.raises(DependencyResolutionError):
            registry.install(PackageInfo(name="ghost", latest_version="1.0"))

    def test_not_a_zip(self, settings: Settings) -> None:
        registry = _registry(
            settings,
            httpx.MockTransport(
                lambda request: httpx.Response(200, content=b"nope")
            ),
        )
        pkg = PackageInfo(
            name="Broken", latest_version="1.0", url="https://x.example/b.zip"
        )
        with pytest.raises(RegistryUnavailableError, match="not a zip"):
            registry.install(pkg)
        assert not (settings.packages_dir / "Broken").exists()
