"""Directory-backed registry with an optional remote JSON index.

Layout on disk::

    <packages_dir>/
        <name>/
            package.json      {"name": ..., "version": ..., "depends": [...]}
            lib/*.whl|*.zip   library archives scanned for citations

The remote index (``Settings.package_index_url``) is a JSON document
``{"packages": [{"name", "version", "depends", "url"}]}`` where ``url``
points at a zip of the package directory contents.
"""

from __future__ import annotations

import io
import logging
import shutil
import tempfile
import zipfile
from pathlib import Path

import httpx
from pydantic import ValidationError

from pkgcite.config import Settings
from pkgcite.constants import JSON_INDENT, PACKAGE_MANIFEST
from pkgcite.registry.schemas import (
    PackageIndex,
    PackageInfo,
    PackageManifest,
)
from pkgcite.resilience.errors import (
    DependencyResolutionError,
    RegistryUnavailableError,
)

logger = logging.getLogger(__name__)


class DirectoryPackageRegistry:
    """Installed packages live in ``packages_dir``; the rest come from the index."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.root = Path(self.settings.packages_dir)
        self._client = client or httpx.Client(
            timeout=self.settings.request_timeout_seconds,
            follow_redirects=True,
        )

    def installed_packages(self) -> dict[str, PackageInfo]:
        packages: dict[str, PackageInfo] = {}
        if not self.root.is_dir():
            logger.warning(
                "event=packages_dir_missing path=%s", self.root
            )
            return packages
        for pkg_dir in sorted(self.root.iterdir()):
            manifest_path = pkg_dir / PACKAGE_MANIFEST
            if not manifest_path.is_file():
                continue
            try:
                manifest = PackageManifest.model_validate_json(
                    manifest_path.read_text(encoding="utf-8")
                )
            except (OSError, ValidationError) as exc:
                logger.warning(
                    "event=manifest_unreadable path=%s error=%s",
                    manifest_path,
                    exc,
                )
                continue
            packages[manifest.name] = PackageInfo(
                name=manifest.name,
                installed_version=manifest.version,
                latest_version=manifest.version,
                dependencies=list(manifest.depends),
            )
        return packages

    def available_packages(self) -> dict[str, PackageInfo]:
        url = self.settings.package_index_url
        if not url:
            return {}
        try:
            response = self._client.get(url)
            response.raise_for_status()
            index = PackageIndex.model_validate_json(response.content)
        except httpx.HTTPError as exc:
            raise RegistryUnavailableError(
                f"Failed to retrieve the package list from {url}: {exc}",
                no_connection=isinstance(exc, httpx.TransportError),
            ) from exc
        except ValidationError as exc:
            raise RegistryUnavailableError(
                f"Malformed package list at {url}: {exc}"
            ) from exc
        return {
            entry.name: PackageInfo(
                name=entry.name,
                latest_version=entry.version,
                dependencies=list(entry.depends),
                url=entry.url,
            )
            for entry in index.packages
        }

    def package_dir(self, package: PackageInfo) -> Path:
        return self.root / package.name

    def install(self, package: PackageInfo) -> Path | None:
        """Install the latest version; None if it is already installed."""
        if package.is_up_to_date:
            return None
        if not package.url or not package.latest_version:
            raise DependencyResolutionError(
                f"No download location for package {package.name}"
            )
        try:
            response = self._client.get(package.url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RegistryUnavailableError(
                f"Failed to download {package.name} from {package.url}: {exc}",
                no_connection=isinstance(exc, httpx.TransportError),
            ) from exc

        target = self.package_dir(package)
        self.root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=self.root) as staging:
            staged = Path(staging) / package.name
            try:
                with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
                    archive.extractall(staged)
            except zipfile.BadZipFile as exc:
                raise RegistryUnavailableError(
                    f"Download of {package.name} is not a zip archive"
                ) from exc
            manifest = PackageManifest(
                name=package.name,
                version=package.latest_version,
                depends=list(package.dependencies),
            )
            (staged / PACKAGE_MANIFEST).write_text(
                manifest.model_dump_json(indent=JSON_INDENT),
                encoding="utf-8",
            )
            # Uninstall whatever version was there before
            if target.exists():
                shutil.rmtree(target)
            shutil.move(staged, target)
        logger.info(
            "event=package_installed package=%s version=%s path=%s",
            package.name,
            package.latest_version,
            target,
        )
        return target

    def close(self) -> None:
        self._client.close()
