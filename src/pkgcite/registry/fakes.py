"""In-memory fake registry for testing.

Dict-backed implementation of the PackageRegistry protocol.
No network and no downloads: package directories are whatever the
test lays out under ``root``.
"""

from __future__ import annotations

from pathlib import Path

from pkgcite.registry.schemas import PackageInfo


class FakePackageRegistry:
    """Dict-backed PackageRegistry for testing."""

    def __init__(
        self,
        root: Path,
        installed: list[PackageInfo] | None = None,
        available: list[PackageInfo] | None = None,
        *,
        fail_with: Exception | None = None,
    ) -> None:
        self.root = root
        self._installed = {p.name: p for p in installed or []}
        self._available = {p.name: p for p in available or []}
        self.fail_with = fail_with
        self.install_calls: list[str] = []

    def installed_packages(self) -> dict[str, PackageInfo]:
        return dict(self._installed)

    def available_packages(self) -> dict[str, PackageInfo]:
        if self.fail_with is not None:
            raise self.fail_with
        return dict(self._available)

    def package_dir(self, package: PackageInfo) -> Path:
        return self.root / package.name

    def install(self, package: PackageInfo) -> Path | None:
        if package.is_up_to_date:
            return None
        self.install_calls.append(package.name)
        self._installed[package.name] = package.model_copy(
            update={"installed_version": package.latest_version}
        )
        return self.package_dir(package)
