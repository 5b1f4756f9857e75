"""Protocol-based package registry interface.

Implementations satisfy this protocol structurally (no inheritance).
Test doubles can be plain classes matching the same signatures.
"""

from pathlib import Path
from typing import Protocol

from pkgcite.registry.schemas import PackageInfo


class PackageRegistry(Protocol):
    def installed_packages(self) -> dict[str, PackageInfo]: ...
    def available_packages(self) -> dict[str, PackageInfo]: ...
    def package_dir(self, package: PackageInfo) -> Path: ...
    def install(self, package: PackageInfo) -> Path | None: ...
