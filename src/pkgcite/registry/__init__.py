"""Package registry: where packages are installed and what is available."""

from pkgcite.registry.installer import (
    collect_packages,
    find_package,
    install_or_update_all,
)
from pkgcite.registry.local import DirectoryPackageRegistry
from pkgcite.registry.protocols import PackageRegistry
from pkgcite.registry.schemas import PackageInfo

__all__ = [
    "DirectoryPackageRegistry",
    "PackageInfo",
    "PackageRegistry",
    "collect_packages",
    "find_package",
    "install_or_update_all",
]
