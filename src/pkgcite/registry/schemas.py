"""Pydantic models for package registry entries."""

from pydantic import BaseModel, Field


class PackageInfo(BaseModel):
    """A versioned platform package as the registry reports it."""

    name: str
    installed_version: str | None = None
    latest_version: str | None = None
    dependencies: list[str] = Field(default_factory=lambda: list[str]())
    url: str | None = None

    @property
    def is_installed(self) -> bool:
        return self.installed_version is not None

    @property
    def is_up_to_date(self) -> bool:
        """Installed, and at the latest known version."""
        return self.is_installed and (
            self.latest_version is None
            or self.installed_version == self.latest_version
        )


class PackageManifest(BaseModel):
    """``package.json`` written into every installed package directory."""

    name: str
    version: str
    depends: list[str] = Field(default_factory=lambda: list[str]())


class IndexEntry(BaseModel):
    """One package in the remote package index."""

    name: str
    version: str
    depends: list[str] = Field(default_factory=lambda: list[str]())
    url: str | None = None


class PackageIndex(BaseModel):
    """The remote package index document."""

    packages: list[IndexEntry] = Field(
        default_factory=lambda: list[IndexEntry]()
    )
