"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

from pkgcite.constants import (
    CB_LOOKUP_FAILURE_THRESHOLD,
    CB_LOOKUP_RECOVERY_TIMEOUT,
    CORE_PACKAGES,
    CROSSREF_WORKS_URL,
    DEFAULT_ARTIFACT_PATTERNS,
    DEFAULT_MARKER_CLASS,
    LOOKUP_PAUSE_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    SKIP_ENTRY_PREFIXES,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # Package registry
    packages_dir: Path = Path.home() / ".pkgcite" / "packages"
    package_index_url: str = ""

    # Scanning
    core_packages: Annotated[list[str], NoDecode] = list(CORE_PACKAGES)
    skip_prefixes: Annotated[list[str], NoDecode] = list(
        SKIP_ENTRY_PREFIXES
    )
    artifact_patterns: Annotated[list[str], NoDecode] = list(
        DEFAULT_ARTIFACT_PATTERNS
    )
    marker_class: str = DEFAULT_MARKER_CLASS

    # CrossRef lookup
    crossref_base_url: str = CROSSREF_WORKS_URL
    lookup_pause_seconds: float = LOOKUP_PAUSE_SECONDS
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    cb_lookup_failure_threshold: int = CB_LOOKUP_FAILURE_THRESHOLD
    cb_lookup_recovery_timeout: int = CB_LOOKUP_RECOVERY_TIMEOUT

    # Output
    verbose: bool = False
    citations_json: Path | None = None

    # Logging
    log_level: str = "INFO"

    @field_validator(
        "core_packages",
        "skip_prefixes",
        "artifact_patterns",
        mode="before",
    )
    @classmethod
    def _parse_list(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("marker_class")
    @classmethod
    def _validate_marker(cls, v: str) -> str:
        module, sep, qualname = v.partition(":")
        if not sep or not module or not qualname:
            raise ValueError(
                "marker_class must look like 'package.module:ClassName'"
            )
        return v

    @field_validator("lookup_pause_seconds")
    @classmethod
    def _validate_pause(cls, v: float) -> float:
        if v < 0:
            raise ValueError("lookup_pause_seconds must be >= 0")
        if v < LOOKUP_PAUSE_SECONDS:
            logger.warning(
                "event=short_lookup_pause seconds=%s "
                "(CrossRef asks clients to throttle)",
                v,
            )
        return v

    @property
    def core_package_names(self) -> frozenset[str]:
        """Lower-cased core package names for case-insensitive checks."""
        return frozenset(name.lower() for name in self.core_packages)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }
