"""Error types and classification for structured error handling.

Every failure the tool reports is a CitationToolError subclass, so
callers can tell registry, scan and lookup failures apart without
parsing messages. classify_error() buckets the underlying causes:
- "no connection" vs other registry failures
- informative lookup log lines (timeout vs client vs server)
"""

from __future__ import annotations

from enum import Enum

import httpx


class CitationToolError(Exception):
    """Base class for all pkgcite failures."""


class RegistryUnavailableError(CitationToolError):
    """The installed/available package list could not be retrieved.

    Fatal to the whole run.
    """

    def __init__(self, message: str, *, no_connection: bool = False) -> None:
        super().__init__(message)
        self.no_connection = no_connection


class DependencyResolutionError(CitationToolError):
    """A package to install declares a dependency the registry lacks."""


class ArtifactMissingError(CitationToolError):
    """A package's library directory or archives cannot be found.

    Fatal to that package's scan.
    """


class ClassLoadError(CitationToolError):
    """A module inside a package archive failed to import.

    Fatal to that package's scan.
    """

    def __init__(self, module_name: str, artifact: str) -> None:
        super().__init__(
            f"{module_name} cannot be loaded from {artifact} !"
        )
        self.module_name = module_name
        self.artifact = artifact


class LookupFailedError(CitationToolError):
    """A metadata lookup for one identifier failed (network or parse).

    Local to that identifier; batch drivers skip it.
    """

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"Lookup failed for {identifier}: {reason}")
        self.identifier = identifier
        self.reason = reason


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors
    SERVER = "server"  # 500, 502, 503
    TIMEOUT = "timeout"  # deadline exceeded
    CLIENT = "client"  # 400, 401, 403, 404
    UNKNOWN = "unknown"  # unclassified


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine how it is reported.

    Checks httpx types first, then a structured status_code
    attribute, then falls back to string matching.
    """
    # 1. httpx exception hierarchy
    if isinstance(error, httpx.TimeoutException):
        return ErrorClass.TIMEOUT
    if isinstance(error, httpx.TransportError):
        return ErrorClass.TRANSIENT
    if isinstance(error, httpx.HTTPStatusError):
        status_code: object = error.response.status_code
    else:
        status_code = getattr(error, "status_code", None)

    # 2. Structured status code
    if isinstance(status_code, int):
        if status_code == 429:
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    if isinstance(error, TimeoutError):
        return ErrorClass.TIMEOUT
    if isinstance(error, ConnectionError):
        return ErrorClass.TRANSIENT

    # 3. Fall back to string matching for untyped exceptions
    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "econnrefused" in msg or "connection" in msg:
        return ErrorClass.TRANSIENT

    return ErrorClass.UNKNOWN


def is_no_connection(error: BaseException) -> bool:
    """Return True if the error (or its cause) means the network is unreachable."""
    current: BaseException | None = error
    while current is not None:
        if isinstance(current, RegistryUnavailableError) and current.no_connection:
            return True
        if isinstance(current, (httpx.TransportError, ConnectionError, OSError)):
            return True
        current = current.__cause__
    return False
