"""CrossRef REST client: authors, title, publisher and year by DOI.

One GET per identifier, followed by a fixed pause so batch runs stay
polite to the public API. There are no retries: a failed identifier
is logged and skipped by the batch drivers. Transport failures and
5xx responses feed a per-client circuit breaker; once it opens, the
remaining identifiers fail fast instead of each waiting on a dead
network.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from types import TracebackType
from typing import Any, TextIO

import httpx
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
)

from pkgcite.config import Settings
from pkgcite.constants import TAB
from pkgcite.lookup.schemas import WorkRecord
from pkgcite.resilience.errors import LookupFailedError, classify_error

logger = logging.getLogger(__name__)


def normalize_doi(identifier: str) -> str:
    """Strip surrounding whitespace and one leading slash."""
    doi = identifier.strip()
    if doi.startswith("/"):
        doi = doi[1:]
    return doi


def _is_outage(thrown_type: type, thrown_value: BaseException) -> bool:
    """Count only network failures and server errors against the breaker.

    A 404 or an unparsable record says nothing about CrossRef's health.
    """
    if issubclass(thrown_type, httpx.TransportError):
        return True
    if isinstance(thrown_value, httpx.HTTPStatusError):
        return thrown_value.response.status_code >= 500
    return False


class CrossRefClient:
    """Looks up works on the CrossRef REST API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.base_url = self.settings.crossref_base_url.rstrip("/")
        self.pause_seconds = self.settings.lookup_pause_seconds
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self.settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )
        self._breaker = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=self.settings.cb_lookup_failure_threshold,
            recovery_timeout=self.settings.cb_lookup_recovery_timeout,
            expected_exception=_is_outage,
            name=f"crossref_{id(self)}",
        )

    def __enter__(self) -> CrossRefClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def url_for(self, identifier: str) -> str:
        return f"{self.base_url}/{normalize_doi(identifier)}"

    def fetch(self, identifier: str) -> dict[str, Any]:
        """Raw JSON document for one DOI.

        Raises LookupFailedError on network errors, non-2xx
        responses, or a body that is not a JSON object.
        """
        doi = normalize_doi(identifier)
        url = self.url_for(doi)
        if self._breaker.opened:  # pyright: ignore[reportUnknownMemberType]
            raise LookupFailedError(doi, "CrossRef circuit is open")

        logger.info("Requesting %s", url)
        try:
            with self._breaker:  # pyright: ignore[reportUnknownMemberType]
                response = self._client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LookupFailedError(
                doi, f"{classify_error(exc).value}: {exc}"
            ) from exc
        finally:
            self._pause()

        try:
            payload = response.json()
        except ValueError as exc:
            raise LookupFailedError(doi, "response is not JSON") from exc
        if not isinstance(payload, dict):
            raise LookupFailedError(doi, "response is not a JSON object")
        return payload

    def parse_authors(
        self, payload: dict[str, Any], doi: str = ""
    ) -> list[str]:
        """Authors as ``"family, given"`` (APA order, one space after the comma)."""
        try:
            return [
                f"{author['family']}, {author['given']}"
                for author in payload["message"]["author"]
            ]
        except (KeyError, TypeError) as exc:
            raise LookupFailedError(
                doi, f"malformed author list ({exc!r})"
            ) from exc

    def parse_record(
        self, payload: dict[str, Any], doi: str
    ) -> WorkRecord:
        """Normalize a CrossRef work into a WorkRecord."""
        authors = self.parse_authors(payload, doi)
        try:
            message = payload["message"]
            title = message["title"]
            # CrossRef usually sends the title as a list of strings
            if isinstance(title, list):
                title = " ".join(str(part) for part in title)
            publisher = message["publisher"]
            # "created": {"date-parts": [[2014, 4, 10]], ...}
            year = message["created"]["date-parts"][0][0]
        except (KeyError, TypeError, IndexError) as exc:
            raise LookupFailedError(
                doi, f"malformed work record ({exc!r})"
            ) from exc
        return WorkRecord(
            doi=normalize_doi(doi),
            authors=authors,
            title=str(title),
            publisher=str(publisher),
            year=str(year),
        )

    def lookup(self, identifier: str) -> WorkRecord:
        """Fetch and normalize one DOI."""
        doi = normalize_doi(identifier)
        return self.parse_record(self.fetch(doi), doi)

    def process(self, identifiers: Iterable[str], out: TextIO) -> int:
        """Write ``doi<TAB>author<TAB>...`` per DOI; failures are skipped.

        Returns the number of DOIs written.
        """
        written = 0
        for identifier in identifiers:
            doi = normalize_doi(identifier)
            try:
                authors = self.parse_authors(self.fetch(doi), doi)
            except LookupFailedError as exc:
                _log_skip(exc)
                continue
            out.write(TAB.join([doi, *authors]) + "\n")
            written += 1
        return written

    def lookup_records(
        self, identifiers: Iterable[str]
    ) -> dict[str, WorkRecord]:
        """Normalized records keyed by DOI; failures are skipped."""
        records: dict[str, WorkRecord] = {}
        for identifier in identifiers:
            try:
                record = self.lookup(identifier)
            except LookupFailedError as exc:
                _log_skip(exc)
                continue
            records[record.doi] = record
        return records

    def _pause(self) -> None:
        if self.pause_seconds > 0:
            time.sleep(self.pause_seconds)


def _log_skip(exc: LookupFailedError) -> None:
    logger.error(
        "event=lookup_skipped doi=%s reason=%s",
        exc.identifier,
        exc.reason,
    )
