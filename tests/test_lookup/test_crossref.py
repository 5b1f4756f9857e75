"""Tests for the CrossRef client using httpx.MockTransport."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from pkgcite.config import Settings
from pkgcite.lookup.crossref import CrossRefClient, normalize_doi
from pkgcite.resilience.errors import LookupFailedError

BASE = "https://api.crossref.org/works"


def _work(**overrides: Any) -> dict[str, Any]:
    message: dict[str, Any] = {
        "author": [{"given": "A", "family": "B"}],
        "title": "T",
        "publisher": "Pub",
        "created": {"date-parts": [[2020, 1, 2]]},
    }
    message.update(overrides)
    return {"status": "ok", "message": message}


def _client(
    settings: Settings,
    handler: Callable[[httpx.Request], httpx.Response],
    **overrides: Any,
) -> CrossRefClient:
    if overrides:
        settings = settings.model_copy(update=overrides)
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return CrossRefClient(settings, client=http)


def test_normalize_doi() -> None:
    assert normalize_doi(" /10.1093/sysbio/syy032 ") == "10.1093/sysbio/syy032"
    assert normalize_doi("10.1/x") == "10.1/x"


class TestLookup:
    def test_normalizes_record(self, settings: Settings) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=_work())

        record = _client(settings, handler).lookup("/10.1/x")

        assert seen == [f"{BASE}/10.1/x"]
        assert record.doi == "10.1/x"
        assert record.authors == ["B, A"]
        assert record.title == "T"
        assert record.publisher == "Pub"
        assert record.year == "2020"

    def test_list_title_is_joined(self, settings: Settings) -> None:
        client = _client(
            settings,
            lambda request: httpx.Response(
                200, json=_work(title=["Bayesian", "phylogenetics"])
            ),
        )
        assert client.lookup("10.1/x").title == "Bayesian phylogenetics"

    def test_parse_authors_keeps_payload_out_of_logs(
        self, settings: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        client = _client(settings, lambda request: httpx.Response(404))
        with caplog.at_level(logging.DEBUG):
            authors = client.parse_authors(_work(), "10.1/x")
        assert authors == ["B, A"]
        assert "Pub" not in caplog.text

    def test_missing_author_fails(self, settings: Settings) -> None:
        payload = _work()
        del payload["message"]["author"]
        client = _client(
            settings, lambda request: httpx.Response(200, json=payload)
        )
        with pytest.raises(LookupFailedError, match="malformed author"):
            client.lookup("10.1/x")

    def test_missing_year_fails(self, settings: Settings) -> None:
        client = _client(
            settings,
            lambda request: httpx.Response(
                200, json=_work(created={"date-parts": []})
            ),
        )
        with pytest.raises(LookupFailedError, match="malformed work"):
            client.lookup("10.1/x")

    def test_not_found(self, settings: Settings) -> None:
        client = _client(settings, lambda request: httpx.Response(404))
        with pytest.raises(LookupFailedError, match="client") as info:
            client.lookup("10.1/missing")
        assert info.value.identifier == "10.1/missing"

    def test_body_must_be_an_object(self, settings: Settings) -> None:
        client = _client(
            settings, lambda request: httpx.Response(200, json=[1, 2])
        )
        with pytest.raises(LookupFailedError, match="JSON object"):
            client.fetch("10.1/x")

    def test_pause_after_every_request(self, settings: Settings) -> None:
        client = _client(
            settings,
            lambda request: httpx.Response(404),
            lookup_pause_seconds=1.0,
        )
        with patch("pkgcite.lookup.crossref.time.sleep") as sleep:
            with pytest.raises(LookupFailedError):
                client.fetch("10.1/x")
        sleep.assert_called_once_with(1.0)


class TestCircuitBreaker:
    def test_opens_after_repeated_connection_failures(
        self, settings: Settings
    ) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            raise httpx.ConnectError("unreachable", request=request)

        client = _client(settings, handler, cb_lookup_failure_threshold=2)
        for _ in range(2):
            with pytest.raises(LookupFailedError, match="transient"):
                client.fetch("10.1/x")

        with pytest.raises(LookupFailedError, match="circuit is open"):
            client.fetch("10.1/x")
        assert len(calls) == 2

    def test_not_found_does_not_count(self, settings: Settings) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(404)

        client = _client(settings, handler, cb_lookup_failure_threshold=1)
        for _ in range(3):
            with pytest.raises(LookupFailedError):
                client.fetch("10.1/x")
        assert len(calls) == 3


class TestBatch:
    def test_process_writes_tab_lines_and_skips_failures(
        self, settings: Settings, caplog: pytest.LogCaptureFixture
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/bad"):
                return httpx.Response(200, json={"message": {}})
            return httpx.Response(
                200,
                json=_work(
                    author=[
                        {"given": "A", "family": "B"},
                        {"given": "C", "family": "D"},
                    ]
                ),
            )

        out = io.StringIO()
        with caplog.at_level(logging.ERROR):
            written = _client(settings, handler).process(
                ["10.1/good", "10.1/bad", "/10.1/other"], out
            )

        assert written == 2
        assert out.getvalue().splitlines() == [
            "10.1/good\tB, A\tD, C",
            "10.1/other\tB, A\tD, C",
        ]
        assert "lookup_skipped" in caplog.text
        assert "10.1/bad" in caplog.text

    def test_lookup_records_keyed_by_doi(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/gone"):
                return httpx.Response(404)
            return httpx.Response(200, json=_work())

        records = _client(settings, handler).lookup_records(
            ["10.1/a", "10.1/gone"]
        )
        assert list(records) == ["10.1/a"]

    def test_context_manager_closes_owned_client(
        self, settings: Settings
    ) -> None:
        with CrossRefClient(settings) as client:
            assert client.url_for("/10.1/x") == f"{BASE}/10.1/x"
        assert client._client.is_closed  # pyright: ignore[reportPrivateUsage]
