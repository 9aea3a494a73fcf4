"""Upstream client: shape validation, normalization, and scrubbing."""

import logging

import httpx
import pytest

from lookup_gateway.core.config import settings
from lookup_gateway.schemas.lookup import PLACEHOLDER
from lookup_gateway.services.upstream import UpstreamError, fetch_records, normalize_records

from tests.conftest import UPSTREAM_PAYLOAD

NUMBER = "9876543210"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _assert_scrubbed(caplog, exc: UpstreamError) -> None:
    surfaces = caplog.text + str(exc)
    assert settings.UPSTREAM_API_KEY not in surfaces
    assert "provider.internal.example" not in surfaces


# ── fetch_records ───────────────────────────────────────────
@pytest.mark.asyncio
async def test_fetch_sends_credential_and_number_upstream():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=UPSTREAM_PAYLOAD)

    async with _client(handler) as client:
        entries = await fetch_records(client, NUMBER)

    assert entries == UPSTREAM_PAYLOAD["data"]
    assert seen[0].url.params["number"] == NUMBER
    assert seen[0].url.params["key"] == settings.UPSTREAM_API_KEY


@pytest.mark.asyncio
async def test_empty_data_list_is_a_valid_answer():
    async with _client(lambda r: httpx.Response(200, json={"data": []})) as client:
        assert await fetch_records(client, NUMBER) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="upstream-credential-xyz exploded at provider.internal.example"),
        httpx.Response(404, json={"data": []}),
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"results": []}),
        httpx.Response(200, json={"data": "nope"}),
        httpx.Response(200, json={"data": [{"name": "ok"}, "bad-entry"]}),
    ],
    ids=["5xx", "4xx", "non-json", "array", "no-data", "data-not-list", "entry-not-object"],
)
async def test_bad_upstream_answers_are_failures(response, caplog):
    caplog.set_level(logging.DEBUG)
    async with _client(lambda r: response) as client:
        with pytest.raises(UpstreamError) as info:
            await fetch_records(client, NUMBER)

    _assert_scrubbed(caplog, info.value)


@pytest.mark.asyncio
async def test_timeout_is_a_scrubbed_failure(caplog):
    caplog.set_level(logging.DEBUG)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout(f"timed out talking to {request.url}", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamError) as info:
            await fetch_records(client, NUMBER)

    assert info.value.__cause__ is None
    _assert_scrubbed(caplog, info.value)


@pytest.mark.asyncio
async def test_connection_error_is_a_scrubbed_failure(caplog):
    caplog.set_level(logging.DEBUG)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(f"cannot reach {request.url}", request=request)

    async with _client(handler) as client:
        with pytest.raises(UpstreamError) as info:
            await fetch_records(client, NUMBER)

    _assert_scrubbed(caplog, info.value)


@pytest.mark.asyncio
async def test_unconfigured_upstream_fails(monkeypatch):
    monkeypatch.setattr(settings, "UPSTREAM_URL", "")
    async with _client(lambda r: httpx.Response(200, json=UPSTREAM_PAYLOAD)) as client:
        with pytest.raises(UpstreamError):
            await fetch_records(client, NUMBER)


# ── normalize_records ───────────────────────────────────────
def test_normalize_projects_fixed_fields_and_drops_extras():
    [record] = normalize_records(UPSTREAM_PAYLOAD["data"], NUMBER)
    dumped = record.model_dump()

    assert set(dumped) == {"name", "fname", "mobile", "alt", "address", "circle", "id"}
    assert dumped["name"] == "Asha Verma"
    assert dumped["id"] == "4471"
    assert dumped["alt"] == PLACEHOLDER


def test_normalize_fills_placeholders_and_echoes_number():
    [record] = normalize_records([{"name": "", "alt": None}], NUMBER)

    assert record.mobile == NUMBER
    assert record.name == PLACEHOLDER
    assert record.alt == PLACEHOLDER
    assert record.fname == record.address == record.circle == record.id == PLACEHOLDER


def test_normalize_keeps_order_and_count():
    entries = [{"name": "first"}, {"name": "second"}, {}]
    records = normalize_records(entries, NUMBER)
    assert [r.name for r in records] == ["first", "second", PLACEHOLDER]
