"""Tests for the ExchangeRate-API client and the static rate source."""

import json
from datetime import date

import httpx
import pytest

from src.core.config import Settings
from src.core.exceptions import RateSourceError
from src.core.rates.source import ExchangeRateApiSource, RateSource, StaticRateSource

BASE_URL = "https://rates.test/v6"


def _source(handler) -> tuple[ExchangeRateApiSource, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    return ExchangeRateApiSource("key123", BASE_URL, client=client), seen


def _ok(rates: dict) -> httpx.Response:
    return httpx.Response(
        200,
        json={"result": "success", "base_code": "USD", "conversion_rates": rates},
    )


@pytest.mark.asyncio
async def test_latest_rates_success():
    source, seen = _source(lambda r: _ok({"USD": 1, "GBP": 0.79}))

    rates = await source.latest_rates("USD")

    assert rates == {"USD": 1.0, "GBP": 0.79}
    assert str(seen[0].url) == f"{BASE_URL}/key123/latest/USD"


@pytest.mark.asyncio
async def test_historical_rates_url_has_unpadded_date_parts():
    source, seen = _source(lambda r: _ok({"GBP": 0.8}))

    rates = await source.historical_rates("USD", date(2024, 1, 5))

    assert rates == {"GBP": 0.8}
    assert str(seen[0].url) == f"{BASE_URL}/key123/history/USD/2024/1/5"


@pytest.mark.asyncio
async def test_non_2xx_status_raises_with_body():
    source, _ = _source(lambda r: httpx.Response(403, text="invalid key"))

    with pytest.raises(RateSourceError, match="403.*invalid key"):
        await source.latest_rates("USD")


@pytest.mark.asyncio
async def test_error_result_raises():
    source, _ = _source(
        lambda r: httpx.Response(200, json={"result": "error", "error-type": "unsupported-code"})
    )

    with pytest.raises(RateSourceError, match="unsupported-code"):
        await source.latest_rates("USD")


@pytest.mark.asyncio
async def test_malformed_body_raises():
    source, _ = _source(lambda r: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(RateSourceError, match="Malformed"):
        await source.latest_rates("USD")


@pytest.mark.asyncio
async def test_malformed_rate_values_raise():
    source, _ = _source(
        lambda r: httpx.Response(
            200,
            content=json.dumps({"result": "success", "conversion_rates": {"GBP": "n/a"}}),
        )
    )

    with pytest.raises(RateSourceError):
        await source.latest_rates("USD")


@pytest.mark.asyncio
async def test_transport_errors_propagate_unchanged():
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    source, _ = _source(boom)

    with pytest.raises(httpx.ConnectError):
        await source.latest_rates("USD")


@pytest.mark.asyncio
async def test_timeouts_propagate_unchanged():
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    source, _ = _source(slow)

    with pytest.raises(httpx.TimeoutException):
        await source.historical_rates("USD", date(2024, 1, 5))


def test_from_settings():
    config = Settings(
        exchangerate_api_key="abc",
        exchangerate_api_url="https://example.test/v6/",
        exchangerate_timeout=3.0,
    )
    source = ExchangeRateApiSource.from_settings(config)
    assert source._api_key == "abc"
    assert source._base_url == "https://example.test/v6"
    assert source._timeout == 3.0


def test_sources_satisfy_protocol():
    assert isinstance(ExchangeRateApiSource("k"), RateSource)
    assert isinstance(StaticRateSource({}), RateSource)


@pytest.mark.asyncio
async def test_static_source_records_calls():
    source = StaticRateSource(
        latest={"USD": {"GBP": 0.5}},
        historical={("USD", date(2024, 1, 5)): {"GBP": 0.8}},
    )

    assert await source.latest_rates("USD") == {"GBP": 0.5}
    assert await source.historical_rates("USD", date(2024, 1, 5)) == {"GBP": 0.8}
    assert await source.historical_rates("USD", date(2024, 1, 6)) == {"GBP": 0.5}
    assert source.calls == [
        ("latest", "USD", None),
        ("historical", "USD", date(2024, 1, 5)),
        ("historical", "USD", date(2024, 1, 6)),
    ]


@pytest.mark.asyncio
async def test_static_source_unknown_base():
    source = StaticRateSource(latest={})
    with pytest.raises(RateSourceError):
        await source.latest_rates("USD")
    with pytest.raises(RateSourceError):
        await source.historical_rates("USD", date(2024, 1, 5))
