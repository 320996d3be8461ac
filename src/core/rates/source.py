"""Rate sources: where raw conversion-rate tables come from.

The orchestrator only depends on the RateSource protocol. The production
implementation talks to ExchangeRate-API v6; StaticRateSource serves fixed
tables for development and tests.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.core.config import Settings, settings
from src.core.exceptions import RateSourceError

logger = logging.getLogger(__name__)


@runtime_checkable
class RateSource(Protocol):
    """Supplies raw rate tables (code -> rate relative to *base*)."""

    async def latest_rates(self, base: str) -> dict[str, float]:
        """Return the most recent rates for *base*."""
        ...

    async def historical_rates(self, base: str, day: date) -> dict[str, float]:
        """Return the rates for *base* as published on *day*."""
        ...


class ExchangeRateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    result: str
    base_code: str | None = None
    error_type: str | None = Field(default=None, alias="error-type")
    conversion_rates: dict[str, float] = Field(default_factory=dict)


class ExchangeRateApiSource:
    """ExchangeRate-API v6 client.

    Endpoints::

        {base_url}/{key}/latest/{BASE}
        {base_url}/{key}/history/{BASE}/{year}/{month}/{day}

    Transport failures (``httpx.HTTPError``, including timeouts) propagate
    as-is. Bad status, undecodable body and ``result != "success"`` raise
    RateSourceError. Nothing is retried here.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://v6.exchangerate-api.com/v6",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, config: Settings = settings) -> ExchangeRateApiSource:
        return cls(
            api_key=config.exchangerate_api_key,
            base_url=config.exchangerate_api_url,
            timeout=config.exchangerate_timeout,
        )

    async def latest_rates(self, base: str) -> dict[str, float]:
        logger.info("Fetching latest rates for %s", base)
        url = f"{self._base_url}/{self._api_key}/latest/{base}"
        return await self._fetch(url)

    async def historical_rates(self, base: str, day: date) -> dict[str, float]:
        logger.info("Fetching historical rates for %s on %s", base, day.isoformat())
        url = f"{self._base_url}/{self._api_key}/history/{base}/{day.year}/{day.month}/{day.day}"
        return await self._fetch(url)

    async def _fetch(self, url: str) -> dict[str, float]:
        if self._client is not None:
            response = await self._client.get(url)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url)

        if not response.is_success:
            raise RateSourceError(
                f"Rate source returned HTTP {response.status_code}: {response.text}"
            )

        try:
            data = ExchangeRateResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise RateSourceError(f"Malformed rate source response: {e}") from e

        if data.result != "success":
            raise RateSourceError(
                f"Rate source result {data.result!r} ({data.error_type or 'unknown error'})"
            )
        return data.conversion_rates


class StaticRateSource:
    """In-memory rate source with fixed tables.

    ``historical`` is keyed by ``(base, day)``; when a day is missing the
    latest table for that base is served. Every call is recorded in
    ``calls``.
    """

    def __init__(
        self,
        latest: dict[str, dict[str, float]],
        historical: dict[tuple[str, date], dict[str, float]] | None = None,
    ) -> None:
        self._latest = latest
        self._historical = historical or {}
        self.calls: list[tuple[str, str, date | None]] = []

    async def latest_rates(self, base: str) -> dict[str, float]:
        self.calls.append(("latest", base, None))
        if base not in self._latest:
            raise RateSourceError(f"No static rates for {base}")
        return dict(self._latest[base])

    async def historical_rates(self, base: str, day: date) -> dict[str, float]:
        self.calls.append(("historical", base, day))
        table = self._historical.get((base, day))
        if table is None:
            table = self._latest.get(base)
        if table is None:
            raise RateSourceError(f"No static rates for {base} on {day.isoformat()}")
        return dict(table)
