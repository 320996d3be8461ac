"""Cache-aside exchange-rate lookup.

Latest tables live under ``"{BASE}-latest"`` for a few minutes and may be
served from the local tier. Historical tables live under
``"{YYYY-MM-DD}{BASE}"`` forever and are always read from Redis. A query
for today's UTC date is a latest query.

On a miss the table is fetched once, filtered, stored and returned from
hand. Origin errors propagate to the caller untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Protocol

from src.core.cache import ONE_MINUTE, CacheSetOptions, TwoTierCache
from src.core.currencies import is_supported, normalize_code, parse_currency
from src.core.exceptions import RateNotFoundError
from src.core.rates.source import RateSource

logger = logging.getLogger(__name__)

RateTable = dict[str, Decimal]

LATEST_TTL = 5 * ONE_MINUTE


class SupportsExchangeRates(Protocol):
    async def latest_rates(self, base: str) -> RateTable: ...

    async def latest_rate(self, base: str, target: str) -> Decimal: ...

    async def historical_rate(self, base: str, target: str, when: date | datetime) -> Decimal: ...


def latest_key(base: str) -> str:
    return f"{base}-latest"


def historical_key(day: date, base: str) -> str:
    return f"{day.isoformat()}{base}"


def to_rate_table(raw: Mapping[str, float]) -> RateTable:
    """Keep ISO-4217 codes with a positive finite rate; drop everything else.

    The upstream feed lists codes we do not support, and a zero rate means
    the source has no data for that currency.
    """
    table: RateTable = {}
    for code, value in raw.items():
        if not is_supported(code):
            continue
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            continue
        if not rate.is_finite() or rate <= 0:
            continue
        table[normalize_code(code)] = rate
    return table


def utc_day(when: date | datetime) -> date:
    """Truncate *when* to a calendar day, converting aware datetimes to UTC first."""
    if isinstance(when, datetime):
        if when.tzinfo is not None:
            when = when.astimezone(UTC)
        return when.date()
    return when


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _pick(rates: RateTable, base: str, target: str) -> Decimal:
    rate = rates.get(target)
    if rate is None:
        raise RateNotFoundError(f"No {base}->{target} rate available")
    return rate


class CurrencyConverter:
    """Resolve rate tables through a TwoTierCache backed by a RateSource."""

    def __init__(
        self,
        cache: TwoTierCache,
        source: RateSource,
        *,
        latest_ttl: timedelta = LATEST_TTL,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._cache = cache
        self._source = source
        self._latest_ttl = latest_ttl
        self._now = now

    async def latest_rates(self, base: str) -> RateTable:
        """All latest rates for *base*."""
        base = parse_currency(base)
        key = latest_key(base)

        rates = await self._cache.get(key, RateTable)
        if rates is not None:
            logger.debug("Latest rates for %s served from cache", base)
            return rates

        raw = await self._source.latest_rates(base)
        rates = to_rate_table(raw)
        await self._cache.set(key, rates, CacheSetOptions(expiry=self._latest_ttl))
        return rates

    async def latest_rate(self, base: str, target: str) -> Decimal:
        target = parse_currency(target)
        rates = await self.latest_rates(base)
        return _pick(rates, base, target)

    async def historical_rate(self, base: str, target: str, when: date | datetime) -> Decimal:
        """Rate from *base* to *target* on the day of *when* (UTC)."""
        base = parse_currency(base)
        target = parse_currency(target)
        day = utc_day(when)
        if day == utc_day(self._now()):
            return await self.latest_rate(base, target)

        key = historical_key(day, base)
        # Historical entries are read from Redis only.
        rates = await self._cache.get(key, RateTable, use_local=False)
        if rates is None:
            raw = await self._source.historical_rates(base, day)
            rates = to_rate_table(raw)
            await self._cache.set(key, rates)
        else:
            logger.debug("Historical rates for %s on %s served from cache", base, day)
        return _pick(rates, base, target)


async def historical_rate_with_overrides(
    converter: SupportsExchangeRates,
    base: str,
    target: str,
    when: date | datetime,
    overrides: Mapping[str, Decimal],
) -> Decimal:
    """Return the pinned rate for *target* if present, else the historical rate.

    A pinned rate never touches the cache or the rate source. Codes are
    matched case-insensitively on both sides.
    """
    target = parse_currency(target)
    pinned = {parse_currency(code): rate for code, rate in overrides.items()}
    if target in pinned:
        return pinned[target]
    return await converter.historical_rate(base, target, when)
