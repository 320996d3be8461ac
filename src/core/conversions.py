"""Money conversion on top of a resolved exchange rate.

Pure arithmetic: nothing here reads or writes the cache. A conversion to
the value's own currency (compared case-insensitively) returns the value
itself without resolving a rate.
Products are rounded half away from zero to 2 places, then truncated to
integer minor units.
"""

from collections.abc import Awaitable, Callable, Mapping
from datetime import date, datetime
from decimal import Decimal

from src.core.currencies import normalize_code
from src.core.money import Money, round2
from src.core.rates.converter import SupportsExchangeRates, historical_rate_with_overrides

RateResolver = Callable[[], Awaitable[Decimal]]


async def convert_to(value: Money, target: str, resolver: RateResolver) -> Money:
    """Convert *value* into *target* using the rate returned by *resolver*."""
    if normalize_code(value.currency) == normalize_code(target):
        return value

    rate = await resolver()
    new_amount = round2(Decimal(value.amount) * rate)
    return Money(int(new_amount), target)


async def convert_and_add(
    value: Money,
    add_to: Money,
    target: str,
    resolver: RateResolver,
) -> Money:
    """Convert *value* into *target*, then add it to *add_to*.

    Raises CurrencyMismatchError when *add_to* is not in *target*.
    """
    converted = await convert_to(value, target, resolver)
    return add_to.add(converted)


def from_decimal_amount(amount: Decimal, currency: str) -> Money:
    return Money.from_decimal(amount, currency)


def from_float_amount(amount: float, currency: str) -> Money:
    return Money.from_float(amount, currency)


async def amount_in(converter: SupportsExchangeRates, value: Money, target: str) -> Money:
    """Convert at the latest rate."""
    return await convert_to(
        value, target, lambda: converter.latest_rate(value.currency, target)
    )


async def amount_in_and_add(
    converter: SupportsExchangeRates,
    value: Money,
    add_to: Money,
    target: str,
) -> Money:
    return await convert_and_add(
        value, add_to, target, lambda: converter.latest_rate(value.currency, target)
    )


async def amount_in_historical(
    converter: SupportsExchangeRates,
    value: Money,
    target: str,
    when: date | datetime,
) -> Money:
    """Convert at the rate published on the day of *when*."""
    return await convert_to(
        value, target, lambda: converter.historical_rate(value.currency, target, when)
    )


async def amount_in_historical_and_add(
    converter: SupportsExchangeRates,
    value: Money,
    add_to: Money,
    target: str,
    when: date | datetime,
) -> Money:
    return await convert_and_add(
        value,
        add_to,
        target,
        lambda: converter.historical_rate(value.currency, target, when),
    )


async def amount_in_historical_with_rates(
    converter: SupportsExchangeRates,
    value: Money,
    target: str,
    when: date | datetime,
    rates: Mapping[str, Decimal],
) -> Money:
    """Convert with a pinned rate from *rates* when one exists for *target*.

    Falls back to the historical rate otherwise.
    """
    return await convert_to(
        value,
        target,
        lambda: historical_rate_with_overrides(converter, value.currency, target, when, rates),
    )
