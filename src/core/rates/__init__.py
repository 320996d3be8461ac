from src.core.rates.converter import (
    CurrencyConverter,
    RateTable,
    SupportsExchangeRates,
    historical_rate_with_overrides,
    to_rate_table,
)
from src.core.rates.source import ExchangeRateApiSource, RateSource, StaticRateSource

__all__ = [
    "CurrencyConverter",
    "ExchangeRateApiSource",
    "RateSource",
    "RateTable",
    "StaticRateSource",
    "SupportsExchangeRates",
    "historical_rate_with_overrides",
    "to_rate_table",
]
