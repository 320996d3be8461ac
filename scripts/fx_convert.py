"""Convert an amount between currencies using the cached rate lookup.

Usage::

    python scripts/fx_convert.py 125.50 USD EUR
    python scripts/fx_convert.py 125.50 USD EUR --date 2024-01-15
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import date, timedelta
from decimal import Decimal

# Load .env BEFORE importing anything else (override system env vars)
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from dotenv import load_dotenv

load_dotenv(os.path.join(ROOT, ".env"), override=True)

from src.core.cache import get_cache
from src.core.config import settings
from src.core.conversions import amount_in, amount_in_historical
from src.core.currencies import parse_currency
from src.core.money import Money
from src.core.rates import CurrencyConverter, ExchangeRateApiSource

logging.basicConfig(level=getattr(logging, settings.log_level))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("amount", help="Amount in major units, e.g. 125.50")
    parser.add_argument("source", help="ISO-4217 code of the amount")
    parser.add_argument("target", help="ISO-4217 code to convert into")
    parser.add_argument("--date", type=date.fromisoformat, help="Historical date (YYYY-MM-DD)")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    source = parse_currency(args.source)
    target = parse_currency(args.target)
    value = Money.from_decimal(Decimal(args.amount), source)

    cache = get_cache()
    converter = CurrencyConverter(
        cache,
        ExchangeRateApiSource.from_settings(settings),
        latest_ttl=timedelta(seconds=settings.fx_latest_cache_ttl),
    )
    try:
        if args.date:
            converted = await amount_in_historical(converter, value, target, args.date)
        else:
            converted = await amount_in(converter, value, target)
    finally:
        await cache.aclose()

    print(f"{value} = {converted}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
