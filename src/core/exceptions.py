"""Exception hierarchy for the FX rate cache."""


class FxError(Exception):
    """Base exception for all FX errors."""
    pass


class RateSourceError(FxError):
    """Rate source returned a bad status, a failed result or a malformed body."""
    pass


class RateNotFoundError(FxError):
    """Resolved rate table has no entry for the requested currency."""
    pass


class UnsupportedCurrencyError(FxError):
    """Currency code is not a known ISO-4217 code."""
    pass


class CurrencyMismatchError(FxError):
    """Monetary values in different currencies cannot be combined."""
    pass


class AmountOutOfRangeError(FxError):
    """Amount is not finite or too large to round to minor units."""
    pass
