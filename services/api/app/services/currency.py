"""Business (CRC) <-> settlement (USD) conversion and capture reconciliation."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.02")


def as_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 19.8 becomes Decimal("19.8"), not its binary expansion.
    return Decimal(str(value))


def to_settlement_amount(business_total: Decimal | float | int, rate: Decimal | float | int) -> Decimal:
    """Convert a business-currency total to the gateway's settlement currency.

    Rounds half-up to 2 decimals. Intent creation and capture must both go through this
    function with the same configured rate, or reconciliation will drift.
    """

    rate_d = as_decimal(rate)
    if rate_d <= 0:
        raise ValueError("rate must be positive")
    return (as_decimal(business_total) / rate_d).quantize(_CENT, rounding=ROUND_HALF_UP)


def within_tolerance(
    captured: Decimal | float | str,
    expected: Decimal | float | str,
    epsilon: Decimal | float | str = DEFAULT_TOLERANCE,
) -> bool:
    return abs(as_decimal(captured) - as_decimal(expected)) <= as_decimal(epsilon)
