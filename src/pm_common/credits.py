"""Fixed-point arithmetic for credits and shares.

All balances, stakes, reserves and share counts are Decimal, quantised to
CREDIT_QUANTUM (6 dp) and stored as NUMERIC(20, 6). Floats are accepted
only at the API boundary and converted through their string form.
"""

from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Decimal, InvalidOperation

CREDIT_QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")
BPS_DENOMINATOR = Decimal("10000")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a boundary value to Decimal without binary-float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a credit amount")
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric amount: {value!r}") from exc


def quantize_down(value: Decimal) -> Decimal:
    """Truncate toward zero. Used for anything paid out of a pool."""
    return value.quantize(CREDIT_QUANTUM, rounding=ROUND_DOWN)


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CREDIT_QUANTUM, rounding=ROUND_HALF_EVEN)


def fee_multiplier(fee_bps: int) -> Decimal:
    """1 - fee_bps / 10000, e.g. 30 bps -> 0.997."""
    return Decimal(1) - Decimal(fee_bps) / BPS_DENOMINATOR


def credits_to_display(amount: Decimal) -> str:
    """Format credits for humans: Decimal('1500.5') -> '1,500.50'."""
    rounded = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    if rounded < 0:
        return f"-{-rounded:,.2f}"
    return f"{rounded:,.2f}"
