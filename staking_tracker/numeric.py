"""
Decimal helpers for token amounts.

On-chain amounts are integer strings in base units (e.g. ``uatom``) that can
exceed float precision, so every amount in the tracker is a ``Decimal``.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Iterable, Optional, Union

from staking_tracker.exceptions import InputError

Numeric = Union[int, str, Decimal]

ZERO = Decimal(0)


def to_decimal(value: Numeric, label: str = "amount") -> Decimal:
    """
    Parse a numeric value into a Decimal.

    Raises:
        InputError: If the value is missing, malformed, NaN or infinite
    """
    if value is None or isinstance(value, bool):
        raise InputError(f"{label} is required")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(value) if isinstance(value, (int, Decimal)) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InputError(f"{label} is not a number: {value!r}")
    if not result.is_finite():
        raise InputError(f"{label} must be finite: {value!r}")
    return result


def to_amount(value: Numeric, label: str = "amount") -> Decimal:
    """Parse a non-negative integer amount of base units."""
    amount = to_decimal(value, label)
    if amount < 0:
        raise InputError(f"{label} must not be negative: {value!r}")
    if amount != amount.to_integral_value():
        raise InputError(f"{label} must be a whole number of base units: {value!r}")
    return amount.to_integral_value()


def safe_decimal(value) -> Decimal:
    """Like ``to_decimal`` but malformed or negative values count as zero."""
    try:
        result = to_decimal(value)
    except InputError:
        return ZERO
    return result if result > 0 else ZERO


def dsum(values: Iterable[Numeric]) -> Decimal:
    return sum((to_decimal(v) for v in values), ZERO)


def has(value) -> bool:
    """True when value parses to a positive amount."""
    return safe_decimal(value) > 0


def divide_to_integer(numerator: Decimal, denominator: int) -> Decimal:
    """Floor division for non-negative amounts."""
    if denominator <= 0:
        raise InputError("cannot divide an amount across zero parts")
    return numerator // Decimal(denominator)


def _shift(value: Decimal, places: int) -> Decimal:
    """Move the decimal point without rounding to the context precision."""
    sign, digits, exponent = value.as_tuple()
    return Decimal((sign, digits, exponent + places))


def to_base_units(display_amount: Numeric, decimals: int) -> Decimal:
    """Scale a display amount (e.g. 100 ATOM) to base units (100000000 uatom)."""
    return _shift(to_decimal(display_amount), decimals)


def to_display(amount: Numeric, decimals: int) -> Decimal:
    """Scale base units down to the display unit."""
    return _shift(to_decimal(amount), -decimals)


def rescale(amount: Numeric, from_decimals: int, to_decimals: int) -> Decimal:
    """Re-express a base-unit amount in a denomination with different decimals."""
    return _shift(to_decimal(amount), to_decimals - from_decimals)


def read_amount(amount: Numeric, decimals: int = 6, fixed: Optional[int] = None, comma: bool = False) -> str:
    """
    Format a base-unit amount for display.

    The value is truncated (never rounded up) to ``fixed`` places, or to
    ``decimals`` places with trailing zeros dropped when ``fixed`` is None.

    Args:
        amount: Amount in base units
        decimals: Token decimals
        fixed: Number of places to keep, padding with zeros
        comma: Insert thousands separators

    Returns:
        str: e.g. read_amount(1234567890, 6) == "1234.56789"
    """
    value = to_display(amount, decimals)
    places = decimals if fixed is None else fixed
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)

    text = f"{quantized:,f}" if comma else f"{quantized:f}"
    if fixed is None and "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
