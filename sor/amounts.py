"""Amount conversion helpers.

Functions for converting between human-readable decimal strings and
fixed-point integers scaled by a token's decimal count, plus the display
formatter used for derived amounts. All arithmetic goes through Decimal so
no value produced here ever passes through a float.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from sor.errors import InvalidAmount

# Enough digits for any uint256 amount at 77 decimals
_PRECISION = 160


def _parse_decimal(amount: str) -> Decimal:
    if not isinstance(amount, str):
        raise InvalidAmount(f"Amount must be a string, got {type(amount).__name__}")
    try:
        value = Decimal(amount.strip())
    except InvalidOperation as err:
        raise InvalidAmount(f"Amount is not a decimal number: '{amount}'") from err
    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite: '{amount}'")
    if value < 0:
        raise InvalidAmount(f"Amount cannot be negative: '{amount}'")
    return value


def _canonical(value: Decimal) -> str:
    """Render a Decimal without exponent and without trailing zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def to_fixed_point(amount: str, decimals: int) -> int:
    """Convert a decimal string to a fixed-point integer.

    Args:
        amount: Non-negative decimal string, e.g. "1.5"
        decimals: Token decimal count

    Returns:
        amount * 10**decimals as an exact integer

    Raises:
        InvalidAmount: If amount is malformed, negative, or has more
            fractional digits than the token supports
    """
    if decimals < 0:
        raise InvalidAmount(f"Decimals must be non-negative, got {decimals}")
    value = _parse_decimal(amount)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value(rounding=ROUND_DOWN):
            raise InvalidAmount(f"Amount '{amount}' has more than {decimals} fractional digits")
        return int(scaled)


def is_zero_amount(amount: str) -> bool:
    """Whether ``amount`` is empty or parses to zero ("0", "0.0", "00").

    Malformed amounts are not zero; converting them raises later.
    """
    if amount == "":
        return True
    try:
        return _parse_decimal(amount) == 0
    except InvalidAmount:
        return False


def from_fixed_point(value: int, decimals: int) -> str:
    """Convert a fixed-point integer back to its canonical decimal string.

    The result carries no trailing zeros ("1.5", "2", "0.000001"), so
    ``from_fixed_point(to_fixed_point(a, d), d) == a`` for every canonical a.

    Raises:
        InvalidAmount: If value is negative
    """
    if value < 0:
        raise InvalidAmount(f"Fixed-point amount cannot be negative: {value}")
    if decimals < 0:
        raise InvalidAmount(f"Decimals must be non-negative, got {decimals}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return _canonical(Decimal(value).scaleb(-decimals))


def rescale(value: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale a fixed-point integer between precisions, rounding down."""
    if to_decimals >= from_decimals:
        return value * 10 ** (to_decimals - from_decimals)
    return value // 10 ** (from_decimals - to_decimals)


def format_for_display(amount: str, max_significant_digits: int = 6) -> str:
    """Round a decimal string to a number of significant digits for display.

    Display only: the result is never stored as a canonical amount. Rounds
    half up, never uses exponent notation and drops trailing zeros.

    Raises:
        InvalidAmount: If amount is malformed or negative
    """
    value = _parse_decimal(amount)
    if value == 0:
        return "0"
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        exponent = value.adjusted() - max_significant_digits + 1
        rounded = value.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_HALF_UP)
        return _canonical(rounded)
