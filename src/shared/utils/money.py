from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal
from typing import Union

from src.core.exceptions import ValidationError

# Type alias for money values
Money = Decimal

MoneyLike = Union[Decimal, float, int, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "KES": "KSh ",
    "NGN": "₦",
}


def to_decimal(value: MoneyLike) -> Decimal:
    """Convert to Decimal, going through ``str`` so float artefacts never leak in."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: MoneyLike) -> Decimal:
    """
    Round monetary value to 2 decimal places, halves towards positive infinity.

    Examples:
        >>> round_money(10.125)
        Decimal('10.13')
        >>> round_money(10.124)
        Decimal('10.12')
        >>> round_money("-10.125")
        Decimal('-10.12')
    """
    value = to_decimal(value)
    if value < 0:
        return value.quantize(CENT, rounding=ROUND_HALF_DOWN)
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def has_sub_cent_digits(value: MoneyLike) -> bool:
    """True when ``value`` carries non-zero digits below the cent (10.005, 33.333)."""
    value = to_decimal(value)
    return value != value.quantize(CENT)


def to_minor_units(value: MoneyLike) -> int:
    """1234.5 -> 123450 (cents)."""
    return int(round_money(value) * 100)


def from_minor_units(minor: int) -> Decimal:
    """123450 -> Decimal('1234.50')."""
    return round_money(Decimal(minor) / 100)


def percentage_of(base: MoneyLike, percentage: MoneyLike) -> Decimal:
    """``percentage`` % of ``base``, rounded half up to cents."""
    return round_money(to_decimal(base) * to_decimal(percentage) / HUNDRED)


def require_non_negative(value: MoneyLike, field: str) -> Decimal:
    """Round ``value`` and reject it if negative (tuition fee, other charges, ...)."""
    amount = round_money(value)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative, got {amount}", field=field)
    return amount


def format_money(value: MoneyLike, currency: str = "USD") -> str:
    """
    Display string for a money value. Presentation only, never stored.

        >>> format_money(Decimal("-1234.5"), "USD")
        '-$1,234.50'
    """
    amount = round_money(value)
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
