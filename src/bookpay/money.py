"""
Money helpers. Every amount is a Decimal rounded half-up to cents.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

MoneyLike = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

CURRENCY_SYMBOLS = {"usd": "$", "cad": "$", "aud": "$", "eur": "€", "gbp": "£"}


def to_money(value: MoneyLike) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() first, otherwise 0.1 becomes 0.1000000000000000055...
        return Decimal(str(value))
    return Decimal(value)


def round2(value: MoneyLike) -> Decimal:
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp0(value: MoneyLike) -> Decimal:
    value = to_money(value)
    return value if value > 0 else ZERO


def to_cents(value: MoneyLike) -> int:
    return int((round2(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return round2(Decimal(cents) / 100)


def format_currency(value: MoneyLike, currency: str = "usd") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.lower(), "")
    amount = round2(value)
    sign = "-" if amount < 0 else ""
    text = f"{sign}{symbol}{abs(amount):,.2f}"
    return text if symbol else f"{text} {currency.upper()}"
