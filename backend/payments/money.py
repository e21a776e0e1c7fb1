"""
Monetary precision helpers for order and payment reconciliation.

Key Principles:
1. NEVER use float for money
2. Round half away from zero (ROUND_HALF_UP on Decimal), at 2 places for
   amounts and at 0 places for whole-unit settlement
3. Round once, at the point a value is stored; never re-round a stored value
4. When a total is split into shares, the last share absorbs the remainder so
   the shares sum back to the total exactly
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Iterable, List, Union

# Set high precision for intermediate calculations
getcontext().prec = 28

Number = Union[Decimal, str, int, float]

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
UNIT = Decimal("1")

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    "INR": 2,  # Indian Rupee (paise)
    "USD": 2,  # United States Dollar (cents)
    "EUR": 2,  # Euro (cents)
    "GBP": 2,  # British Pound (pence)
    "AED": 2,  # UAE Dirham (fils)
    "JPY": 0,  # Japanese Yen (no subunit)
    "KWD": 3,  # Kuwaiti Dinar (fils)
}


def to_decimal(amount: Number) -> Decimal:
    """
    Coerce any numeric input to Decimal without float artifacts.

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal(None)
        Decimal('0.00')
    """
    if amount is None:
        return ZERO
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # Convert float to string first to avoid precision issues
        amount = str(amount)
    return Decimal(amount)


def currency_exponent(currency: str) -> int:
    """
    Get the number of decimal places for a currency.

    Examples:
        >>> currency_exponent("INR")
        2
        >>> currency_exponent("JPY")
        0
    """
    return CURRENCY_EXPONENT.get(currency.upper(), 2)


def quantize_decimal(currency: str) -> Decimal:
    return Decimal(10) ** -currency_exponent(currency)


def quantize(currency: str, amount: Number) -> Decimal:
    """
    Round to currency decimals, half away from zero.

    Examples:
        >>> quantize("INR", "10.125")
        Decimal('10.13')
        >>> quantize("INR", "-10.125")
        Decimal('-10.13')
    """
    return to_decimal(amount).quantize(quantize_decimal(currency), rounding=ROUND_HALF_UP)


def round_money(amount: Number) -> Decimal:
    """Round to 2 places, half away from zero. Used for every stored monetary value."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def round_to_unit(amount: Number) -> Decimal:
    """Round to a whole currency unit, half away from zero."""
    return to_decimal(amount).quantize(UNIT, rounding=ROUND_HALF_UP)


def percent_of(amount: Number, percentage: Number) -> Decimal:
    """
    `percentage` percent of `amount`, rounded to 2 places.

    Examples:
        >>> percent_of("80.00", "5")
        Decimal('4.00')
        >>> percent_of("100.00", "12.5")
        Decimal('12.50')
    """
    return round_money(to_decimal(amount) * to_decimal(percentage) / Decimal("100"))


@dataclass(frozen=True)
class RoundoffResult:
    """
    Whole-unit settlement of an exact amount.

    `raw` is the canonical amount that is stored; `adjustment` is stored next to
    it so that `raw + adjustment == rounded` can always be reconstructed.
    """

    raw: Decimal
    rounded: Decimal
    adjustment: Decimal


def compute_roundoff(raw_amount: Number) -> RoundoffResult:
    """
    Round an amount to the nearest whole unit and report the signed adjustment.

    Examples:
        >>> compute_roundoff("104.60")
        RoundoffResult(raw=Decimal('104.60'), rounded=Decimal('105'), adjustment=Decimal('0.40'))
        >>> compute_roundoff("104.50").adjustment
        Decimal('0.50')
        >>> compute_roundoff("104.40").adjustment
        Decimal('-0.40')
    """
    raw = round_money(raw_amount)
    rounded = round_to_unit(raw)
    return RoundoffResult(raw=raw, rounded=rounded, adjustment=round_money(rounded - raw))


def sum_money(amounts: Iterable[Number]) -> Decimal:
    return round_money(sum((to_decimal(a) for a in amounts), ZERO))


def allocate_proportionally(total: Number, weights: List[Number]) -> List[Decimal]:
    """
    Split `total` across lines in proportion to `weights`, at 2 places.

    Each share is rounded half away from zero; the last line absorbs whatever
    remainder is left so that sum(result) == total exactly. Zero total weight
    puts the whole total on the last line.

    Examples:
        >>> allocate_proportionally("10.00", ["1", "1", "1"])
        [Decimal('3.33'), Decimal('3.33'), Decimal('3.34')]
        >>> allocate_proportionally("4.00", ["60", "24"])
        [Decimal('2.86'), Decimal('1.14')]
    """
    total_decimal = round_money(total)
    if not weights:
        return []

    weight_values = [to_decimal(w) for w in weights]
    total_weight = sum(weight_values, ZERO)
    if total_weight == 0:
        return [ZERO] * (len(weights) - 1) + [total_decimal]

    shares = [round_money(total_decimal * w / total_weight) for w in weight_values[:-1]]
    shares.append(total_decimal - sum(shares, ZERO))
    return shares


def format_money(currency: str, amount: Number) -> str:
    """
    Format an amount for user-facing messages.

    Examples:
        >>> format_money("INR", "20")
        '₹20.00'
        >>> format_money("USD", "1013.5")
        '$1,013.50'
    """
    symbols = {
        "INR": "₹",
        "USD": "$",
        "EUR": "€",
        "GBP": "£",
        "JPY": "¥",
    }
    symbol = symbols.get(currency.upper(), currency.upper() + " ")
    exponent = currency_exponent(currency)
    return f"{symbol}{quantize(currency, amount):,.{exponent}f}"
