"""Currency minor units and display formatting.

Formatting is a display concern only: it never changes a stored amount.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

# ISO 4217 exponents that differ from the usual 2
_ZERO_DECIMAL = {
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
}
_THREE_DECIMAL = {"BHD", "JOD", "KWD", "OMR", "TND"}


def minor_unit_exponent(currency: str) -> int:
    code = currency.upper()
    if code in _ZERO_DECIMAL:
        return 0
    if code in _THREE_DECIMAL:
        return 3
    return 2


def to_minor_units(amount: Decimal | int | float, currency: str) -> int:
    """Convert a major-unit amount to the integer the gateway charges."""
    exponent = minor_unit_exponent(currency)
    scaled = Decimal(str(amount)) * (Decimal(10) ** exponent)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> Decimal:
    exponent = minor_unit_exponent(currency)
    return Decimal(amount) / (Decimal(10) ** exponent)


def format_amount(amount: Decimal | int | float, currency: str) -> str:
    """``format_amount(1000, "EGP") -> "EGP 1,000.00"``; ``(1500, "JPY") -> "JPY 1,500"``."""
    exponent = minor_unit_exponent(currency)
    quantum = Decimal(1).scaleb(-exponent)
    rounded = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{currency.upper()} {rounded:,.{exponent}f}"
