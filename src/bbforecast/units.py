"""Value unit conversion (display amounts <-> integer base units)."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

DEFAULT_DECIMALS = 18


def parse_value(amount: str | int | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """'0.5' -> 500000000000000000 with 18 decimals. Rejects negatives and excess precision."""
    try:
        d = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {amount!r}") from None
    if not d.is_finite() or d < 0:
        raise ValueError(f"Amount must be a non-negative finite number: {amount!r}")
    scaled = d.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount!r} has more than {decimals} decimal places")
    return int(scaled)


def format_value(base_units: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """500000000000000000 -> '0.5'."""
    if base_units < 0:
        raise ValueError("Base units must be non-negative")
    d = Decimal(base_units).scaleb(-decimals)
    text = format(d, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
