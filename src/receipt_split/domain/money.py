"""Money helpers using Decimal with cent precision."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

MONEY_PRECISION = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(value: Decimal) -> Decimal:
    """Return value rounded to two decimal places with HALF_UP strategy."""

    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render money as string with exactly two decimal places."""

    return f"{quantize_money(value):.2f}"


def normalize_money(value: Decimal | None) -> Decimal | None:
    """Drop negative or non-finite amounts and round the rest to cents."""

    if value is None or not value.is_finite() or value < 0:
        return None
    return quantize_money(value)


def round_half_up_int(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value: Decimal) -> int:
    return round_half_up_int(value * 100)


def from_cents(cents: int) -> Decimal:
    return quantize_money(Decimal(cents) / 100)


def floor_int(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def compute_extra_fees_total(
    *,
    receipt_total: Decimal | None,
    item_prices: Iterable[Decimal | None],
    tax: Decimal | None,
    gratuity: Decimal | None,
) -> Decimal:
    """Fees above the item lines: total minus items, else tax plus gratuity."""

    item_total = quantize_money(sum((price or ZERO for price in item_prices), ZERO))
    if receipt_total is not None:
        return max(ZERO, quantize_money(receipt_total - item_total))
    return max(ZERO, quantize_money((tax or ZERO) + (gratuity or ZERO)))


def compute_other_fees(
    *,
    extra_fees_total: Decimal,
    tax: Decimal | None,
    gratuity: Decimal | None,
) -> Decimal | None:
    result = quantize_money(extra_fees_total - (tax or ZERO) - (gratuity or ZERO))
    return result if result >= 0 else None


def compute_gratuity_percent(
    *,
    gratuity: Decimal | None,
    subtotal: Decimal | None,
) -> Decimal | None:
    if gratuity is None or gratuity <= 0 or subtotal is None or subtotal <= 0:
        return None
    return quantize_money(gratuity / subtotal * 100)
