"""Order totals: subtotal, delivery fee, tax and grand total.

Money is summed as Decimal and rounded half-up to cents; callers get floats
back because that is what the API and the database columns carry.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ...config import ORDER_DELIVERY_FEE, ORDER_FREE_DELIVERY_THRESHOLD, ORDER_TAX_RATE

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    delivery_fee: float
    tax: float
    total: float


def delivery_fee_for(subtotal) -> float:
    """Free delivery only when the subtotal is strictly above the threshold"""
    if to_money(subtotal) > to_money(ORDER_FREE_DELIVERY_THRESHOLD):
        return 0.0
    return float(to_money(ORDER_DELIVERY_FEE))


def compute_totals(
    lines: Iterable[tuple[float, int]],
    delivery_fee: Optional[float] = None,
    tax_rate: Optional[float] = None,
) -> OrderTotals:
    """
    Compute order totals from (unit_price, quantity) pairs.

    Args:
        lines: Unit price and quantity of every order line
        delivery_fee: Fee recorded on an existing order; derived from the subtotal when omitted
        tax_rate: Rate recorded on an existing order; ORDER_TAX_RATE when omitted

    Returns:
        OrderTotals with every amount rounded to cents
    """
    subtotal = sum(
        (to_money(Decimal(str(price)) * quantity) for price, quantity in lines), Decimal("0")
    )
    fee = to_money(delivery_fee if delivery_fee is not None else delivery_fee_for(subtotal))
    rate = Decimal(str(tax_rate if tax_rate is not None else ORDER_TAX_RATE))
    tax = to_money(subtotal * rate)
    total = subtotal + fee + tax

    return OrderTotals(
        subtotal=float(subtotal),
        delivery_fee=float(fee),
        tax=float(tax),
        total=float(total),
    )
