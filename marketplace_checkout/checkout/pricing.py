"""Order pricing: shipping table, flat tax, totals, and delivery estimates."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from .schema import LineItem


DEFAULT_SHIPPING_METHOD = "standard"

SHIPPING_COSTS = {
    "standard": Decimal("5.99"),
    "express": Decimal("12.99"),
    "overnight": Decimal("24.99"),
}

# Calendar days, no weekend handling
DELIVERY_DAYS = {
    "standard": 5,
    "express": 2,
    "overnight": 1,
}

TAX_RATE = Decimal("0.08")

_CENT = Decimal("0.01")


def round2(amount: Decimal) -> Decimal:
    """Round a money amount half-up to cents."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def shipping_cost(method: str) -> Decimal:
    """Flat cost for a shipping method; unknown methods cost the same as standard."""
    return SHIPPING_COSTS.get(method, SHIPPING_COSTS[DEFAULT_SHIPPING_METHOD])


def delivery_days(method: str) -> int:
    return DELIVERY_DAYS.get(method, DELIVERY_DAYS[DEFAULT_SHIPPING_METHOD])


def estimate_delivery(method: str, now: datetime) -> datetime:
    return now + timedelta(days=delivery_days(method))


@dataclass(frozen=True)
class OrderTotals:
    """Money summary for a set of line items and a shipping method."""
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "shipping": str(self.shipping_cost),
            "tax": str(self.tax),
            "total": str(self.total),
        }


def calculate_totals(items: Iterable[LineItem], method: str) -> OrderTotals:
    subtotal = round2(sum((item.line_total for item in items), Decimal("0")))
    shipping = shipping_cost(method)
    tax = round2(subtotal * TAX_RATE)
    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax=tax,
        total=round2(subtotal + shipping + tax),
    )
