"""In-process cart and order store used by the server and tests."""
import logging
from decimal import Decimal

from .base import CartProvider, OrderStore
from .schema import LineItem, Order

logger = logging.getLogger(__name__)


class InMemoryCart(CartProvider):
    """Cart held in memory. Adding an existing product bumps its quantity."""

    def __init__(self, items: list[LineItem] | None = None):
        self._items: list[LineItem] = list(items or [])

    def add(self, item: LineItem) -> None:
        for i, existing in enumerate(self._items):
            if existing.product_id == item.product_id:
                self._items[i] = existing.model_copy(
                    update={"quantity": existing.quantity + item.quantity}
                )
                return
        self._items.append(item)

    def remove(self, product_id: str) -> bool:
        before = len(self._items)
        self._items = [i for i in self._items if i.product_id != product_id]
        return len(self._items) != before

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self._items)

    async def items(self) -> list[LineItem]:
        return list(self._items)

    async def total_price(self) -> Decimal:
        return sum((i.line_total for i in self._items), Decimal("0"))

    async def clear(self) -> None:
        self._items = []


class InMemoryOrderStore(OrderStore):
    """Keeps placed orders newest-first. Lost when the process exits."""

    def __init__(self):
        self._orders: list[Order] = []

    async def save(self, order: Order) -> None:
        self._orders.insert(0, order)
        logger.info("Stored order %s (%d total)", order.order_number, len(self._orders))

    def orders(self) -> list[Order]:
        return list(self._orders)
