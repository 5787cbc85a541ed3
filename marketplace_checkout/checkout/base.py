"""Abstract collaborators the checkout controller depends on."""
from abc import ABC, abstractmethod
from decimal import Decimal

from .schema import LineItem, Order


class CartProvider(ABC):
    """The shopper's active cart."""

    @abstractmethod
    async def items(self) -> list[LineItem]:
        """Current cart lines, in display order."""
        ...

    @abstractmethod
    async def total_price(self) -> Decimal:
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Empty the cart after a successful order."""
        ...


class OrderStore(ABC):
    """Accepts finished orders. Raising from ``save`` means the order was not placed."""

    @abstractmethod
    async def save(self, order: Order) -> None:
        ...
