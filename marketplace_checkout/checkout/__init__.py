"""Multi-step checkout: step data models, pricing, and the workflow controller."""
from .base import CartProvider, OrderStore
from .memory import InMemoryCart, InMemoryOrderStore
from .schema import (
    BillingAddress,
    CheckoutStep,
    Identity,
    LineItem,
    Order,
    PaymentData,
    ShippingData,
)
from .session import CheckoutSession, StepResult

__all__ = [
    "BillingAddress",
    "CartProvider",
    "CheckoutSession",
    "CheckoutStep",
    "Identity",
    "InMemoryCart",
    "InMemoryOrderStore",
    "LineItem",
    "Order",
    "OrderStore",
    "PaymentData",
    "ShippingData",
    "StepResult",
]
