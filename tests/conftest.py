"""Shared test fixtures."""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from marketplace_checkout.checkout import (
    Identity,
    InMemoryCart,
    InMemoryOrderStore,
    LineItem,
    Order,
    PaymentData,
    ShippingData,
)
from marketplace_checkout.config import DispatchSettings
from marketplace_checkout.errors import TransportError
from marketplace_checkout.notifications import NotificationDispatcher, NotificationProvider


FIXED_NOW = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)


class ScriptedProvider(NotificationProvider):
    """Succeeds or fails according to a script; the last entry repeats."""

    name = "scripted"

    def __init__(self, settings, outcomes=(True,)):
        super().__init__(settings)
        self.outcomes = list(outcomes)
        self.calls = 0
        self.messages = []

    async def _deliver(self, message):
        self.calls += 1
        self.messages.append(message)
        ok = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if not ok:
            raise TransportError(f"attempt {self.calls} failed")
        return self.success(f"msg-{self.calls}")


class WaveProvider(NotificationProvider):
    """Records which sends overlap, grouping them into waves of concurrent calls."""

    name = "wave"

    def __init__(self, settings):
        super().__init__(settings)
        self.in_flight = 0
        self.max_in_flight = 0
        self.waves: list[list[str]] = []

    async def _deliver(self, message):
        if self.in_flight == 0:
            self.waves.append([])
        self.waves[-1].append(message.subject)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
        finally:
            self.in_flight -= 1
        return self.success(message.subject)


@pytest.fixture
def fast_settings():
    """Dispatcher settings with no waiting between retries or batches."""
    return DispatchSettings(provider="mock", retry_delay=0, batch_delay=0, send_timeout=2)


@pytest.fixture
def scripted(fast_settings):
    def _make(*outcomes):
        provider = ScriptedProvider(fast_settings, outcomes or (True,))
        return provider, NotificationDispatcher(provider, fast_settings)
    return _make


@pytest.fixture
def identity():
    return Identity(user_id="user-42", email="jane.doe@example.com", name="Jane")


@pytest.fixture
def line_items():
    return [
        LineItem(product_id="p-1", name="Ceramic Mug", unit_price=Decimal("20.00"), quantity=2, seller_id="s-1"),
        LineItem(product_id="p-2", name="Tea Sampler", unit_price=Decimal("15.50"), quantity=1, seller_id="s-2"),
    ]


@pytest.fixture
def cart(line_items):
    return InMemoryCart(line_items)


@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def shipping_form():
    return {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane.doe@example.com",
        "phone": "415-555-0100",
        "address": "123 Main Street",
        "address2": "Apt 4B",
        "city": "San Francisco",
        "state": "CA",
        "zip_code": "94102",
        "country": "US",
        "shipping_method": "express",
    }


@pytest.fixture
def payment_form():
    return {
        "method": "card",
        "card_number": "4111 1111 1111 1234",
        "expiry_date": "12/27",
        "cvv": "123",
        "cardholder_name": "Jane Doe",
        "billing_address": {"same_as_shipping": True},
    }


@pytest.fixture
def sample_order(line_items, shipping_form, payment_form):
    return Order(
        id="order_1772465400000_AB12CD",
        order_number="FND-AB12CD",
        customer_id="user-42",
        items=tuple(line_items),
        subtotal=Decimal("55.50"),
        shipping_cost=Decimal("12.99"),
        tax=Decimal("4.44"),
        total=Decimal("72.93"),
        shipping_data=ShippingData(**shipping_form),
        payment_data=PaymentData(**payment_form),
        created_at=FIXED_NOW,
        estimated_delivery=datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def wave(fast_settings):
    provider = WaveProvider(fast_settings)
    return provider, NotificationDispatcher(provider, fast_settings)
