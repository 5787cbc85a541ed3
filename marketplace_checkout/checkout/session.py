"""
Checkout workflow controller.

A session walks shipping -> payment -> review -> complete. Completing the
review step prices the cart snapshot, hands the order to the order store,
clears the cart, and queues confirmation emails in the background.

    session = await CheckoutSession.start(cart, identity, order_store, dispatcher)
    await session.complete_step("shipping", shipping_form)
    await session.complete_step("payment", payment_form)
    result = await session.complete_step("review")
    result.order.order_number  # "FND-7K2Q9X"
"""
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from ..errors import (
    CheckoutBusy,
    EmptyCart,
    InvalidStepTransition,
    NotAuthenticated,
    OrderPlacementFailed,
)
from ..notifications import templates as email_templates
from ..notifications.dispatcher import NotificationDispatcher
from .base import CartProvider, OrderStore
from .pricing import DEFAULT_SHIPPING_METHOD, calculate_totals, estimate_delivery
from .schema import STEP_ORDER, CheckoutStep, Identity, LineItem, Order, PaymentData, ShippingData
from .validation import parse_payment, parse_shipping

logger = logging.getLogger(__name__)

ORDER_PREFIX = "FND-"
_ORDER_ALPHABET = string.ascii_uppercase + string.digits
_ORDER_TOKEN_LENGTH = 6


def generate_order_number() -> str:
    """Human-readable order number, e.g. ``FND-7K2Q9X``. Not checked for collisions."""
    token = "".join(secrets.choice(_ORDER_ALPHABET) for _ in range(_ORDER_TOKEN_LENGTH))
    return ORDER_PREFIX + token


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StepResult:
    """Outcome of a step call. ``order`` is only set once checkout completes."""
    step: CheckoutStep
    order: Optional[Order] = None


class CheckoutSession:
    """State for one shopper's checkout. Not meant to be shared between callers."""

    def __init__(
        self,
        cart: CartProvider,
        identity: Identity,
        items: list[LineItem],
        order_store: OrderStore,
        dispatcher: NotificationDispatcher | None = None,
        seller_emails: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._cart = cart
        self._identity = identity
        self._items = tuple(items)
        self._order_store = order_store
        self._dispatcher = dispatcher
        self._seller_emails = dict(seller_emails or {})
        self._clock = clock

        self._step = CheckoutStep.SHIPPING
        self._shipping: Optional[ShippingData] = None
        self._payment: Optional[PaymentData] = None
        self._order: Optional[Order] = None
        self._busy = False

    @classmethod
    async def start(
        cls,
        cart: CartProvider,
        identity: Identity | None,
        order_store: OrderStore,
        dispatcher: NotificationDispatcher | None = None,
        **kwargs: Any,
    ) -> "CheckoutSession":
        """Snapshot the cart and open a session at the shipping step."""
        if identity is None:
            raise NotAuthenticated("Sign in to check out")
        items = await cart.items()
        if not items:
            raise EmptyCart("Your cart is empty")
        logger.info("Checkout started for %s with %d line(s)", identity.user_id, len(items))
        return cls(cart, identity, items, order_store, dispatcher, **kwargs)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> CheckoutStep:
        return self._step

    @property
    def shipping_data(self) -> Optional[ShippingData]:
        return self._shipping

    @property
    def payment_data(self) -> Optional[PaymentData]:
        return self._payment

    @property
    def cart_snapshot(self) -> tuple[LineItem, ...]:
        return self._items

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def order(self) -> Optional[Order]:
        return self._order

    @property
    def is_busy(self) -> bool:
        return self._busy

    def summary(self) -> dict:
        """Totals preview for the review screen."""
        method = self._shipping.shipping_method if self._shipping else DEFAULT_SHIPPING_METHOD
        totals = calculate_totals(self._items, method)
        return {
            "step": self._step.value,
            "item_count": sum(i.quantity for i in self._items),
            "shipping_method": method,
            **totals.to_dict(),
            "estimated_delivery": estimate_delivery(method, self._clock()).isoformat(),
        }

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _check_idle(self) -> None:
        if self._busy:
            raise CheckoutBusy("An order is already being placed for this checkout")

    async def complete_step(self, step: CheckoutStep | str, data: Any = None) -> StepResult:
        """
        Finish ``step`` with the submitted form data and advance one step.

        Raises ``InvalidStepTransition`` if ``step`` is not the current step,
        ``ValidationError`` for bad form data, and ``OrderPlacementFailed`` if
        the order store refuses the order. None of these change the session.
        """
        self._check_idle()
        try:
            requested = CheckoutStep(step)
        except ValueError:
            raise InvalidStepTransition(self._step.value, f"complete unknown step '{step}'") from None

        if requested is not self._step or requested is CheckoutStep.COMPLETE:
            raise InvalidStepTransition(self._step.value, f"complete step '{requested.value}'")

        if requested is CheckoutStep.SHIPPING:
            self._shipping = parse_shipping(data)
            self._step = CheckoutStep.PAYMENT
        elif requested is CheckoutStep.PAYMENT:
            self._payment = parse_payment(data)
            self._step = CheckoutStep.REVIEW
        else:
            order = await self._place_order()
            return StepResult(self._step, order)

        logger.debug("Checkout for %s advanced to %s", self._identity.user_id, self._step.value)
        return StepResult(self._step)

    def go_back(self) -> CheckoutStep:
        """Return to the previous step. Only valid from payment or review."""
        self._check_idle()
        if self._step not in (CheckoutStep.PAYMENT, CheckoutStep.REVIEW):
            raise InvalidStepTransition(self._step.value, "go back")
        self._step = STEP_ORDER[STEP_ORDER.index(self._step) - 1]
        return self._step

    # ------------------------------------------------------------------
    # Order placement
    # ------------------------------------------------------------------

    def _build_order(self) -> Order:
        method = self._shipping.shipping_method
        now = self._clock()
        totals = calculate_totals(self._items, method)
        order_number = generate_order_number()

        return Order(
            id=f"order_{int(now.timestamp() * 1000)}_{order_number.removeprefix(ORDER_PREFIX)}",
            order_number=order_number,
            customer_id=self._identity.user_id,
            items=self._items,
            subtotal=totals.subtotal,
            shipping_cost=totals.shipping_cost,
            tax=totals.tax,
            total=totals.total,
            shipping_data=self._shipping,
            payment_data=self._payment,
            status="processing",
            created_at=now,
            estimated_delivery=estimate_delivery(method, now),
        )

    async def _place_order(self) -> Order:
        self._busy = True
        try:
            order = self._build_order()
            try:
                await self._order_store.save(order)
            except Exception as e:
                logger.exception("Order placement failed for %s", self._identity.user_id)
                raise OrderPlacementFailed("Failed to place order. Please try again.") from e

            self._order = order
            self._step = CheckoutStep.COMPLETE
            logger.info("Order %s placed: total %s", order.order_number, order.total)

            try:
                await self._cart.clear()
            except Exception:
                logger.exception("Could not clear cart after order %s", order.order_number)

            self._notify(order)
            return order
        finally:
            self._busy = False

    def _notify(self, order: Order) -> None:
        """Queue confirmation emails. Never raises: the order is already placed."""
        if self._dispatcher is None:
            return
        try:
            self._dispatcher.send_in_background(
                email_templates.order_confirmation(order, self._identity.name or None),
                label=f"order-confirmation:{order.order_number}",
            )
            for seller_id in dict.fromkeys(item.seller_id for item in order.items):
                seller_email = self._seller_emails.get(seller_id)
                if seller_email:
                    self._dispatcher.send_in_background(
                        email_templates.seller_new_order(order, seller_id, seller_email),
                        label=f"seller-new-order:{order.order_number}:{seller_id}",
                    )
        except Exception:
            logger.exception("Could not queue notifications for order %s", order.order_number)
