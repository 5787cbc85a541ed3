"""Pydantic models for checkout step data, cart lines, and orders."""
import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckoutStep(str, Enum):
    """Checkout steps in the order a session moves through them."""
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"
    COMPLETE = "complete"


STEP_ORDER = [CheckoutStep.SHIPPING, CheckoutStep.PAYMENT, CheckoutStep.REVIEW, CheckoutStep.COMPLETE]

OrderStatus = Literal["processing", "confirmed", "shipped", "delivered"]
PaymentMethodType = Literal["card", "paypal", "apple_pay", "google_pay"]

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Messages shown next to each required field
REQUIRED_MESSAGES = {
    "first_name": "First name is required",
    "last_name": "Last name is required",
    "email": "Email is required",
    "phone": "Phone number is required",
    "address": "Address is required",
    "city": "City is required",
    "state": "State is required",
    "zip_code": "ZIP code is required",
    "country": "Country is required",
}


class Identity(BaseModel):
    """Authenticated shopper, supplied by the identity provider."""
    user_id: str
    email: str
    name: str = ""


class LineItem(BaseModel):
    """One cart line captured into the checkout snapshot."""
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str = ""
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    seller_id: str = ""
    image: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class ShippingData(BaseModel):
    """Shipping form fields."""
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    address2: str = ""
    city: str
    state: str
    zip_code: str
    country: str = "US"
    shipping_method: str = "standard"  # standard, express, overnight

    @field_validator(*REQUIRED_MESSAGES)
    @classmethod
    def _not_blank(cls, value: str, info) -> str:
        value = value.strip()
        if not value:
            raise ValueError(REQUIRED_MESSAGES[info.field_name])
        return value

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("Please enter a valid email")
        return value

    @field_validator("shipping_method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class BillingAddress(BaseModel):
    """Billing address; only filled in when it differs from shipping."""
    same_as_shipping: bool = True
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "US"


class PaymentData(BaseModel):
    """Payment form fields. Card fields are only required for card payments."""
    method: PaymentMethodType = "card"
    card_number: str = ""
    expiry_date: str = ""  # MM/YY
    cvv: str = ""
    cardholder_name: str = ""
    billing_address: BillingAddress = Field(default_factory=BillingAddress)


class Order(BaseModel):
    """Terminal record produced by a completed checkout."""
    model_config = ConfigDict(frozen=True)

    id: str
    order_number: str
    customer_id: str
    items: tuple[LineItem, ...]
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal
    shipping_data: ShippingData
    payment_data: PaymentData
    status: OrderStatus = "processing"
    created_at: datetime
    estimated_delivery: datetime
