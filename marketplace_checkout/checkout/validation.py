"""Form validation for the shipping and payment steps.

Both parsers return a model or raise ``ValidationError`` carrying a
``field -> message`` map, so callers can show errors next to each field.
Nested fields use dotted names, e.g. ``billing_address.city``.
"""
import re
from typing import Any

import pydantic

from ..errors import ValidationError
from .schema import PaymentData, REQUIRED_MESSAGES, ShippingData

_EXPIRY_PATTERN = re.compile(r"^\d{2}/\d{2}$")


def _field_errors(exc: pydantic.ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "__root__"
        if err["type"] == "missing":
            message = REQUIRED_MESSAGES.get(field, f"{field} is required")
        elif err["type"] == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        errors.setdefault(field, message)
    return errors


def _coerce(model: type[pydantic.BaseModel], data: Any):
    if isinstance(data, model):
        data = data.model_dump()
    if not isinstance(data, dict):
        raise ValidationError({"__root__": f"Expected {model.__name__} fields"})
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(_field_errors(e)) from e


def parse_shipping(data: Any) -> ShippingData:
    return _coerce(ShippingData, data)


def _card_errors(payment: PaymentData) -> dict[str, str]:
    errors: dict[str, str] = {}

    number = re.sub(r"\s", "", payment.card_number)
    if not number:
        errors["card_number"] = "Card number is required"
    elif len(number) < 16:
        errors["card_number"] = "Please enter a valid card number"

    if not payment.expiry_date.strip():
        errors["expiry_date"] = "Expiry date is required"
    elif not _EXPIRY_PATTERN.match(payment.expiry_date):
        errors["expiry_date"] = "Please enter a valid expiry date (MM/YY)"

    if not payment.cvv.strip():
        errors["cvv"] = "CVV is required"
    elif len(payment.cvv) < 3:
        errors["cvv"] = "Please enter a valid CVV"

    if not payment.cardholder_name.strip():
        errors["cardholder_name"] = "Cardholder name is required"

    billing = payment.billing_address
    if not billing.same_as_shipping:
        if not billing.address.strip():
            errors["billing_address.address"] = "Billing address is required"
        if not billing.city.strip():
            errors["billing_address.city"] = "Billing city is required"
        if not billing.state.strip():
            errors["billing_address.state"] = "Billing state is required"
        if not billing.zip_code.strip():
            errors["billing_address.zip_code"] = "Billing ZIP code is required"

    return errors


def parse_payment(data: Any) -> PaymentData:
    payment = _coerce(PaymentData, data)
    if payment.method == "card":
        errors = _card_errors(payment)
        if errors:
            raise ValidationError(errors)
    return payment
