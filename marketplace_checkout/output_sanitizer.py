"""Output sanitization: mask card data, credentials, and SSNs before tool output leaves the server."""
import re

from .checkout.schema import PaymentData, ShippingData

# Credential patterns
_CREDENTIAL_PATTERNS = [
    re.compile(r"(?i)(api[_-]?key|secret|password|token)\s*[=:]\s*\S+"),
    re.compile(r"SG\.[A-Za-z0-9_-]{16,}\.[A-Za-z0-9_-]{16,}"),  # SendGrid keys
    re.compile(r"\bre_[A-Za-z0-9]{20,}"),                        # Resend keys
    re.compile(r"AKIA[A-Z0-9]{16}"),                             # AWS keys
]

# Card numbers: 13-19 digits, optionally separated
_CARD_NUMBER_PATTERN = re.compile(r"\b(?:\d{4}[-\s]?){2,4}\d{1,4}\b")

# "cvv": "123" in JSON payloads
_CVV_FIELD_PATTERN = re.compile(r'(?i)("cvv"\s*:\s*")[^"]*(")')

_SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


def redact_card_number(number: str) -> str:
    """Mask a card number to show only last 4 digits."""
    digits = re.sub(r"\D", "", number)
    if len(digits) < 4:
        return "****"
    return f"****-****-****-{digits[-4:]}"


def redact_email(email: str) -> str:
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    return f"{local[0]}***@{domain}"


def payment_summary(payment: PaymentData) -> dict:
    """What the shopper may see of their payment details."""
    if payment.method != "card":
        return {"method": payment.method}
    return {
        "method": "card",
        "card": redact_card_number(payment.card_number),
        "cardholder": payment.cardholder_name,
        "billing_same_as_shipping": payment.billing_address.same_as_shipping,
    }


def shipping_summary(shipping: ShippingData) -> dict:
    return {
        "name": shipping.full_name,
        "email": redact_email(shipping.email),
        "city": shipping.city,
        "state": shipping.state,
        "zip": shipping.zip_code[:3] + "**",
        "method": shipping.shipping_method,
    }


def sanitize_output(text: str, max_chars: int = 50000) -> str:
    """
    Sanitize text before returning it to the client.

    - Strips ANSI escape codes
    - Redacts credential patterns and CVV fields
    - Redacts credit card numbers
    - Redacts SSNs
    - Truncates to max_chars
    """
    text = _ANSI_PATTERN.sub("", text)

    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub("[REDACTED]", text)
    text = _CVV_FIELD_PATTERN.sub(r"\1[REDACTED]\2", text)

    text = _CARD_NUMBER_PATTERN.sub("[CARD REDACTED]", text)

    text = _SSN_PATTERN.sub("[SSN REDACTED]", text)

    if len(text) > max_chars:
        text = text[:max_chars] + f"\n\n[... truncated at {max_chars} chars]"

    return text
