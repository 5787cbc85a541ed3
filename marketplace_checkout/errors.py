"""Exception hierarchy for checkout and notification dispatch."""


class CheckoutError(Exception):
    """Base class for errors raised by the checkout controller."""


class InvalidStepTransition(CheckoutError):
    """A step operation was attempted out of sequence."""

    def __init__(self, current: str, attempted: str):
        super().__init__(f"Cannot {attempted} while checkout is at step '{current}'")
        self.current = current
        self.attempted = attempted


class ValidationError(CheckoutError):
    """Step input failed validation. ``field_errors`` maps field name to message."""

    def __init__(self, field_errors: dict[str, str]):
        fields = ", ".join(sorted(field_errors))
        super().__init__(f"Invalid input for: {fields}")
        self.field_errors = field_errors


class OrderPlacementFailed(CheckoutError):
    """The order store rejected the order. The session stays at review."""


class CheckoutBusy(CheckoutError):
    """Another step call is still outstanding for this session."""


class EmptyCart(CheckoutError):
    """Checkout cannot start with an empty cart."""


class NotAuthenticated(CheckoutError):
    """Checkout requires an authenticated identity."""


class NotificationError(Exception):
    """Base class for notification dispatch errors."""


class DeliveryFailed(NotificationError):
    """All delivery attempts for a message were exhausted."""

    def __init__(self, provider: str, error: str | None):
        super().__init__(f"Delivery via {provider} failed: {error or 'unknown error'}")
        self.provider = provider
        self.error = error


class ProviderNotImplemented(NotificationError):
    """The configured provider has no working integration."""


class TransportError(NotificationError):
    """Network-level failure talking to a provider."""


class ProviderRejected(NotificationError):
    """The provider answered but refused the message."""
