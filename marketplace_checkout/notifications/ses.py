"""AWS SES relay. Placeholder until SES credentials and signing are wired up."""
from ..errors import ProviderNotImplemented
from .base import NotificationProvider
from .schema import DeliveryResult, NotificationMessage


class SESProvider(NotificationProvider):
    name = "aws-ses"
    implemented = False

    async def _deliver(self, message: NotificationMessage) -> DeliveryResult:
        raise ProviderNotImplemented("AWS SES integration not implemented")
