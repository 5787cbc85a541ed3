"""Abstract base class for notification providers."""
import logging
from abc import ABC, abstractmethod

import httpx

from ..config import DispatchSettings
from ..errors import ProviderNotImplemented, ProviderRejected, TransportError
from .schema import DeliveryResult, NotificationMessage

logger = logging.getLogger(__name__)


class NotificationProvider(ABC):
    """
    One delivery integration.

    Subclasses implement ``_deliver`` and may raise ``TransportError``,
    ``ProviderRejected`` or ``ProviderNotImplemented``; ``send`` turns those
    into a failed ``DeliveryResult`` so nothing provider-specific leaks out.
    """

    name: str = "unknown"
    # False for integrations that can never succeed; retrying them is pointless
    implemented: bool = True

    def __init__(self, settings: DispatchSettings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client

    @abstractmethod
    async def _deliver(self, message: NotificationMessage) -> DeliveryResult:
        """Hand the message to the provider and describe the outcome."""
        ...

    async def send(self, message: NotificationMessage) -> DeliveryResult:
        try:
            return await self._deliver(message)
        except ProviderNotImplemented as e:
            logger.error("Provider %s is not implemented: %s", self.name, e)
            return self.failure(str(e))
        except ProviderRejected as e:
            logger.warning("Provider %s rejected message to %s: %s", self.name, message.recipients, e)
            return self.failure(str(e))
        except TransportError as e:
            logger.warning("Provider %s transport error: %s", self.name, e)
            return self.failure(str(e))

    def success(self, message_id: str | None = None) -> DeliveryResult:
        return DeliveryResult(success=True, provider=self.name, message_id=message_id)

    def failure(self, error: str) -> DeliveryResult:
        return DeliveryResult(success=False, provider=self.name, error=error)

    async def _post_json(self, url: str, payload: dict) -> httpx.Response:
        """POST JSON with bearer auth, mapping network errors to ``TransportError``."""
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self._client is not None:
                return await self._client.post(url, json=payload, headers=headers)
            async with httpx.AsyncClient(timeout=self.settings.send_timeout) as client:
                return await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{self.name} request failed: {e}") from e
