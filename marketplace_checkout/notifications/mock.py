"""Local development provider: logs instead of sending, with simulated latency and failures."""
import asyncio
import logging
import random
import secrets
import time

import httpx

from ..config import DispatchSettings
from ..errors import TransportError
from .base import NotificationProvider
from .schema import DeliveryResult, NotificationMessage

logger = logging.getLogger(__name__)


class MockProvider(NotificationProvider):
    """Fails about one send in twenty so retry paths get exercised without a live provider."""

    name = "mock"

    def __init__(
        self,
        settings: DispatchSettings,
        client: httpx.AsyncClient | None = None,
        failure_rate: float = 0.05,
        latency: tuple[float, float] = (0.5, 1.5),  # seconds, min/max
        rng: random.Random | None = None,
    ):
        super().__init__(settings, client)
        self.failure_rate = failure_rate
        self.latency = latency
        self._rng = rng or random.Random()

    async def _deliver(self, message: NotificationMessage) -> DeliveryResult:
        logger.info(
            "MOCK EMAIL from=%s to=%s subject=%r html=%d chars text=%d chars",
            self.settings.sender,
            message.recipients,
            message.subject,
            len(message.html_body),
            len(message.text_body),
        )

        low, high = self.latency
        await asyncio.sleep(self._rng.uniform(low, high))

        if self._rng.random() < self.failure_rate:
            raise TransportError("Mock email provider failure")

        return self.success(f"mock_{int(time.time() * 1000)}_{secrets.token_hex(5)}")
