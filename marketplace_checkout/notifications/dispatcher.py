"""
Notification dispatch with retries, bulk batching, and background sends.

    dispatcher = NotificationDispatcher.from_settings(DispatchSettings.from_env())
    result = await dispatcher.send(message)

Every provider failure, including timeouts, is retried up to
``settings.max_attempts`` times with a linear backoff of
``retry_delay * attempt`` seconds. Callers only ever see a ``DeliveryResult``.
"""
import asyncio
import logging
from typing import Optional, Sequence

import httpx

from ..config import DispatchSettings
from ..errors import DeliveryFailed
from .base import NotificationProvider
from .registry import get_provider
from .schema import DeliveryResult, NotificationMessage

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Sends messages through one provider. Safe to share between concurrent callers."""

    def __init__(self, provider: NotificationProvider, settings: DispatchSettings | None = None):
        self.provider = provider
        self.settings = settings or provider.settings
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: DispatchSettings,
        client: httpx.AsyncClient | None = None,
    ) -> "NotificationDispatcher":
        return cls(get_provider(settings, client), settings)

    @property
    def provider_name(self) -> str:
        return self.provider.name

    async def _attempt(self, message: NotificationMessage) -> DeliveryResult:
        timeout = self.settings.send_timeout
        try:
            return await asyncio.wait_for(self.provider.send(message), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Provider %s timed out after %ss", self.provider.name, timeout)
            return self.provider.failure(f"Timed out after {timeout}s")
        except Exception as e:
            logger.exception("Provider %s raised unexpectedly", self.provider.name)
            return self.provider.failure(str(e) or type(e).__name__)

    async def send(self, message: NotificationMessage) -> DeliveryResult:
        """Deliver one message, retrying failed attempts."""
        attempts = self.settings.max_attempts
        result: Optional[DeliveryResult] = None

        for attempt in range(1, attempts + 1):
            logger.info(
                "Sending email attempt %d/%d to %s (%r) via %s",
                attempt, attempts, message.recipients, message.subject, self.provider.name,
            )
            result = await self._attempt(message)
            if result.success:
                logger.info("Email sent: %s", result.message_id)
                return result

            logger.warning("Email send attempt %d failed: %s", attempt, result.error)
            if not self.provider.implemented:
                break
            if attempt < attempts:
                await asyncio.sleep(self.settings.retry_delay * attempt)

        if result is None:
            result = self.provider.failure("No delivery attempts configured")
        logger.warning("Giving up on email to %s: %s", message.recipients, result.error)
        return result

    async def send_bulk(self, messages: Sequence[NotificationMessage]) -> list[DeliveryResult]:
        """
        Deliver many messages in fixed-size batches.

        Messages in a batch are sent concurrently; the next batch starts only
        once the previous one has finished. Results line up with ``messages``.
        """
        size = self.settings.batch_size
        results: list[DeliveryResult] = []

        for start in range(0, len(messages), size):
            batch = messages[start:start + size]
            logger.info("Sending batch of %d emails (%d-%d of %d)",
                        len(batch), start + 1, start + len(batch), len(messages))
            results.extend(await asyncio.gather(*(self.send(m) for m in batch)))

            if start + size < len(messages):
                await asyncio.sleep(self.settings.batch_delay)

        return results

    # ------------------------------------------------------------------
    # Background sends
    # ------------------------------------------------------------------

    def send_in_background(self, message: NotificationMessage, label: str = "notification") -> asyncio.Task:
        """Start a send without waiting for it. Failures are logged, never raised to the caller."""

        async def _run() -> DeliveryResult:
            result = await self.send(message)
            return result.raise_for_status()

        task = asyncio.create_task(_run(), name=f"notify:{label}")
        self._background.add(task)
        task.add_done_callback(lambda t: self._on_background_done(t, label))
        return task

    def _on_background_done(self, task: asyncio.Task, label: str) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.info("Background %s cancelled", label)
            return
        exc = task.exception()
        if isinstance(exc, DeliveryFailed):
            logger.warning("Background %s not delivered: %s", label, exc)
        elif exc is not None:
            logger.error("Background %s crashed", label, exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for outstanding background sends (used at shutdown and in tests)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
