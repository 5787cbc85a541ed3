"""Resend email API integration."""
import base64

from ..errors import ProviderRejected
from .base import NotificationProvider
from .schema import DeliveryResult, NotificationMessage

RESEND_URL = "https://api.resend.com/emails"


class ResendProvider(NotificationProvider):
    """Resend returns ``{"id": ...}`` on success and ``{"message": ...}`` on error."""

    name = "resend"

    def build_payload(self, message: NotificationMessage) -> dict:
        payload: dict = {
            "from": self.settings.sender,
            "to": message.recipients,
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
        }
        if message.cc:
            payload["cc"] = message.cc
        if message.bcc:
            payload["bcc"] = message.bcc
        if message.headers:
            payload["headers"] = message.headers
        if message.tags:
            payload["tags"] = [{"name": tag, "value": "true"} for tag in message.tags]
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": a.filename,
                    "content": base64.b64encode(
                        a.content.encode("utf-8") if isinstance(a.content, str) else a.content
                    ).decode("ascii"),
                }
                for a in message.attachments
            ]
        return payload

    async def _deliver(self, message: NotificationMessage) -> DeliveryResult:
        url = self.settings.api_endpoint or RESEND_URL
        response = await self._post_json(url, self.build_payload(message))

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_success:
            return self.success(data.get("id"))
        raise ProviderRejected(data.get("message") or f"Resend API error: {response.status_code}")
