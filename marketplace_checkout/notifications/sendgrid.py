"""SendGrid v3 mail-send integration."""
import base64

from ..errors import ProviderRejected
from .base import NotificationProvider
from .schema import DeliveryResult, NotificationMessage

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


def _encode(content: str | bytes) -> str:
    raw = content.encode("utf-8") if isinstance(content, str) else content
    return base64.b64encode(raw).decode("ascii")


class SendGridProvider(NotificationProvider):
    """SendGrid answers 202 with the message id in the X-Message-Id header."""

    name = "sendgrid"

    def build_payload(self, message: NotificationMessage) -> dict:
        personalization: dict = {
            "to": [{"email": r} for r in message.recipients],
            "subject": message.subject,
        }
        if message.cc:
            personalization["cc"] = [{"email": r} for r in message.cc]
        if message.bcc:
            personalization["bcc"] = [{"email": r} for r in message.bcc]

        payload: dict = {
            "personalizations": [personalization],
            "from": {"email": self.settings.from_email, "name": self.settings.from_name},
            "content": [
                {"type": "text/plain", "value": message.text_body},
                {"type": "text/html", "value": message.html_body},
            ],
        }
        if message.attachments:
            payload["attachments"] = [
                {"filename": a.filename, "content": _encode(a.content), "type": a.content_type}
                for a in message.attachments
            ]
        if message.headers:
            payload["headers"] = message.headers
        if message.tags:
            payload["categories"] = message.tags
        if message.metadata:
            payload["custom_args"] = {k: str(v) for k, v in message.metadata.items()}
        return payload

    async def _deliver(self, message: NotificationMessage) -> DeliveryResult:
        url = self.settings.api_endpoint or SENDGRID_URL
        response = await self._post_json(url, self.build_payload(message))

        if response.is_success:
            return self.success(response.headers.get("X-Message-Id"))

        try:
            errors = response.json().get("errors") or []
            detail = errors[0].get("message") if errors else None
        except ValueError:
            detail = None
        raise ProviderRejected(detail or f"SendGrid API error: {response.status_code}")
