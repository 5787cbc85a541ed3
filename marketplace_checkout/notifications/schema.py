"""Message and result types shared by every notification provider."""
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..errors import DeliveryFailed


class Attachment(BaseModel):
    filename: str
    content: str | bytes
    content_type: str = "application/octet-stream"


class NotificationMessage(BaseModel):
    """A single logical message. ``recipients`` accepts one address or a list."""
    recipients: list[str] = Field(min_length=1)
    subject: str
    html_body: str = ""
    text_body: str = ""
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("recipients", "cc", "bcc", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class DeliveryResult(BaseModel):
    """Uniform outcome of a send, whichever provider handled it."""
    success: bool
    provider: str
    message_id: Optional[str] = None
    error: Optional[str] = None

    def raise_for_status(self) -> "DeliveryResult":
        """Raise ``DeliveryFailed`` if the send did not succeed."""
        if not self.success:
            raise DeliveryFailed(self.provider, self.error)
        return self
