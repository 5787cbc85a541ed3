"""Environment-driven settings for notification dispatch."""
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict


DEFAULT_FROM_ADDRESS = "noreply@findora.com"
DEFAULT_FROM_NAME = "Findora"


class DispatchSettings(BaseModel):
    """Immutable dispatcher configuration, read once and passed in at construction."""

    model_config = ConfigDict(frozen=True)

    provider: str = "mock"
    api_key: str = ""
    from_email: str = DEFAULT_FROM_ADDRESS
    from_name: str = DEFAULT_FROM_NAME
    api_endpoint: Optional[str] = None

    max_attempts: int = 3
    retry_delay: float = 1.0  # seconds, multiplied by the attempt number
    send_timeout: float = 10.0  # seconds per provider call
    batch_size: int = 10
    batch_delay: float = 0.5  # seconds between bulk batches

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_email}>"

    @classmethod
    def from_env(cls) -> "DispatchSettings":
        """Build settings from EMAIL_* environment variables."""
        return cls(
            provider=os.environ.get("EMAIL_PROVIDER", "mock").strip().lower() or "mock",
            api_key=os.environ.get("EMAIL_API_KEY", ""),
            from_email=os.environ.get("EMAIL_FROM_ADDRESS", DEFAULT_FROM_ADDRESS),
            from_name=os.environ.get("EMAIL_FROM_NAME", DEFAULT_FROM_NAME),
            api_endpoint=os.environ.get("EMAIL_API_ENDPOINT") or None,
            send_timeout=float(os.environ.get("EMAIL_SEND_TIMEOUT", "10")),
            retry_delay=float(os.environ.get("EMAIL_RETRY_DELAY", "1.0")),
        )
