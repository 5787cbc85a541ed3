"""Provider selection from a configured provider name."""
import logging
from enum import Enum

import httpx

from ..config import DispatchSettings
from ..errors import ProviderNotImplemented
from .base import NotificationProvider
from .mock import MockProvider
from .resend import ResendProvider
from .sendgrid import SendGridProvider
from .ses import SESProvider

logger = logging.getLogger(__name__)


class ProviderName(str, Enum):
    SENDGRID = "sendgrid"
    RESEND = "resend"
    SES = "ses"
    MOCK = "mock"


PROVIDER_CLASSES: dict[ProviderName, type[NotificationProvider]] = {
    ProviderName.SENDGRID: SendGridProvider,
    ProviderName.RESEND: ResendProvider,
    ProviderName.SES: SESProvider,
    ProviderName.MOCK: MockProvider,
}

# Alternate spellings accepted in EMAIL_PROVIDER
PROVIDER_ALIASES = {
    "aws-ses": ProviderName.SES,
    "aws_ses": ProviderName.SES,
}

# Providers that talk to a real HTTP API and need EMAIL_API_KEY
_KEYED = {ProviderName.SENDGRID, ProviderName.RESEND}


def resolve_provider_name(name: str) -> ProviderName:
    key = name.strip().lower()
    if key in PROVIDER_ALIASES:
        return PROVIDER_ALIASES[key]
    try:
        return ProviderName(key)
    except ValueError:
        raise ProviderNotImplemented(
            f"Unknown email provider '{name}'. Expected one of: "
            + ", ".join(p.value for p in ProviderName)
        ) from None


def get_provider(
    settings: DispatchSettings,
    client: httpx.AsyncClient | None = None,
) -> NotificationProvider:
    """Factory function to create the provider named in ``settings``."""
    provider_name = resolve_provider_name(settings.provider)
    if provider_name in _KEYED and not settings.api_key:
        raise ValueError(f"EMAIL_API_KEY not set for provider '{provider_name.value}'")

    provider = PROVIDER_CLASSES[provider_name](settings, client)
    logger.info("Email provider selected: %s", provider.name)
    return provider
