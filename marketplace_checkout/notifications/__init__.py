"""Notification dispatch: provider strategies behind a retrying dispatcher."""
from .base import NotificationProvider
from .dispatcher import NotificationDispatcher
from .registry import PROVIDER_CLASSES, ProviderName, get_provider
from .schema import Attachment, DeliveryResult, NotificationMessage

__all__ = [
    "Attachment",
    "DeliveryResult",
    "NotificationDispatcher",
    "NotificationMessage",
    "NotificationProvider",
    "PROVIDER_CLASSES",
    "ProviderName",
    "get_provider",
]
