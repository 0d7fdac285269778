"""Ports implemented by infrastructure adapters."""

from .repository_port import DocflowRepositoryPort
from .notification_port import NotificationPort, DocumentEvent, BulkSendEvent

__all__ = [
    "DocflowRepositoryPort",
    "NotificationPort",
    "DocumentEvent",
    "BulkSendEvent",
]
