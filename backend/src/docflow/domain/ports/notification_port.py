"""Notification Port - best-effort delivery of document events.

Transport (Telegram, e-mail, ...) lives behind this interface. The lifecycle
engine calls it only after the transition has committed, and treats any
exception raised here as a logged, non-fatal DependencyFailure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class DocumentEvent:
    """A single-document lifecycle event.

    Attributes:
        action: One of uploaded, sent, acknowledged, sent_back, checked, completed
    """
    document_id: int
    action: str
    mt_number: str
    subject: str
    branch_ba_code: int
    branch_name: Optional[str]
    user_name: str
    user_full_name: str
    timestamp: datetime
    comment: Optional[str] = None


@dataclass
class BulkSendEvent:
    total_documents: int
    user_name: str
    user_full_name: str
    timestamp: datetime
    branch_names: List[str] = field(default_factory=list)


class NotificationPort(ABC):
    """Port interface for document notifications."""

    @abstractmethod
    def send_document_notification(self, event: DocumentEvent) -> None:
        ...

    @abstractmethod
    def send_bulk_notification(self, event: BulkSendEvent) -> None:
        ...
