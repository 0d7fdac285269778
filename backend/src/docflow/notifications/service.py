"""Notification adapters and best-effort dispatch.

Transport is out of scope; the shipped adapter writes events to the log so
deployments without a chat channel still have a record. Dispatch helpers
never raise: a failing adapter is reported as a DependencyFailure at
WARNING and the caller carries on.
"""

import logging
from typing import Optional

from ..domain.ports import BulkSendEvent, DocumentEvent, NotificationPort
from ..errors import DependencyFailure
from ..observability.metrics import notification_failures_total

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationPort):
    """NotificationPort that records events in the application log."""

    def __init__(self, channel: Optional[str] = None):
        self.channel = channel

    def send_document_notification(self, event: DocumentEvent) -> None:
        logger.info(
            "Document notification: %s %s",
            event.action,
            event.mt_number,
            extra={
                "channel": self.channel,
                "document_id": event.document_id,
                "notification_action": event.action,
                "branch_ba_code": event.branch_ba_code,
                "username": event.user_name,
            },
        )

    def send_bulk_notification(self, event: BulkSendEvent) -> None:
        logger.info(
            "Bulk send notification: %d documents",
            event.total_documents,
            extra={
                "channel": self.channel,
                "total_documents": event.total_documents,
                "branches": event.branch_names,
                "username": event.user_name,
            },
        )


def _report_failure(kind: str, exc: Exception, **context) -> None:
    notification_failures_total.labels(kind=kind.lower()).inc()
    failure = DependencyFailure("notification", exc)
    logger.warning(
        "%s notification failed: %s",
        kind,
        failure.message,
        extra={"error": str(exc), **context},
        exc_info=True,
    )


def dispatch_document_event(notifier: Optional[NotificationPort], event: DocumentEvent) -> bool:
    """Send ``event`` if a notifier is configured. Returns True on delivery."""
    if notifier is None:
        return False
    try:
        notifier.send_document_notification(event)
    except Exception as exc:
        _report_failure("Document", exc, document_id=event.document_id)
        return False
    return True


def dispatch_bulk_event(notifier: Optional[NotificationPort], event: BulkSendEvent) -> bool:
    if notifier is None:
        return False
    try:
        notifier.send_bulk_notification(event)
    except Exception as exc:
        _report_failure("Bulk", exc, total_documents=event.total_documents)
        return False
    return True
