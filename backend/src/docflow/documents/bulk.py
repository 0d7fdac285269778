"""BulkOperationCoordinator - bulk send of drafts with per-item partial failure.

Items are processed one at a time, in request order. A missing document, a
document that is not a draft, or one the caller cannot access is skipped and
reported; it never aborts the rest of the batch. Each sent item commits on
its own through StatusTransitionEngine. One aggregate activity entry for the
whole batch is written last, in its own transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..audit.service import AuditTrail, LogAction
from ..auth.access_guard import AccessGuard
from ..auth.permission_resolver import PermissionResolver
from ..branches.service import BranchService
from ..domain.documents import DocumentStatus
from ..domain.ports import BulkSendEvent, DocflowRepositoryPort, NotificationPort
from ..errors import DependencyFailure, DocflowError, NotFound, ValidationError
from ..notifications.service import dispatch_bulk_event
from ..observability.metrics import bulk_send_items_total
from .transitions import StatusTransitionEngine

logger = logging.getLogger(__name__)


@dataclass
class BulkItemResult:
    document_id: int
    success: bool
    error: Optional[str] = None
    mt_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"document_id": self.document_id, "success": self.success}
        if self.error is not None:
            payload["error"] = self.error
        if self.mt_number is not None:
            payload["mt_number"] = self.mt_number
        return payload


@dataclass
class BulkSendResult:
    """Outcome of one bulk send.

    ``success`` is False only when nothing at all was sent.
    """
    total_requested: int
    results: List[BulkItemResult] = field(default_factory=list)

    @property
    def sent_count(self) -> int:
        return sum(1 for item in self.results if item.success)

    @property
    def success(self) -> bool:
        return self.sent_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "sent_count": self.sent_count,
            "total_requested": self.total_requested,
            "results": [item.to_dict() for item in self.results],
        }


class BulkOperationCoordinator:
    def __init__(
        self,
        repository: DocflowRepositoryPort,
        resolver: PermissionResolver,
        guard: AccessGuard,
        engine: StatusTransitionEngine,
        audit: AuditTrail,
        notifier: Optional[NotificationPort] = None,
        max_documents: int = 50,
    ):
        self.repository = repository
        self.resolver = resolver
        self.guard = guard
        self.engine = engine
        self.audit = audit
        self.notifier = notifier
        self.max_documents = max_documents
        self.branches = BranchService(repository)

    def bulk_send(self, document_ids: Sequence[int], caller_id: int) -> BulkSendResult:
        """Send every draft in ``document_ids`` to its branch.

        Raises:
            ValidationError: Empty list or more than ``max_documents`` ids
            NotFound: Caller does not exist
        """
        ids = list(document_ids)
        if not ids:
            raise ValidationError(
                "No documents selected",
                field_errors={"document_ids": ["At least one document id is required"]},
            )
        if len(ids) > self.max_documents:
            raise ValidationError(
                f"Cannot send more than {self.max_documents} documents at once",
                field_errors={"document_ids": [f"At most {self.max_documents} ids per request"]},
            )

        caller = self.repository.get_user_by_id(caller_id)
        if caller is None:
            raise NotFound("User", caller_id)
        access = self.resolver.resolve(caller_id)

        result = BulkSendResult(total_requested=len(ids))
        sent_branches: List[int] = []

        for document_id in ids:
            item, ba_code = self._send_one(document_id, caller, access)
            result.results.append(item)
            bulk_send_items_total.labels(outcome="sent" if item.success else "skipped").inc()
            if item.success and ba_code not in sent_branches:
                sent_branches.append(ba_code)

        self._record_operation(caller_id, result)

        logger.info(
            "Bulk send finished: %d of %d sent",
            result.sent_count,
            result.total_requested,
            extra={"user_id": caller_id},
        )

        if result.success and self.notifier is not None:
            self._notify(caller, result, sent_branches)
        return result

    def _send_one(self, document_id: int, caller, access) -> Tuple[BulkItemResult, Optional[int]]:
        try:
            document = self.repository.get_document_by_id(document_id)
        except DependencyFailure as exc:
            return BulkItemResult(document_id=document_id, success=False, error=exc.message), None

        if document is None:
            return BulkItemResult(document_id=document_id, success=False, error="Document not found"), None
        if document.status != DocumentStatus.DRAFT:
            return BulkItemResult(
                document_id=document_id,
                success=False,
                error=f"Document is not a draft (status: {document.status.value})",
                mt_number=document.mt_number,
            ), None
        if not self.guard.can_access_document(caller, document, access):
            return BulkItemResult(
                document_id=document_id,
                success=False,
                error="Access denied",
                mt_number=document.mt_number,
            ), None

        try:
            self.engine.transition(
                document_id,
                DocumentStatus.SENT_TO_BRANCH,
                caller.id,
                action=LogAction.BULK_SEND_DOCUMENT,
                access=access,
                notify=False,
            )
        except DocflowError as exc:
            logger.warning(
                "Bulk send item failed: %s",
                exc.message,
                extra={"user_id": caller.id, "document_id": document_id},
            )
            return BulkItemResult(
                document_id=document_id,
                success=False,
                error=exc.message,
                mt_number=document.mt_number,
            ), None

        return (
            BulkItemResult(document_id=document_id, success=True, mt_number=document.mt_number),
            document.branch_ba_code,
        )

    def _record_operation(self, caller_id: int, result: BulkSendResult) -> None:
        # Sent items are already committed; a failure here must not misreport them
        try:
            self.audit.log(
                LogAction.BULK_SEND_OPERATION,
                user_id=caller_id,
                details={
                    "total_requested": result.total_requested,
                    "sent_count": result.sent_count,
                    "failed_count": result.total_requested - result.sent_count,
                    "results": [item.to_dict() for item in result.results],
                },
            )
        except DependencyFailure:
            logger.error(
                "Could not record bulk send operation",
                extra={"user_id": caller_id},
                exc_info=True,
            )

    def _notify(self, caller, result: BulkSendResult, ba_codes: List[int]) -> None:
        branch_names = []
        for ba_code in ba_codes:
            try:
                branch_names.append(self.branches.branch_name(ba_code) or str(ba_code))
            except DependencyFailure:
                branch_names.append(str(ba_code))

        dispatch_bulk_event(
            self.notifier,
            BulkSendEvent(
                total_documents=result.sent_count,
                user_name=caller.username,
                user_full_name=caller.display_name,
                timestamp=datetime.now(timezone.utc),
                branch_names=branch_names,
            ),
        )
