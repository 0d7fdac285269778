"""StatusTransitionEngine - the only path by which a document's status changes.

Checks run in a fixed order and stop at the first failure:

1. document and caller exist                        NotFound
2. caller may see the document (AccessGuard)        PermissionDenied
3. target is a direct successor of current status   InvalidTransition
4. caller's roles are allowed on that edge          PermissionDenied

On success the status update (compare-and-set on the status read in step 1),
one DocumentStatusHistory row and one ActivityLog row commit in a single
transaction. Notification follows the commit and can never undo it.

The engine is not idempotent: repeating a successful request fails step 3
because the current status has moved on.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..audit.service import AuditTrail, LogAction
from ..auth.access_guard import AccessGuard
from ..auth.permission_resolver import PermissionResolver, ResolvedAccess
from ..branches.service import BranchService
from ..domain.documents import (
    DocumentStatus,
    allowed_roles_for,
    parse_status,
    roles_may_transition,
    validate_transition,
)
from ..domain.ports import DocflowRepositoryPort, DocumentEvent, NotificationPort
from ..domain.records import DocumentRecord, UserRecord
from ..errors import Conflict, DependencyFailure, NotFound, PermissionDenied
from ..notifications.service import dispatch_document_event
from ..observability.metrics import access_denials_total, document_transitions_total

logger = logging.getLogger(__name__)

# Notification action per target status
NOTIFICATION_ACTIONS = {
    DocumentStatus.SENT_TO_BRANCH: "sent",
    DocumentStatus.ACKNOWLEDGED: "acknowledged",
    DocumentStatus.SENT_BACK_TO_DISTRICT: "sent_back",
    DocumentStatus.ALL_CHECKED: "checked",
    DocumentStatus.COMPLETE: "completed",
}


class StatusTransitionEngine:
    def __init__(
        self,
        repository: DocflowRepositoryPort,
        resolver: PermissionResolver,
        guard: AccessGuard,
        audit: AuditTrail,
        notifier: Optional[NotificationPort] = None,
    ):
        self.repository = repository
        self.resolver = resolver
        self.guard = guard
        self.audit = audit
        self.notifier = notifier
        self.branches = BranchService(repository)

    def transition(
        self,
        document_id: int,
        target_status,
        caller_id: int,
        comment: Optional[str] = None,
        *,
        action: LogAction = LogAction.STATUS_UPDATE,
        access: Optional[ResolvedAccess] = None,
        notify: bool = True,
    ) -> DocumentRecord:
        """Move a document to ``target_status`` on behalf of ``caller_id``.

        Args:
            document_id: Document to transition
            target_status: DocumentStatus or its string value
            caller_id: Acting user
            comment: Optional note stored in the history row
            action: Activity log action for the entry (bulk send passes its own)
            access: Pre-resolved access of the caller, resolved afresh if omitted
            notify: Dispatch the per-document notification after commit

        Returns:
            The updated document

        Raises:
            ValidationError: Unknown target status
            NotFound: Document or caller missing
            PermissionDenied: Caller cannot see the document or is not allowed on the edge
            InvalidTransition: Target is not a direct successor of the current status
            Conflict: Another request changed the status first
            DependencyFailure: Store unavailable; nothing was written
        """
        target = parse_status(target_status)

        caller = self.repository.get_user_by_id(caller_id)
        if caller is None:
            raise NotFound("User", caller_id)
        document = self.repository.get_document_by_id(document_id)
        if document is None:
            raise NotFound("Document", document_id)

        access = access or self.resolver.resolve(caller_id)
        self.guard.require_document_access(caller, document, access)

        current = document.status
        validate_transition(current, target)

        if not roles_may_transition(access.roles, current, target):
            access_denials_total.labels(reason="transition_role").inc()
            required = sorted(allowed_roles_for(current, target))
            logger.warning(
                "Transition denied by role gate",
                extra={
                    "user_id": caller_id,
                    "document_id": document_id,
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
            raise PermissionDenied(
                f"Your roles do not allow {current.value} -> {target.value}",
                user_id=caller_id,
                required_roles=required,
            )

        with self.repository.transaction():
            updated = self.repository.update_document_status(document.id, current, target)
            if updated is None:
                raise Conflict(
                    f"Document {document.id} status changed concurrently; expected {current.value}",
                    {"document_id": document.id, "expected_status": current.value},
                )
            self.repository.add_status_history(
                document_id=document.id,
                from_status=current.value,
                to_status=target.value,
                changed_by=caller_id,
                comment=comment,
            )
            self.audit.log(
                action,
                user_id=caller_id,
                document_id=document.id,
                branch_ba_code=document.branch_ba_code,
                details={
                    "from_status": current.value,
                    "to_status": target.value,
                    "mt_number": document.mt_number,
                    "comment": comment,
                },
            )

        document_transitions_total.labels(from_status=current.value, to_status=target.value).inc()
        logger.info(
            "Document status changed",
            extra={
                "user_id": caller_id,
                "document_id": document.id,
                "from_status": current.value,
                "to_status": target.value,
            },
        )

        if notify:
            self.notify(caller, updated, comment)
        return updated

    def notify(self, caller: UserRecord, document: DocumentRecord, comment: Optional[str] = None) -> bool:
        """Best-effort notification for a committed transition."""
        if self.notifier is None:
            return False
        try:
            branch_name = self.branches.branch_name(document.branch_ba_code)
        except DependencyFailure:
            branch_name = None

        event = DocumentEvent(
            document_id=document.id,
            action=NOTIFICATION_ACTIONS.get(document.status, document.status.value),
            mt_number=document.mt_number,
            subject=document.subject,
            branch_ba_code=document.branch_ba_code,
            branch_name=branch_name,
            user_name=caller.username,
            user_full_name=caller.display_name,
            timestamp=datetime.now(timezone.utc),
            comment=comment,
        )
        return dispatch_document_event(self.notifier, event)
