"""AuditTrail - append-only activity log for every mutating action.

Entries are written synchronously through the repository port. When called
inside an open ``repository.transaction()`` the entry commits or rolls back
together with the mutation it describes; called on its own it commits
immediately.

Actions (LogAction):
- login
- create_document, update_document, delete_document, view_document
- status_update, add_comment
- bulk_send_document, bulk_send_operation
- create_user, assign_default_role, update_user_roles
- create_role, update_role, delete_role
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request

from ..domain.ports import DocflowRepositoryPort
from ..domain.records import ActivityLogFilters, ActivityLogRecord, Page


class LogAction(str, Enum):
    """Activity log action names as stored in activity_logs.action."""
    LOGIN = "login"
    CREATE_DOCUMENT = "create_document"
    UPDATE_DOCUMENT = "update_document"
    DELETE_DOCUMENT = "delete_document"
    VIEW_DOCUMENT = "view_document"
    STATUS_UPDATE = "status_update"
    ADD_COMMENT = "add_comment"
    BULK_SEND_DOCUMENT = "bulk_send_document"
    BULK_SEND_OPERATION = "bulk_send_operation"
    CREATE_USER = "create_user"
    ASSIGN_DEFAULT_ROLE = "assign_default_role"
    UPDATE_USER_ROLES = "update_user_roles"
    CREATE_ROLE = "create_role"
    UPDATE_ROLE = "update_role"
    DELETE_ROLE = "delete_role"


@dataclass(frozen=True)
class RequestContext:
    """Client information attached to every entry written for one request."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def request_context_from_request(request: Request) -> RequestContext:
    """Extract client IP and User-Agent from a FastAPI request.

    Honours X-Forwarded-For (first address in the chain is the client).
    """
    ip_address = request.client.host if request.client else None
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Use first IP in chain (original client)
        ip_address = forwarded_for.split(",")[0].strip()

    return RequestContext(ip_address=ip_address, user_agent=request.headers.get("User-Agent"))


class AuditTrail:
    """Writes and queries activity log entries.

    Example:
        audit = AuditTrail(repository, request_context_from_request(request))
        with repository.transaction():
            repository.delete_document(document.id)
            audit.log(
                LogAction.DELETE_DOCUMENT,
                user_id=caller.id,
                document_id=document.id,
                branch_ba_code=document.branch_ba_code,
                details={"mt_number": document.mt_number},
            )
    """

    def __init__(self, repository: DocflowRepositoryPort, context: Optional[RequestContext] = None):
        self.repository = repository
        self.context = context or RequestContext()

    def log(
        self,
        action: LogAction,
        user_id: Optional[int] = None,
        document_id: Optional[int] = None,
        branch_ba_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityLogRecord:
        """Append one entry. There is no update or delete counterpart."""
        with self.repository.transaction():
            return self.repository.add_activity_log(
                action=LogAction(action).value,
                user_id=user_id,
                document_id=document_id,
                branch_ba_code=branch_ba_code,
                details=details,
                ip_address=self.context.ip_address,
                user_agent=self.context.user_agent,
            )

    def query(self, filters: ActivityLogFilters) -> Page[ActivityLogRecord]:
        """Entries matching ``filters``, newest first."""
        return self.repository.list_activity_logs(filters)
