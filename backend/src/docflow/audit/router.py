"""Activity log query endpoint (admins only).

Read-only: activity logs are immutable and cannot be created, updated, or
deleted through the API.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.dependencies import get_current_user
from ..auth.permission_resolver import PermissionResolver
from ..dependencies import get_audit_trail, get_permission_resolver
from ..domain.records import ActivityLogFilters, UserRecord
from ..domain.roles import DocflowPermission
from ..errors import PermissionDenied
from .schemas import ActivityLogListResponse, ActivityLogResponse
from .service import AuditTrail

router = APIRouter(prefix="/activity-logs", tags=["Activity Logs"])


@router.get(
    "",
    response_model=ActivityLogListResponse,
    summary="Query activity logs (admin only)",
    description="Query activity logs with filtering and pagination, newest first.",
)
def query_activity_logs(
    audit: AuditTrail = Depends(get_audit_trail),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    caller: UserRecord = Depends(get_current_user),
    user_id: Optional[int] = Query(None, description="Filter by acting user"),
    action: Optional[str] = Query(None, description="Filter by action, e.g. status_update"),
    document_id: Optional[int] = Query(None, description="Filter by document"),
    branch_ba_code: Optional[int] = Query(None, description="Filter by branch"),
    start_date: Optional[datetime] = Query(None, description="Minimum created_at (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Maximum created_at (ISO 8601)"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(50, ge=1, le=100, description="Entries per page (max 100)"),
) -> ActivityLogListResponse:
    if not resolver.has_permission(caller.id, DocflowPermission.ADMIN_SYSTEM, allow_local_admin=True):
        raise PermissionDenied("Activity logs are restricted to administrators", user_id=caller.id)

    result = audit.query(
        ActivityLogFilters(
            user_id=user_id,
            action=action,
            document_id=document_id,
            branch_ba_code=branch_ba_code,
            date_from=start_date,
            date_to=end_date,
            page=page,
            limit=per_page,
        )
    )
    return ActivityLogListResponse(
        entries=[ActivityLogResponse.model_validate(entry) for entry in result.data],
        total=result.total,
        page=result.page,
        per_page=result.limit,
    )
