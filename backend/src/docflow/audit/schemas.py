"""Pydantic schemas for activity log endpoints.

Activity logs are read-only over HTTP (no create/update/delete operations).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActivityLogResponse(BaseModel):
    """A single activity log entry. All fields are read-only."""
    id: int = Field(..., description="Entry identifier")
    user_id: Optional[int] = Field(None, description="Acting user (None for system events)")
    action: str = Field(..., description="Action name, e.g. status_update, bulk_send_operation")
    document_id: Optional[int] = Field(None, description="Affected document, if still present")
    branch_ba_code: Optional[int] = Field(None, description="Branch of the affected document")
    details: Optional[dict] = Field(None, description="Additional context as JSON")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client User-Agent header")
    created_at: Optional[datetime] = Field(None, description="Event timestamp")

    model_config = ConfigDict(from_attributes=True)


class ActivityLogListResponse(BaseModel):
    entries: List[ActivityLogResponse] = Field(..., description="Entries on this page")
    total: int = Field(..., description="Total number of entries matching filters")
    page: int = Field(..., description="Current page number")
    per_page: int = Field(..., description="Entries per page")
