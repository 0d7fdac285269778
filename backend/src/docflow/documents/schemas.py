"""Pydantic schemas for document endpoints."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..domain.documents import DocumentStatus


class DocumentCreate(BaseModel):
    """Request body for creating a draft document."""
    branch_ba_code: int = Field(..., description="BA code of the branch that owns the document", examples=[1060])
    mt_number: str = Field(..., min_length=1, max_length=100, description="MT transmittal number")
    mt_date: date = Field(..., description="Date printed on the MT memo")
    subject: str = Field(..., min_length=1, description="Subject line of the memo")
    month_year: str = Field(..., min_length=1, max_length=20, description="Accounting period, e.g. 'มกราคม 2568'")
    original_filename: Optional[str] = Field(None, max_length=255)
    file_path: Optional[str] = None
    has_additional_docs: bool = False
    additional_docs: List[str] = Field(default_factory=list, description="Manifest of attached documents")
    disbursement_date: Optional[date] = None

    model_config = ConfigDict(extra="forbid")


class DocumentUpdate(BaseModel):
    """Partial update of draft metadata. Omitted fields are left unchanged."""
    branch_ba_code: Optional[int] = None
    mt_number: Optional[str] = Field(None, min_length=1, max_length=100)
    mt_date: Optional[date] = None
    subject: Optional[str] = Field(None, min_length=1)
    month_year: Optional[str] = Field(None, min_length=1, max_length=20)
    has_additional_docs: Optional[bool] = None
    additional_docs: Optional[List[str]] = None
    disbursement_date: Optional[date] = None
    disbursement_confirmed: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class StatusUpdateRequest(BaseModel):
    status: DocumentStatus = Field(..., description="Target status")
    comment: Optional[str] = Field(None, max_length=2000)


class BulkSendRequest(BaseModel):
    document_ids: List[int] = Field(..., min_length=1, description="Draft document ids to send")


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class DocumentResponse(BaseModel):
    id: int
    branch_ba_code: int
    uploader_id: int
    status: DocumentStatus
    mt_number: str
    mt_date: date
    subject: str
    month_year: str
    original_filename: Optional[str] = None
    has_additional_docs: bool = False
    additional_docs: List[str] = Field(default_factory=list)
    disbursement_date: Optional[date] = None
    disbursement_confirmed: bool = False
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentListResponse(BaseModel):
    items: List[DocumentResponse]
    total: int = Field(..., description="Total number of documents matching filters")
    page: int
    limit: int
    total_pages: int


class StatusHistoryResponse(BaseModel):
    id: int
    document_id: Optional[int] = None
    from_status: Optional[str] = None
    to_status: str
    changed_by: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    id: int
    document_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentDetailResponse(BaseModel):
    document: DocumentResponse
    history: List[StatusHistoryResponse]
    comments: List[CommentResponse]

    model_config = ConfigDict(from_attributes=True)


class BulkItemResponse(BaseModel):
    document_id: int
    success: bool
    error: Optional[str] = None
    mt_number: Optional[str] = None


class BulkSendResponse(BaseModel):
    """Bulk send outcome. ``success`` is False only when nothing was sent."""
    success: bool
    sent_count: int
    total_requested: int
    results: List[BulkItemResponse]
