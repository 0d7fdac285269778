"""Plain records exchanged between the engine and its ports.

The engine never sees ORM instances; repository adapters map their rows to
these dataclasses so the core stays independent of the persistence library.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from .documents.document_status import DocumentStatus

T = TypeVar("T")


@dataclass
class UserRecord:
    """A user as known to the engine.

    Attributes:
        id: Database id
        username: External-identity key
        ba: Branch (BA) code from the organisational directory, as text
        cost_center: Fallback organisational code
        is_local_admin: Local administrator account (capability for explicit bypasses)
    """
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    ba: Optional[str] = None
    cost_center: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    is_local_admin: bool = False

    @property
    def branch_ba_code(self) -> Optional[int]:
        """Own branch code parsed from ``ba``, or None if it is not numeric."""
        for raw in (self.ba, self.cost_center):
            if raw and raw.strip().isdigit():
                return int(raw.strip())
        return None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.username


@dataclass
class RoleRecord:
    id: int
    name: str
    description: Optional[str] = None
    permission_ids: List[int] = field(default_factory=list)


@dataclass
class PermissionRecord:
    id: int
    name: str
    description: Optional[str] = None


@dataclass
class BranchRecord:
    id: int
    ba_code: int
    name: str
    region_code: str = "R6"
    branch_code: Optional[int] = None
    is_active: bool = True


@dataclass
class DocumentRecord:
    """An MT transmittal and its business metadata."""
    id: int
    branch_ba_code: int
    uploader_id: int
    status: DocumentStatus
    mt_number: str
    mt_date: date
    subject: str
    month_year: str
    original_filename: Optional[str] = None
    file_path: Optional[str] = None
    has_additional_docs: bool = False
    additional_docs: List[str] = field(default_factory=list)
    disbursement_date: Optional[date] = None
    disbursement_confirmed: bool = False
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_draft(self) -> bool:
        return self.status == DocumentStatus.DRAFT


@dataclass
class StatusHistoryRecord:
    id: int
    document_id: Optional[int]
    from_status: Optional[str]
    to_status: str
    changed_by: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ActivityLogRecord:
    id: int
    action: str
    user_id: Optional[int] = None
    document_id: Optional[int] = None
    branch_ba_code: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class CommentRecord:
    id: int
    document_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None


@dataclass
class DocumentFilters:
    """Filters for document queries.

    ``status`` of None means every status; ``search`` matches subject or MT number.
    """
    status: Optional[DocumentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    exclude_drafts: bool = False
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class ActivityLogFilters:
    user_id: Optional[int] = None
    action: Optional[str] = None
    document_id: Optional[int] = None
    branch_ba_code: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = 1
    limit: int = 50


@dataclass
class Page(Generic[T]):
    """One page of results plus pagination metadata."""
    data: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    @classmethod
    def empty(cls, page: int, limit: int) -> "Page[T]":
        return cls(data=[], total=0, page=page, limit=limit)
