"""Document lifecycle API endpoints.

Thin transport layer: each endpoint parses input, calls DocumentService and
serialises the result. Errors raised by the services are mapped to HTTP
status codes by the handlers registered in main.py.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..auth.dependencies import get_current_user
from ..config import get_settings
from ..dependencies import get_document_service
from ..domain.documents import DocumentStatus
from ..domain.records import DocumentFilters, DocumentRecord, Page, UserRecord
from .schemas import (
    BulkSendRequest,
    BulkSendResponse,
    CommentCreate,
    CommentResponse,
    DocumentCreate,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdate,
    StatusHistoryResponse,
    StatusUpdateRequest,
)
from .service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def document_filters(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status", description="Filter by status"),
    date_from: Optional[date] = Query(None, description="Minimum MT date"),
    date_to: Optional[date] = Query(None, description="Maximum MT date"),
    search: Optional[str] = Query(None, description="Match against subject or MT number"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: Optional[int] = Query(None, ge=1, description="Documents per page"),
) -> DocumentFilters:
    return DocumentFilters(
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        search=search,
        page=page,
        limit=limit or get_settings().DEFAULT_PAGE_SIZE,
    )


def _list_response(page: Page[DocumentRecord]) -> DocumentListResponse:
    return DocumentListResponse(
        items=[DocumentResponse.model_validate(d) for d in page.data],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
    )


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft document",
    description="Creates a draft owned by the caller. Requires documents:create or documents:upload.",
)
def create_document(
    body: DocumentCreate,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.create_document(caller, body.model_dump())


@router.get(
    "",
    response_model=DocumentListResponse,
    summary="List visible documents",
    description="status=draft returns the caller's own drafts; otherwise documents of accessible branches.",
)
def list_documents(
    filters: DocumentFilters = Depends(document_filters),
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return _list_response(service.list_documents(caller, filters))


@router.post(
    "/bulk-send",
    response_model=BulkSendResponse,
    summary="Send several drafts to their branches",
    description="Per-document partial failure. Responds 400 only when no document was sent.",
)
def bulk_send(
    body: BulkSendRequest,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    result = service.bulk_send(caller, body.document_ids)
    if not result.success:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result.to_dict())
    return result.to_dict()


@router.get(
    "/branch/{ba_code}",
    response_model=DocumentListResponse,
    summary="List documents of one branch",
)
def list_branch_documents(
    ba_code: int,
    filters: DocumentFilters = Depends(document_filters),
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return _list_response(service.list_branch_documents(caller, ba_code, filters))


@router.get(
    "/{document_id}",
    response_model=DocumentDetailResponse,
    summary="Get a document with its history and comments",
)
def get_document(
    document_id: int,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return DocumentDetailResponse.model_validate(service.get_document(caller, document_id))


@router.patch(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="Edit draft metadata",
)
def update_document(
    document_id: int,
    body: DocumentUpdate,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.update_draft_metadata(caller, document_id, body.model_dump(exclude_unset=True))


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a document",
)
def delete_document(
    document_id: int,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    service.delete_document(caller, document_id)


@router.patch(
    "/{document_id}/status",
    response_model=DocumentResponse,
    summary="Change document status",
    description="Applies one edge of the lifecycle graph; the caller's roles must be allowed on that edge.",
)
def update_status(
    document_id: int,
    body: StatusUpdateRequest,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.update_status(caller, document_id, body.status, body.comment)


@router.get(
    "/{document_id}/history",
    response_model=List[StatusHistoryResponse],
    summary="Status history of a document",
)
def get_history(
    document_id: int,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.get_history(caller, document_id)


@router.post(
    "/{document_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a document",
)
def add_comment(
    document_id: int,
    body: CommentCreate,
    service: DocumentService = Depends(get_document_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.add_comment(caller, document_id, body.content)
