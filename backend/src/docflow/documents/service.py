"""DocumentService - caller-facing document operations.

Every operation takes the acting user, resolves their access afresh and
applies AccessGuard before touching the document. Status changes are
delegated to StatusTransitionEngine and bulk send to
BulkOperationCoordinator; this module adds creation, draft editing,
deletion, listing, detail and comments.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from ..audit.service import AuditTrail, LogAction
from ..auth.access_guard import AccessGuard
from ..auth.permission_resolver import PermissionResolver, ResolvedAccess
from ..branches.service import BranchService
from ..config import Settings, get_settings
from ..domain.documents import DocumentStatus
from ..domain.ports import DocflowRepositoryPort
from ..domain.records import (
    CommentRecord,
    DocumentFilters,
    DocumentRecord,
    Page,
    StatusHistoryRecord,
    UserRecord,
)
from ..domain.roles import DocflowPermission, RoleName
from ..errors import Conflict, NotFound, PermissionDenied, ValidationError
from .bulk import BulkOperationCoordinator, BulkSendResult
from .transitions import StatusTransitionEngine

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("branch_ba_code", "mt_number", "mt_date", "subject", "month_year")
_EDITABLE_FIELDS = (
    "branch_ba_code",
    "mt_number",
    "mt_date",
    "subject",
    "month_year",
    "has_additional_docs",
    "additional_docs",
    "disbursement_date",
    "disbursement_confirmed",
)


@dataclass
class DocumentDetail:
    document: DocumentRecord
    history: List[StatusHistoryRecord] = field(default_factory=list)
    comments: List[CommentRecord] = field(default_factory=list)


class DocumentService:
    def __init__(
        self,
        repository: DocflowRepositoryPort,
        resolver: PermissionResolver,
        guard: AccessGuard,
        engine: StatusTransitionEngine,
        bulk: BulkOperationCoordinator,
        audit: AuditTrail,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.resolver = resolver
        self.guard = guard
        self.engine = engine
        self.bulk = bulk
        self.audit = audit
        self.settings = settings or get_settings()
        self.branches = BranchService(repository)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, document_id: int) -> DocumentRecord:
        document = self.repository.get_document_by_id(document_id)
        if document is None:
            raise NotFound("Document", document_id)
        return document

    def _load_accessible(self, caller: UserRecord, document_id: int, access: ResolvedAccess) -> DocumentRecord:
        document = self._load(document_id)
        self.guard.require_document_access(caller, document, access)
        return document

    def _require_active_branch(self, ba_code: Any) -> int:
        try:
            code = int(ba_code)
        except (TypeError, ValueError):
            code = None
        if code is None or self.branches.get_branch_by_ba_code(code) is None:
            raise ValidationError(
                f"Unknown or inactive branch: {ba_code}",
                field_errors={"branch_ba_code": ["Branch does not exist or is inactive"]},
            )
        return code

    def _clamp(self, filters: DocumentFilters) -> DocumentFilters:
        limit = min(max(filters.limit, 1), self.settings.MAX_PAGE_SIZE)
        return replace(filters, page=max(filters.page, 1), limit=limit)

    # ------------------------------------------------------------------
    # Creation and editing
    # ------------------------------------------------------------------

    def create_document(self, caller: UserRecord, data: Dict[str, Any]) -> DocumentRecord:
        """Create a draft owned by ``caller``.

        Raises:
            PermissionDenied: Caller holds neither documents:create nor documents:upload
            ValidationError: Missing fields or unknown branch
        """
        access = self.resolver.resolve(caller.id)
        if access.degraded or not access.has_any_permission(
            [DocflowPermission.DOCUMENTS_CREATE, DocflowPermission.DOCUMENTS_UPLOAD]
        ):
            raise PermissionDenied("You are not allowed to create documents", user_id=caller.id)

        missing = [name for name in _REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValidationError(
                "Missing required document fields",
                field_errors={name: ["This field is required"] for name in missing},
            )
        values = dict(data)
        values["branch_ba_code"] = self._require_active_branch(data["branch_ba_code"])
        values["uploader_id"] = caller.id

        with self.repository.transaction():
            document = self.repository.create_document(values)
            self.audit.log(
                LogAction.CREATE_DOCUMENT,
                user_id=caller.id,
                document_id=document.id,
                branch_ba_code=document.branch_ba_code,
                details={"mt_number": document.mt_number, "subject": document.subject},
            )

        logger.info(
            "Draft document created",
            extra={"user_id": caller.id, "document_id": document.id, "branch_ba_code": document.branch_ba_code},
        )
        return document

    def update_draft_metadata(
        self,
        caller: UserRecord,
        document_id: int,
        changes: Dict[str, Any],
    ) -> DocumentRecord:
        """Edit business metadata of a draft.

        The uploader may edit their own draft; admins may edit any draft. Once
        sent, a document changes only through status transitions.

        Raises:
            PermissionDenied: Caller is neither the uploader nor an admin
            Conflict: Document is no longer a draft
        """
        access = self.resolver.resolve(caller.id)
        document = self._load_accessible(caller, document_id, access)

        if document.uploader_id != caller.id and not access.has_role(RoleName.ADMIN):
            raise PermissionDenied("Only the uploader can edit this document", user_id=caller.id)
        if not document.is_draft:
            raise Conflict(
                "Only draft documents can be edited",
                {"document_id": document.id, "status": document.status.value},
            )

        values = {key: changes[key] for key in _EDITABLE_FIELDS if key in changes}
        if not values:
            return document
        if "branch_ba_code" in values:
            values["branch_ba_code"] = self._require_active_branch(values["branch_ba_code"])

        with self.repository.transaction():
            updated = self.repository.update_document_metadata(document.id, values)
            self.audit.log(
                LogAction.UPDATE_DOCUMENT,
                user_id=caller.id,
                document_id=document.id,
                branch_ba_code=updated.branch_ba_code,
                details={"fields": sorted(values)},
            )
        return updated

    def delete_document(self, caller: UserRecord, document_id: int) -> None:
        """Delete a document.

        Allowed for the uploader while the document is a draft, and for
        admins or holders of documents:delete in any status.
        """
        access = self.resolver.resolve(caller.id)
        document = self._load_accessible(caller, document_id, access)

        privileged = access.has_role(RoleName.ADMIN) or access.has_permission(DocflowPermission.DOCUMENTS_DELETE)
        owner_draft = document.uploader_id == caller.id and document.is_draft
        if not (privileged or owner_draft):
            raise PermissionDenied(
                "Only the uploader can delete a draft; other documents need documents:delete",
                user_id=caller.id,
                document_id=document.id,
            )

        with self.repository.transaction():
            self.audit.log(
                LogAction.DELETE_DOCUMENT,
                user_id=caller.id,
                branch_ba_code=document.branch_ba_code,
                details={
                    "document_id": document.id,
                    "mt_number": document.mt_number,
                    "status": document.status.value,
                },
            )
            self.repository.delete_document(document.id)

        logger.info("Document deleted", extra={"user_id": caller.id, "document_id": document.id})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_documents(self, caller: UserRecord, filters: DocumentFilters) -> Page[DocumentRecord]:
        """Documents visible to ``caller``.

        Asking for drafts returns only the caller's own drafts. Any other query
        is limited to the caller's accessible branches and never includes drafts.
        """
        filters = self._clamp(filters)
        access = self.resolver.resolve(caller.id)
        if access.degraded:
            return Page.empty(filters.page, filters.limit)

        if filters.status == DocumentStatus.DRAFT:
            return self.repository.get_user_own_documents(caller.id, filters)

        branches = self.guard.accessible_branches(caller, access)
        return self.repository.search_documents(branches, replace(filters, exclude_drafts=True))

    def list_branch_documents(
        self,
        caller: UserRecord,
        ba_code: int,
        filters: DocumentFilters,
    ) -> Page[DocumentRecord]:
        """Non-draft documents of one branch.

        Raises:
            PermissionDenied: ``ba_code`` is outside the caller's accessible branches
        """
        filters = self._clamp(filters)
        access = self.resolver.resolve(caller.id)
        self.guard.require_branch_access(caller, ba_code, access)
        if filters.status == DocumentStatus.DRAFT:
            return Page.empty(filters.page, filters.limit)
        return self.repository.search_documents([ba_code], replace(filters, exclude_drafts=True))

    def get_document(self, caller: UserRecord, document_id: int) -> DocumentDetail:
        access = self.resolver.resolve(caller.id)
        document = self._load_accessible(caller, document_id, access)
        detail = DocumentDetail(
            document=document,
            history=self.repository.list_status_history(document.id),
            comments=self.repository.list_comments(document.id),
        )
        self.audit.log(
            LogAction.VIEW_DOCUMENT,
            user_id=caller.id,
            document_id=document.id,
            branch_ba_code=document.branch_ba_code,
        )
        return detail

    def get_history(self, caller: UserRecord, document_id: int) -> List[StatusHistoryRecord]:
        access = self.resolver.resolve(caller.id)
        document = self._load_accessible(caller, document_id, access)
        return self.repository.list_status_history(document.id)

    # ------------------------------------------------------------------
    # Comments, status, bulk
    # ------------------------------------------------------------------

    def add_comment(self, caller: UserRecord, document_id: int, content: str) -> CommentRecord:
        access = self.resolver.resolve(caller.id)
        document = self._load_accessible(caller, document_id, access)
        if not access.has_permission(DocflowPermission.COMMENTS_CREATE):
            raise PermissionDenied("You are not allowed to comment", user_id=caller.id)

        text = (content or "").strip()
        if not text:
            raise ValidationError("Comment is empty", field_errors={"content": ["Comment cannot be empty"]})

        with self.repository.transaction():
            comment = self.repository.add_comment(document.id, caller.id, text)
            self.audit.log(
                LogAction.ADD_COMMENT,
                user_id=caller.id,
                document_id=document.id,
                branch_ba_code=document.branch_ba_code,
                details={"comment_id": comment.id},
            )
        return comment

    def update_status(
        self,
        caller: UserRecord,
        document_id: int,
        status,
        comment: Optional[str] = None,
    ) -> DocumentRecord:
        return self.engine.transition(document_id, status, caller.id, comment)

    def bulk_send(self, caller: UserRecord, document_ids: Sequence[int]) -> BulkSendResult:
        return self.bulk.bulk_send(document_ids, caller.id)
