"""AccessGuard - branch-scoped visibility of documents.

Rules:
- admin and district_manager see every branch and every document
- every other role sees only the user's own branch (BA code)
- a draft is private to its uploader (admin and district_manager excepted)
- a degraded resolution sees nothing

Denials raise PermissionDenied from the ``require_*`` methods; the ``can_*``
methods return booleans for callers that filter.
"""

import logging
from typing import List

from ..domain.ports import DocflowRepositoryPort
from ..domain.records import DocumentRecord, UserRecord
from ..domain.roles import ALL_BRANCH_ROLES
from ..errors import NotFound, PermissionDenied
from ..observability.metrics import access_denials_total
from .permission_resolver import PermissionResolver, ResolvedAccess

logger = logging.getLogger(__name__)


class AccessGuard:
    """Decides whether a user may see or act on a document or branch."""

    def __init__(self, repository: DocflowRepositoryPort, resolver: PermissionResolver):
        self.repository = repository
        self.resolver = resolver

    @staticmethod
    def has_all_branch_access(access: ResolvedAccess) -> bool:
        return not access.degraded and access.has_any_role(ALL_BRANCH_ROLES)

    def accessible_branches(self, user: UserRecord, access: ResolvedAccess) -> List[int]:
        """BA codes whose non-draft documents ``user`` may see.

        Returns every active branch for elevated roles, otherwise exactly the
        user's own branch, or nothing if that cannot be determined.
        """
        if access.degraded:
            return []
        if self.has_all_branch_access(access):
            return [branch.ba_code for branch in self.repository.list_active_branches()]
        own = user.branch_ba_code
        return [own] if own is not None else []

    def can_access_document(
        self,
        user: UserRecord,
        document: DocumentRecord,
        access: ResolvedAccess,
    ) -> bool:
        if access.degraded:
            return False
        if document.is_draft:
            return document.uploader_id == user.id or self.has_all_branch_access(access)
        if self.has_all_branch_access(access):
            return True
        own = user.branch_ba_code
        return own is not None and document.branch_ba_code == own

    def require_document_access(
        self,
        user: UserRecord,
        document: DocumentRecord,
        access: ResolvedAccess,
    ) -> None:
        """Raise PermissionDenied unless ``user`` may access ``document``."""
        if not self.can_access_document(user, document, access):
            access_denials_total.labels(reason="document").inc()
            logger.warning(
                "Document access denied",
                extra={
                    "user_id": user.id,
                    "document_id": document.id,
                    "branch_ba_code": document.branch_ba_code,
                    "status": document.status.value,
                },
            )
            raise PermissionDenied(
                "You do not have access to this document",
                user_id=user.id,
                document_id=document.id,
            )

    def require_branch_access(self, user: UserRecord, ba_code: int, access: ResolvedAccess) -> None:
        if ba_code not in self.accessible_branches(user, access):
            access_denials_total.labels(reason="branch").inc()
            logger.warning(
                "Branch access denied",
                extra={"user_id": user.id, "branch_ba_code": ba_code},
            )
            raise PermissionDenied(
                "You do not have access to this branch",
                user_id=user.id,
                branch_ba_code=ba_code,
            )

    def can_user_access_document(self, user_id: int, document_id: int) -> bool:
        """Resolve ``user_id`` afresh and check access to ``document_id``.

        Raises:
            NotFound: If the user or the document does not exist
        """
        user = self.repository.get_user_by_id(user_id)
        if user is None:
            raise NotFound("User", user_id)
        document = self.repository.get_document_by_id(document_id)
        if document is None:
            raise NotFound("Document", document_id)
        return self.can_access_document(user, document, self.resolver.resolve(user_id))
