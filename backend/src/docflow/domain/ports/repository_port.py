"""Repository Port - Domain interface for the DocFlow store.

This port defines every persistence primitive the lifecycle engine needs.
Adapters implement it for a concrete store (SQLAlchemy in deployment); the
engine components receive an instance through their constructors and never
reach for a global database handle.

Contract shared by all adapters:
- Reads return plain records from ``domain.records`` (never ORM rows)
- Writes become durable only when the enclosing ``transaction()`` exits cleanly
- Any store failure surfaces as ``DependencyFailure``
- Activity logs and status history are append-only: there are no update or
  delete primitives for them
"""

from abc import ABC, abstractmethod
from typing import Any, ContextManager, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..documents.document_status import DocumentStatus
from ..records import (
    ActivityLogFilters,
    ActivityLogRecord,
    BranchRecord,
    CommentRecord,
    DocumentFilters,
    DocumentRecord,
    Page,
    PermissionRecord,
    RoleRecord,
    StatusHistoryRecord,
    UserRecord,
)


class DocflowRepositoryPort(ABC):
    """Port interface for DocFlow persistence operations."""

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @abstractmethod
    def transaction(self) -> ContextManager[None]:
        """Open an atomic scope.

        Everything written inside the scope commits together or not at all.
        Nested scopes join the outermost one.

        Example:
            with repository.transaction():
                repository.update_document_status(...)
                repository.add_status_history(...)
                repository.add_activity_log(...)
        """

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def upsert_user(self, username: str, attributes: Dict[str, Any]) -> Tuple[UserRecord, bool]:
        """Create or refresh a user from directory attributes.

        Returns:
            (user, created) where ``created`` is True for a new row
        """

    # ------------------------------------------------------------------
    # Roles and permissions
    # ------------------------------------------------------------------

    @abstractmethod
    def get_role_by_id(self, role_id: int) -> Optional[RoleRecord]:
        ...

    @abstractmethod
    def get_role_by_name(self, name: str) -> Optional[RoleRecord]:
        ...

    @abstractmethod
    def list_roles(self) -> List[RoleRecord]:
        ...

    @abstractmethod
    def create_role(self, name: str, description: Optional[str] = None) -> RoleRecord:
        ...

    @abstractmethod
    def update_role(self, role_id: int, name: str, description: Optional[str] = None) -> RoleRecord:
        ...

    @abstractmethod
    def delete_role(self, role_id: int) -> None:
        """Delete a role together with its user and permission assignments."""

    @abstractmethod
    def list_permissions(self) -> List[PermissionRecord]:
        ...

    @abstractmethod
    def get_permissions_by_ids(self, permission_ids: Iterable[int]) -> List[PermissionRecord]:
        ...

    @abstractmethod
    def ensure_permission(self, name: str, description: Optional[str] = None) -> PermissionRecord:
        """Return the permission named ``name``, creating it if missing."""

    @abstractmethod
    def set_role_permissions(self, role_id: int, permission_ids: Iterable[int]) -> None:
        """Replace the permission set of a role."""

    @abstractmethod
    def get_permission_names_for_roles(self, role_names: Iterable[str]) -> Set[str]:
        """Union of permission names granted to any of ``role_names``."""

    @abstractmethod
    def get_user_role_names(self, user_id: int) -> List[str]:
        ...

    @abstractmethod
    def set_user_roles(self, user_id: int, role_ids: Iterable[int]) -> None:
        """Replace the role set of a user."""

    @abstractmethod
    def add_user_role(self, user_id: int, role_id: int) -> bool:
        """Attach a role to a user. Returns False if it was already attached."""

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    @abstractmethod
    def get_branch_by_ba_code(self, ba_code: int) -> Optional[BranchRecord]:
        """Active branch with ``ba_code``, or None."""

    @abstractmethod
    def list_active_branches(self) -> List[BranchRecord]:
        ...

    @abstractmethod
    def ensure_branch(
        self,
        ba_code: int,
        name: str,
        branch_code: Optional[int] = None,
        region_code: str = "R6",
    ) -> BranchRecord:
        ...

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    def get_document_by_id(self, document_id: int) -> Optional[DocumentRecord]:
        ...

    @abstractmethod
    def create_document(self, values: Dict[str, Any]) -> DocumentRecord:
        ...

    @abstractmethod
    def update_document_metadata(self, document_id: int, values: Dict[str, Any]) -> DocumentRecord:
        ...

    @abstractmethod
    def update_document_status(
        self,
        document_id: int,
        expected_status: DocumentStatus,
        new_status: DocumentStatus,
    ) -> Optional[DocumentRecord]:
        """Compare-and-set the status of a document.

        Returns:
            The updated document, or None when the stored status no longer
            equals ``expected_status`` (another writer got there first)
        """

    @abstractmethod
    def delete_document(self, document_id: int) -> bool:
        ...

    @abstractmethod
    def search_documents(
        self,
        branch_ba_codes: Sequence[int],
        filters: DocumentFilters,
    ) -> Page[DocumentRecord]:
        """Documents owned by any of ``branch_ba_codes`` that match ``filters``."""

    @abstractmethod
    def get_user_own_documents(self, user_id: int, filters: DocumentFilters) -> Page[DocumentRecord]:
        """Documents uploaded by ``user_id`` that match ``filters``."""

    # ------------------------------------------------------------------
    # History, audit and comments
    # ------------------------------------------------------------------

    @abstractmethod
    def add_status_history(
        self,
        document_id: int,
        from_status: Optional[str],
        to_status: str,
        changed_by: int,
        comment: Optional[str] = None,
    ) -> StatusHistoryRecord:
        ...

    @abstractmethod
    def list_status_history(self, document_id: int) -> List[StatusHistoryRecord]:
        ...

    @abstractmethod
    def add_activity_log(
        self,
        action: str,
        user_id: Optional[int] = None,
        document_id: Optional[int] = None,
        branch_ba_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ActivityLogRecord:
        ...

    @abstractmethod
    def list_activity_logs(self, filters: ActivityLogFilters) -> Page[ActivityLogRecord]:
        ...

    @abstractmethod
    def add_comment(self, document_id: int, user_id: int, content: str) -> CommentRecord:
        ...

    @abstractmethod
    def list_comments(self, document_id: int) -> List[CommentRecord]:
        ...
