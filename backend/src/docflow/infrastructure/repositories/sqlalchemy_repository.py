"""SQLAlchemy adapter for DocflowRepositoryPort.

Maps ORM rows to the plain records in ``domain.records`` and translates
driver errors into the engine's taxonomy: integrity violations become
``Conflict``, every other SQLAlchemy failure becomes ``DependencyFailure``.
"""

import functools
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.documents import DocumentStatus
from ...domain.ports import DocflowRepositoryPort
from ...domain.records import (
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
from ...errors import Conflict, DependencyFailure
from ...models import (
    ActivityLog,
    Branch,
    Comment,
    Document,
    DocumentStatusHistory,
    Permission,
    Role,
    RolePermission,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

_USER_ATTRIBUTES = (
    "first_name",
    "last_name",
    "email",
    "cost_center",
    "ba",
    "part",
    "area",
    "job_name",
    "level",
    "div_name",
    "dep_name",
    "org_name",
    "position",
    "is_local_admin",
)

_DOCUMENT_WRITABLE = (
    "file_path",
    "original_filename",
    "file_size",
    "branch_ba_code",
    "mt_number",
    "mt_date",
    "subject",
    "month_year",
    "uploader_id",
    "has_additional_docs",
    "additional_docs",
    "disbursement_date",
    "disbursement_confirmed",
)


def _store_call(method):
    """Translate SQLAlchemy errors raised by ``method`` into engine errors."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except IntegrityError as exc:
            logger.warning(
                "Integrity violation in %s: %s",
                method.__name__,
                exc.orig,
                extra={"operation": method.__name__},
            )
            raise Conflict(f"Integrity constraint violated during {method.__name__}") from exc
        except SQLAlchemyError as exc:
            logger.error(
                "Database error in %s",
                method.__name__,
                exc_info=True,
                extra={"operation": method.__name__},
            )
            raise DependencyFailure("database", exc) from exc

    return wrapper


# ----------------------------------------------------------------------
# Row → record mapping
# ----------------------------------------------------------------------

def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        ba=user.ba,
        cost_center=user.cost_center,
        department=user.dep_name,
        position=user.position,
        is_local_admin=bool(user.is_local_admin),
    )


def _permission_record(permission: Permission) -> PermissionRecord:
    return PermissionRecord(id=permission.id, name=permission.name, description=permission.description)


def _branch_record(branch: Branch) -> BranchRecord:
    return BranchRecord(
        id=branch.id,
        ba_code=branch.ba_code,
        name=branch.name,
        region_code=branch.region_code,
        branch_code=branch.branch_code,
        is_active=bool(branch.is_active),
    )


def _document_record(document: Document) -> DocumentRecord:
    return DocumentRecord(
        id=document.id,
        branch_ba_code=document.branch_ba_code,
        uploader_id=document.uploader_id,
        status=DocumentStatus(document.status),
        mt_number=document.mt_number,
        mt_date=document.mt_date,
        subject=document.subject,
        month_year=document.month_year,
        original_filename=document.original_filename,
        file_path=document.file_path,
        has_additional_docs=bool(document.has_additional_docs),
        additional_docs=list(document.additional_docs or []),
        disbursement_date=document.disbursement_date,
        disbursement_confirmed=bool(document.disbursement_confirmed),
        version=document.version,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


def _history_record(row: DocumentStatusHistory) -> StatusHistoryRecord:
    return StatusHistoryRecord(
        id=row.id,
        document_id=row.document_id,
        from_status=row.from_status,
        to_status=row.to_status,
        changed_by=row.changed_by,
        comment=row.comment,
        created_at=row.created_at,
    )


def _activity_record(row: ActivityLog) -> ActivityLogRecord:
    return ActivityLogRecord(
        id=row.id,
        action=row.action,
        user_id=row.user_id,
        document_id=row.document_id,
        branch_ba_code=row.branch_ba_code,
        details=row.details,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        created_at=row.created_at,
    )


def _comment_record(row: Comment) -> CommentRecord:
    return CommentRecord(
        id=row.id,
        document_id=row.document_id,
        user_id=row.user_id,
        content=row.content,
        created_at=row.created_at,
    )


class SqlAlchemyDocflowRepository(DocflowRepositoryPort):
    """DocflowRepositoryPort backed by a SQLAlchemy session.

    One instance wraps one session (one request). Writes are flushed
    immediately so ids and server defaults are visible; they are committed
    only when the outermost ``transaction()`` scope exits cleanly.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self._depth = 0

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._depth += 1
        outermost = self._depth == 1
        try:
            yield
            if outermost:
                self.db.commit()
        except SQLAlchemyError as exc:
            if outermost:
                self.db.rollback()
            logger.error("Transaction aborted by database error", exc_info=True)
            raise DependencyFailure("database", exc) from exc
        except Exception:
            if outermost:
                self.db.rollback()
            raise
        finally:
            self._depth -= 1

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @_store_call
    def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        user = self.db.get(User, user_id)
        return _user_record(user) if user else None

    @_store_call
    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        user = self.db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        return _user_record(user) if user else None

    @_store_call
    def upsert_user(self, username: str, attributes: Dict[str, Any]) -> Tuple[UserRecord, bool]:
        user = self.db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        created = user is None
        if created:
            user = User(username=username)
            self.db.add(user)

        for key in _USER_ATTRIBUTES:
            if key in attributes:
                setattr(user, key, attributes[key])
        if not created:
            user.updated_at = func.now()

        self.db.flush()
        self.db.refresh(user)
        return _user_record(user), created

    # ------------------------------------------------------------------
    # Roles and permissions
    # ------------------------------------------------------------------

    def _role_record(self, role: Role) -> RoleRecord:
        permission_ids = self.db.execute(
            select(RolePermission.permission_id)
            .where(RolePermission.role_id == role.id)
            .order_by(RolePermission.permission_id)
        ).scalars().all()
        return RoleRecord(
            id=role.id,
            name=role.name,
            description=role.description,
            permission_ids=list(permission_ids),
        )

    @_store_call
    def get_role_by_id(self, role_id: int) -> Optional[RoleRecord]:
        role = self.db.get(Role, role_id)
        return self._role_record(role) if role else None

    @_store_call
    def get_role_by_name(self, name: str) -> Optional[RoleRecord]:
        role = self.db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()
        return self._role_record(role) if role else None

    @_store_call
    def list_roles(self) -> List[RoleRecord]:
        roles = self.db.execute(select(Role).order_by(Role.name)).scalars().all()
        return [self._role_record(role) for role in roles]

    @_store_call
    def create_role(self, name: str, description: Optional[str] = None) -> RoleRecord:
        role = Role(name=name, description=description)
        self.db.add(role)
        self.db.flush()
        return self._role_record(role)

    @_store_call
    def update_role(self, role_id: int, name: str, description: Optional[str] = None) -> RoleRecord:
        role = self.db.get(Role, role_id)
        role.name = name
        role.description = description
        role.updated_at = func.now()
        self.db.flush()
        return self._role_record(role)

    @_store_call
    def delete_role(self, role_id: int) -> None:
        self.db.execute(delete(UserRole).where(UserRole.role_id == role_id))
        self.db.execute(delete(RolePermission).where(RolePermission.role_id == role_id))
        self.db.execute(delete(Role).where(Role.id == role_id))
        self.db.flush()

    @_store_call
    def list_permissions(self) -> List[PermissionRecord]:
        permissions = self.db.execute(select(Permission).order_by(Permission.name)).scalars().all()
        return [_permission_record(p) for p in permissions]

    @_store_call
    def get_permissions_by_ids(self, permission_ids: Iterable[int]) -> List[PermissionRecord]:
        ids = list(set(permission_ids))
        if not ids:
            return []
        permissions = self.db.execute(
            select(Permission).where(Permission.id.in_(ids)).order_by(Permission.name)
        ).scalars().all()
        return [_permission_record(p) for p in permissions]

    @_store_call
    def ensure_permission(self, name: str, description: Optional[str] = None) -> PermissionRecord:
        permission = self.db.execute(
            select(Permission).where(Permission.name == name)
        ).scalar_one_or_none()
        if permission is None:
            permission = Permission(name=name, description=description)
            self.db.add(permission)
            self.db.flush()
        return _permission_record(permission)

    @_store_call
    def set_role_permissions(self, role_id: int, permission_ids: Iterable[int]) -> None:
        self.db.execute(delete(RolePermission).where(RolePermission.role_id == role_id))
        for permission_id in sorted(set(permission_ids)):
            self.db.add(RolePermission(role_id=role_id, permission_id=permission_id))
        self.db.flush()

    @_store_call
    def get_permission_names_for_roles(self, role_names: Iterable[str]) -> Set[str]:
        names = list(set(role_names))
        if not names:
            return set()
        rows = self.db.execute(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .where(Role.name.in_(names))
            .distinct()
        ).scalars().all()
        return set(rows)

    @_store_call
    def get_user_role_names(self, user_id: int) -> List[str]:
        rows = self.db.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        ).scalars().all()
        return list(rows)

    @_store_call
    def set_user_roles(self, user_id: int, role_ids: Iterable[int]) -> None:
        self.db.execute(delete(UserRole).where(UserRole.user_id == user_id))
        for role_id in sorted(set(role_ids)):
            self.db.add(UserRole(user_id=user_id, role_id=role_id))
        self.db.flush()

    @_store_call
    def add_user_role(self, user_id: int, role_id: int) -> bool:
        existing = self.db.execute(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        ).scalar_one_or_none()
        if existing is not None:
            return False
        self.db.add(UserRole(user_id=user_id, role_id=role_id))
        self.db.flush()
        return True

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    @_store_call
    def get_branch_by_ba_code(self, ba_code: int) -> Optional[BranchRecord]:
        branch = self.db.execute(
            select(Branch).where(Branch.ba_code == ba_code, Branch.is_active.is_(True))
        ).scalar_one_or_none()
        return _branch_record(branch) if branch else None

    @_store_call
    def list_active_branches(self) -> List[BranchRecord]:
        branches = self.db.execute(
            select(Branch).where(Branch.is_active.is_(True)).order_by(Branch.ba_code)
        ).scalars().all()
        return [_branch_record(b) for b in branches]

    @_store_call
    def ensure_branch(
        self,
        ba_code: int,
        name: str,
        branch_code: Optional[int] = None,
        region_code: str = "R6",
    ) -> BranchRecord:
        branch = self.db.execute(select(Branch).where(Branch.ba_code == ba_code)).scalar_one_or_none()
        if branch is None:
            branch = Branch(ba_code=ba_code, is_active=True)
            self.db.add(branch)
        branch.name = name
        branch.branch_code = branch_code
        branch.region_code = region_code
        self.db.flush()
        return _branch_record(branch)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @_store_call
    def get_document_by_id(self, document_id: int) -> Optional[DocumentRecord]:
        document = self.db.get(Document, document_id)
        return _document_record(document) if document else None

    @_store_call
    def create_document(self, values: Dict[str, Any]) -> DocumentRecord:
        document = Document(
            status=DocumentStatus.DRAFT.value,
            version=1,
            **{key: values[key] for key in _DOCUMENT_WRITABLE if key in values},
        )
        self.db.add(document)
        self.db.flush()
        self.db.refresh(document)
        return _document_record(document)

    @_store_call
    def update_document_metadata(self, document_id: int, values: Dict[str, Any]) -> DocumentRecord:
        document = self.db.get(Document, document_id)
        for key in _DOCUMENT_WRITABLE:
            if key in values:
                setattr(document, key, values[key])
        self.db.flush()
        self.db.refresh(document)
        return _document_record(document)

    @_store_call
    def update_document_status(
        self,
        document_id: int,
        expected_status: DocumentStatus,
        new_status: DocumentStatus,
    ) -> Optional[DocumentRecord]:
        result = self.db.execute(
            update(Document)
            .where(Document.id == document_id, Document.status == expected_status.value)
            .values(
                status=new_status.value,
                version=Document.version + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        document = self.db.get(Document, document_id, populate_existing=True)
        return _document_record(document)

    @_store_call
    def delete_document(self, document_id: int) -> bool:
        document = self.db.get(Document, document_id)
        if document is None:
            return False
        self.db.delete(document)
        self.db.flush()
        return True

    def _filtered_documents(self, query, filters: DocumentFilters):
        if filters.status is not None:
            query = query.where(Document.status == filters.status.value)
        elif filters.exclude_drafts:
            query = query.where(Document.status != DocumentStatus.DRAFT.value)
        if filters.date_from is not None:
            query = query.where(Document.mt_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(Document.mt_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.where(or_(Document.subject.ilike(pattern), Document.mt_number.ilike(pattern)))
        return query

    def _document_page(self, query, filters: DocumentFilters) -> Page[DocumentRecord]:
        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        rows = self.db.execute(
            query.order_by(Document.created_at.desc(), Document.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        ).scalars().all()
        return Page(
            data=[_document_record(row) for row in rows],
            total=total,
            page=filters.page,
            limit=filters.limit,
        )

    @_store_call
    def search_documents(
        self,
        branch_ba_codes: Sequence[int],
        filters: DocumentFilters,
    ) -> Page[DocumentRecord]:
        codes = list(branch_ba_codes)
        if not codes:
            return Page.empty(filters.page, filters.limit)
        query = self._filtered_documents(
            select(Document).where(Document.branch_ba_code.in_(codes)),
            filters,
        )
        return self._document_page(query, filters)

    @_store_call
    def get_user_own_documents(self, user_id: int, filters: DocumentFilters) -> Page[DocumentRecord]:
        query = self._filtered_documents(
            select(Document).where(Document.uploader_id == user_id),
            filters,
        )
        return self._document_page(query, filters)

    # ------------------------------------------------------------------
    # History, audit and comments
    # ------------------------------------------------------------------

    @_store_call
    def add_status_history(
        self,
        document_id: int,
        from_status: Optional[str],
        to_status: str,
        changed_by: int,
        comment: Optional[str] = None,
    ) -> StatusHistoryRecord:
        row = DocumentStatusHistory(
            document_id=document_id,
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            comment=comment,
        )
        self.db.add(row)
        self.db.flush()
        self.db.refresh(row)
        return _history_record(row)

    @_store_call
    def list_status_history(self, document_id: int) -> List[StatusHistoryRecord]:
        rows = self.db.execute(
            select(DocumentStatusHistory)
            .where(DocumentStatusHistory.document_id == document_id)
            .order_by(DocumentStatusHistory.created_at, DocumentStatusHistory.id)
        ).scalars().all()
        return [_history_record(row) for row in rows]

    @_store_call
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
        row = ActivityLog(
            action=action,
            user_id=user_id,
            document_id=document_id,
            branch_ba_code=branch_ba_code,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(row)
        self.db.flush()
        self.db.refresh(row)
        return _activity_record(row)

    @_store_call
    def list_activity_logs(self, filters: ActivityLogFilters) -> Page[ActivityLogRecord]:
        query = select(ActivityLog)
        if filters.user_id is not None:
            query = query.where(ActivityLog.user_id == filters.user_id)
        if filters.action:
            query = query.where(ActivityLog.action == filters.action)
        if filters.document_id is not None:
            query = query.where(ActivityLog.document_id == filters.document_id)
        if filters.branch_ba_code is not None:
            query = query.where(ActivityLog.branch_ba_code == filters.branch_ba_code)
        if filters.date_from is not None:
            query = query.where(ActivityLog.created_at >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(ActivityLog.created_at <= filters.date_to)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        rows = self.db.execute(
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        ).scalars().all()
        return Page(
            data=[_activity_record(row) for row in rows],
            total=total,
            page=filters.page,
            limit=filters.limit,
        )

    @_store_call
    def add_comment(self, document_id: int, user_id: int, content: str) -> CommentRecord:
        row = Comment(document_id=document_id, user_id=user_id, content=content)
        self.db.add(row)
        self.db.flush()
        self.db.refresh(row)
        return _comment_record(row)

    @_store_call
    def list_comments(self, document_id: int) -> List[CommentRecord]:
        rows = self.db.execute(
            select(Comment)
            .where(Comment.document_id == document_id)
            .order_by(Comment.created_at, Comment.id)
        ).scalars().all()
        return [_comment_record(row) for row in rows]
