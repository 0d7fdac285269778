"""Pytest fixtures for the DocFlow engine.

Provides reusable test fixtures for:
- In-memory SQLite database with the full schema, seeded roles and branches
- Engine components wired against the SQLAlchemy repository
- Users per role and documents in any status
- A TestClient sharing the test session, plus bearer-token headers

Usage:
    def test_branch_user_acknowledges(transition_engine, branch_user, make_document):
        document = make_document(status=DocumentStatus.SENT_TO_BRANCH)
        transition_engine.transition(document.id, "acknowledged", branch_user.id)
"""

import os
from datetime import date
from itertools import count
from typing import Generator, List, Optional

# Set environment variables BEFORE any docflow imports to ensure they take effect
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("IDENTITY_SYNC_KEY", "test-identity-sync-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docflow.config import get_settings

get_settings.cache_clear()

from docflow.audit.service import AuditTrail
from docflow.auth.access_guard import AccessGuard
from docflow.auth.jwt import create_access_token
from docflow.auth.permission_resolver import PermissionResolver
from docflow.database import build_engine, get_db
from docflow.documents.bulk import BulkOperationCoordinator
from docflow.documents.service import DocumentService
from docflow.documents.transitions import StatusTransitionEngine
from docflow.domain.documents import DocumentStatus
from docflow.domain.ports import BulkSendEvent, DocumentEvent, NotificationPort
from docflow.domain.records import DocumentRecord, UserRecord
from docflow.domain.roles import RoleName
from docflow.infrastructure.repositories.sqlalchemy_repository import SqlAlchemyDocflowRepository
from docflow.models import Base
from docflow.roles.seed import seed_branches, seed_roles_and_permissions
from docflow.roles.service import RoleService
from docflow.users.service import UserDirectory

DISTRICT_BA = "1059"
BRANCH_A = 1060
BRANCH_B = 1061


class RecordingNotifier(NotificationPort):
    """NotificationPort that keeps every event, optionally failing on send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.document_events: List[DocumentEvent] = []
        self.bulk_events: List[BulkSendEvent] = []

    def send_document_notification(self, event: DocumentEvent) -> None:
        if self.fail:
            raise ConnectionError("chat service unreachable")
        self.document_events.append(event)

    def send_bulk_notification(self, event: BulkSendEvent) -> None:
        if self.fail:
            raise ConnectionError("chat service unreachable")
        self.bulk_events.append(event)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Fresh in-memory database per test.

    StaticPool keeps the single connection alive so the TestClient thread
    sees the same database as the test body.
    """
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def repository(db_session: Session) -> SqlAlchemyDocflowRepository:
    """Repository over a database seeded with built-in roles and R6 branches."""
    repo = SqlAlchemyDocflowRepository(db_session)
    seed_roles_and_permissions(repo)
    seed_branches(repo)
    return repo


# =============================================================================
# ENGINE COMPONENTS
# =============================================================================

@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture
def audit(repository) -> AuditTrail:
    return AuditTrail(repository)


@pytest.fixture
def resolver(repository, audit) -> PermissionResolver:
    return PermissionResolver(repository, audit)


@pytest.fixture
def guard(repository, resolver) -> AccessGuard:
    return AccessGuard(repository, resolver)


@pytest.fixture
def transition_engine(repository, resolver, guard, audit, notifier) -> StatusTransitionEngine:
    return StatusTransitionEngine(repository, resolver, guard, audit, notifier)


@pytest.fixture
def bulk_coordinator(repository, resolver, guard, transition_engine, audit, notifier) -> BulkOperationCoordinator:
    return BulkOperationCoordinator(repository, resolver, guard, transition_engine, audit, notifier, max_documents=50)


@pytest.fixture
def document_service(repository, resolver, guard, transition_engine, bulk_coordinator, audit) -> DocumentService:
    return DocumentService(repository, resolver, guard, transition_engine, bulk_coordinator, audit)


@pytest.fixture
def role_service(repository, resolver, audit) -> RoleService:
    return RoleService(repository, resolver, audit)


@pytest.fixture
def user_directory(repository, audit) -> UserDirectory:
    return UserDirectory(repository, audit)


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture
def make_user(repository):
    """Factory creating a user with exactly the given roles.

    An empty role list leaves the user without any UserRole rows.
    """
    def _make(
        username: str,
        roles: Optional[List[RoleName]] = None,
        ba: Optional[str] = str(BRANCH_A),
        position: Optional[str] = None,
        is_local_admin: bool = False,
    ) -> UserRecord:
        with repository.transaction():
            user, _ = repository.upsert_user(
                username,
                {
                    "first_name": username.split(".")[0].title(),
                    "last_name": "Tester",
                    "ba": ba,
                    "position": position,
                    "is_local_admin": is_local_admin,
                },
            )
            role_ids = [repository.get_role_by_name(RoleName(r).value).id for r in (roles or [])]
            repository.set_user_roles(user.id, role_ids)
        return user

    return _make


@pytest.fixture
def admin_user(make_user) -> UserRecord:
    return make_user("admin.user", [RoleName.ADMIN], ba=DISTRICT_BA)


@pytest.fixture
def district_manager(make_user) -> UserRecord:
    return make_user("district.manager", [RoleName.DISTRICT_MANAGER, RoleName.USER], ba=DISTRICT_BA)


@pytest.fixture
def uploader(make_user) -> UserRecord:
    """Uploader assigned to branch 1060, so non-draft 1060 documents are visible."""
    return make_user("somchai.uploader", [RoleName.UPLOADER, RoleName.USER])


@pytest.fixture
def second_uploader(make_user) -> UserRecord:
    return make_user("malee.uploader", [RoleName.UPLOADER, RoleName.USER])


@pytest.fixture
def branch_user(make_user) -> UserRecord:
    return make_user("branch.user", [RoleName.BRANCH_USER, RoleName.USER], ba=str(BRANCH_A))


@pytest.fixture
def other_branch_user(make_user) -> UserRecord:
    return make_user("other.branch", [RoleName.BRANCH_USER, RoleName.USER], ba=str(BRANCH_B))


@pytest.fixture
def branch_manager(make_user) -> UserRecord:
    return make_user("branch.manager", [RoleName.BRANCH_MANAGER, RoleName.USER], ba=str(BRANCH_A))


@pytest.fixture
def plain_user(make_user) -> UserRecord:
    return make_user("plain.user", [RoleName.USER], ba=str(BRANCH_A))


# =============================================================================
# DOCUMENTS
# =============================================================================

@pytest.fixture
def make_document(repository, uploader):
    """Factory creating a document directly in the given status.

    The status is forced through the repository so no history or activity
    rows are written; tests count those from a clean slate.
    """
    numbers = count(1)

    def _make(
        status: DocumentStatus = DocumentStatus.DRAFT,
        ba_code: int = BRANCH_A,
        owner: Optional[UserRecord] = None,
        subject: str = "ค่าน้ำประปา",
    ) -> DocumentRecord:
        n = next(numbers)
        with repository.transaction():
            document = repository.create_document(
                {
                    "branch_ba_code": ba_code,
                    "uploader_id": (owner or uploader).id,
                    "mt_number": f"MT-2568/{n:04d}",
                    "mt_date": date(2025, 1, n % 28 + 1),
                    "subject": f"{subject} {n}",
                    "month_year": "มกราคม 2568",
                }
            )
            if status != DocumentStatus.DRAFT:
                document = repository.update_document_status(document.id, DocumentStatus.DRAFT, status)
        return document

    return _make


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture(scope="function")
def client(db_session: Session, repository) -> Generator[TestClient, None, None]:
    """Unauthenticated test client bound to the seeded test session."""
    from docflow.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user."""
    def _headers(user: UserRecord) -> dict:
        token = create_access_token(user_id=user.id, username=user.username)
        return {"Authorization": f"Bearer {token}"}

    return _headers
