"""Per-request wiring of the engine components.

FastAPI caches each dependency for the duration of one request, so every
component built here shares the same repository (and therefore the same
session and transaction scope).

Usage:
    @router.patch("/{document_id}/status")
    def update_status(
        service: DocumentService = Depends(get_document_service),
        caller: UserRecord = Depends(get_current_user),
    ):
        ...
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .audit.service import AuditTrail, request_context_from_request
from .auth.access_guard import AccessGuard
from .auth.permission_resolver import PermissionResolver
from .config import Settings, get_settings
from .database import get_db
from .documents.bulk import BulkOperationCoordinator
from .documents.service import DocumentService
from .documents.transitions import StatusTransitionEngine
from .domain.ports import DocflowRepositoryPort, NotificationPort
from .infrastructure.repositories.sqlalchemy_repository import SqlAlchemyDocflowRepository
from .notifications.service import LoggingNotificationService
from .roles.service import RoleService
from .users.service import UserDirectory


def get_repository(db: Session = Depends(get_db)) -> DocflowRepositoryPort:
    return SqlAlchemyDocflowRepository(db)


def get_audit_trail(
    request: Request,
    repository: DocflowRepositoryPort = Depends(get_repository),
) -> AuditTrail:
    return AuditTrail(repository, request_context_from_request(request))


def get_notifier(settings: Settings = Depends(get_settings)) -> NotificationPort:
    return LoggingNotificationService(channel=settings.NOTIFICATION_CHANNEL)


def get_permission_resolver(
    repository: DocflowRepositoryPort = Depends(get_repository),
    audit: AuditTrail = Depends(get_audit_trail),
) -> PermissionResolver:
    return PermissionResolver(repository, audit)


def get_access_guard(
    repository: DocflowRepositoryPort = Depends(get_repository),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> AccessGuard:
    return AccessGuard(repository, resolver)


def get_transition_engine(
    repository: DocflowRepositoryPort = Depends(get_repository),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    guard: AccessGuard = Depends(get_access_guard),
    audit: AuditTrail = Depends(get_audit_trail),
    notifier: NotificationPort = Depends(get_notifier),
) -> StatusTransitionEngine:
    return StatusTransitionEngine(repository, resolver, guard, audit, notifier)


def get_bulk_coordinator(
    repository: DocflowRepositoryPort = Depends(get_repository),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    guard: AccessGuard = Depends(get_access_guard),
    engine: StatusTransitionEngine = Depends(get_transition_engine),
    audit: AuditTrail = Depends(get_audit_trail),
    notifier: NotificationPort = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> BulkOperationCoordinator:
    return BulkOperationCoordinator(
        repository,
        resolver,
        guard,
        engine,
        audit,
        notifier,
        max_documents=settings.BULK_SEND_MAX_DOCUMENTS,
    )


def get_document_service(
    repository: DocflowRepositoryPort = Depends(get_repository),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    guard: AccessGuard = Depends(get_access_guard),
    engine: StatusTransitionEngine = Depends(get_transition_engine),
    bulk: BulkOperationCoordinator = Depends(get_bulk_coordinator),
    audit: AuditTrail = Depends(get_audit_trail),
    settings: Settings = Depends(get_settings),
) -> DocumentService:
    return DocumentService(repository, resolver, guard, engine, bulk, audit, settings)


def get_role_service(
    repository: DocflowRepositoryPort = Depends(get_repository),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    audit: AuditTrail = Depends(get_audit_trail),
) -> RoleService:
    return RoleService(repository, resolver, audit)


def get_user_directory(
    repository: DocflowRepositoryPort = Depends(get_repository),
    audit: AuditTrail = Depends(get_audit_trail),
    settings: Settings = Depends(get_settings),
) -> UserDirectory:
    return UserDirectory(repository, audit, settings)
