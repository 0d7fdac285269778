"""PermissionResolver - expands a user id into effective roles and permissions.

Resolution is performed on every call; nothing is cached across requests, so
role changes take effect on the affected user's next request.

Invariants:
- A resolved user always has at least one role. A user with no UserRole rows
  is given the default ``user`` role as a side effect (idempotent).
- If the store is unreachable, resolution fails closed: the result carries
  only ``guest``, no permissions, and ``degraded=True``.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from ..audit.service import AuditTrail, LogAction
from ..domain.ports import DocflowRepositoryPort
from ..domain.roles import DEFAULT_ROLE, ROLE_DESCRIPTIONS, PermissionName, RoleName
from ..errors import Conflict, DependencyFailure, NotFound
from ..observability.metrics import permission_resolution_failures_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedAccess:
    """Effective roles and permissions of one user at one point in time.

    Attributes:
        user_id: Subject of the resolution
        roles: Role names (never empty)
        permissions: Union of the roles' permission names
        degraded: True when the store could not be read and the result is the
            fail-closed fallback; AccessGuard denies everything in that case
    """
    user_id: int
    roles: FrozenSet[str]
    permissions: FrozenSet[str]
    degraded: bool = False

    def has_role(self, role) -> bool:
        return str(getattr(role, "value", role)) in self.roles

    def has_any_role(self, roles: Iterable) -> bool:
        return any(self.has_role(role) for role in roles)

    def has_permission(self, permission) -> bool:
        return PermissionName(permission) in self.permissions

    def has_any_permission(self, permissions: Iterable) -> bool:
        return any(self.has_permission(p) for p in permissions)


class PermissionResolver:
    """Resolves users to roles and permissions against the repository port."""

    def __init__(self, repository: DocflowRepositoryPort, audit: Optional[AuditTrail] = None):
        self.repository = repository
        self.audit = audit or AuditTrail(repository)

    def resolve(self, user_id: int) -> ResolvedAccess:
        """Return the effective roles and permissions of ``user_id``.

        Raises:
            NotFound: If the user does not exist and has to be given a default role
        """
        try:
            roles = self.repository.get_user_role_names(user_id)
            if not roles:
                try:
                    roles = [self._assign_default_role(user_id)]
                except Conflict:
                    # A concurrent resolution assigned the default role first
                    roles = self.repository.get_user_role_names(user_id)
            permissions = self.repository.get_permission_names_for_roles(roles)
        except DependencyFailure:
            permission_resolution_failures_total.inc()
            logger.error(
                "Permission resolution failed, denying access",
                extra={"user_id": user_id},
                exc_info=True,
            )
            return ResolvedAccess(
                user_id=user_id,
                roles=frozenset({RoleName.GUEST.value}),
                permissions=frozenset(),
                degraded=True,
            )

        return ResolvedAccess(
            user_id=user_id,
            roles=frozenset(roles),
            permissions=frozenset(permissions),
        )

    def has_role(self, user_id: int, role) -> bool:
        return self.resolve(user_id).has_role(role)

    def has_permission(self, user_id: int, permission, allow_local_admin: bool = False) -> bool:
        """Check a single permission.

        Args:
            user_id: User to check
            permission: Permission name (validated as ``resource:action``)
            allow_local_admin: Caller-granted capability letting a local
                administrator account pass without the permission. Never implied.

        Returns:
            True if the permission is held, or the bypass applies
        """
        access = self.resolve(user_id)
        if access.has_permission(permission):
            return True
        if not allow_local_admin or access.degraded:
            return False
        try:
            user = self.repository.get_user_by_id(user_id)
        except DependencyFailure:
            return False
        return bool(user and user.is_local_admin)

    def _assign_default_role(self, user_id: int) -> str:
        with self.repository.transaction():
            if self.repository.get_user_by_id(user_id) is None:
                raise NotFound("User", user_id)

            role = self.repository.get_role_by_name(DEFAULT_ROLE.value)
            if role is None:
                role = self.repository.create_role(DEFAULT_ROLE.value, ROLE_DESCRIPTIONS[DEFAULT_ROLE])

            if self.repository.add_user_role(user_id, role.id):
                self.audit.log(
                    LogAction.ASSIGN_DEFAULT_ROLE,
                    user_id=user_id,
                    details={"role": role.name, "target_user_id": user_id},
                )
                logger.info(
                    "Assigned default role to user without roles",
                    extra={"user_id": user_id, "role": role.name},
                )
        return role.name
