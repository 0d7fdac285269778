"""RoleService - role, permission and user-role administration.

Every mutation requires ``admin:roles`` (local administrator accounts pass
explicitly) and is written together with its activity log entry.

Protected roles (admin, user, guest) cannot be deleted and no built-in role
can be renamed; those checks run before the permission check so they fail
the same way for every caller.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..audit.service import AuditTrail, LogAction
from ..auth.permission_resolver import PermissionResolver
from ..domain.ports import DocflowRepositoryPort
from ..domain.records import PermissionRecord, RoleRecord
from ..domain.roles import (
    DEFAULT_ROLE,
    ROLE_DESCRIPTIONS,
    DocflowPermission,
    is_built_in_role,
    is_protected_role,
    validate_role_name,
)
from ..errors import Conflict, NotFound, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(
        self,
        repository: DocflowRepositoryPort,
        resolver: PermissionResolver,
        audit: AuditTrail,
    ):
        self.repository = repository
        self.resolver = resolver
        self.audit = audit

    def _require_role_admin(self, caller_id: int) -> None:
        if not self.resolver.has_permission(caller_id, DocflowPermission.ADMIN_ROLES, allow_local_admin=True):
            logger.warning("Role administration denied", extra={"user_id": caller_id})
            raise PermissionDenied("Role administration requires admin:roles", user_id=caller_id)

    def _load_role(self, role_id: int) -> RoleRecord:
        role = self.repository.get_role_by_id(role_id)
        if role is None:
            raise NotFound("Role", role_id)
        return role

    def _validate_permission_ids(self, permission_ids: Iterable[int]) -> List[int]:
        requested = sorted(set(permission_ids))
        found = {p.id for p in self.repository.get_permissions_by_ids(requested)}
        unknown = [pid for pid in requested if pid not in found]
        if unknown:
            raise ValidationError(
                f"Unknown permission ids: {unknown}",
                field_errors={"permission_ids": [f"Unknown ids: {unknown}"]},
            )
        return requested

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_roles(self, caller_id: int) -> List[RoleRecord]:
        self._require_role_admin(caller_id)
        return self.repository.list_roles()

    def list_permissions(self, caller_id: int) -> List[PermissionRecord]:
        self._require_role_admin(caller_id)
        return self.repository.list_permissions()

    def get_user_roles_and_permissions(self, caller_id: int, user_id: int) -> Dict[str, Any]:
        """Effective roles and permissions of ``user_id``.

        Users may read their own; anyone else needs admin:roles.
        """
        if caller_id != user_id:
            self._require_role_admin(caller_id)
        if self.repository.get_user_by_id(user_id) is None:
            raise NotFound("User", user_id)
        access = self.resolver.resolve(user_id)
        return {
            "user_id": user_id,
            "roles": sorted(access.roles),
            "permissions": sorted(access.permissions),
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_role(
        self,
        caller_id: int,
        name: str,
        description: Optional[str] = None,
        permission_ids: Iterable[int] = (),
    ) -> RoleRecord:
        self._require_role_admin(caller_id)
        name = validate_role_name(name)
        if self.repository.get_role_by_name(name) is not None:
            raise Conflict(f"Role '{name}' already exists", {"name": name})
        permission_ids = self._validate_permission_ids(permission_ids)

        with self.repository.transaction():
            role = self.repository.create_role(name, description)
            if permission_ids:
                self.repository.set_role_permissions(role.id, permission_ids)
            self.audit.log(
                LogAction.CREATE_ROLE,
                user_id=caller_id,
                details={"role_id": role.id, "name": name, "permission_ids": permission_ids},
            )
        logger.info("Role created", extra={"user_id": caller_id, "role": name})
        return self.repository.get_role_by_id(role.id)

    def update_role(
        self,
        caller_id: int,
        role_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[int]] = None,
    ) -> RoleRecord:
        """Rename, re-describe and/or replace the permission set of a role.

        Raises:
            Conflict: Renaming a built-in role, or the new name is taken
        """
        role = self._load_role(role_id)
        new_name = role.name if name is None else validate_role_name(name)
        if new_name != role.name:
            if is_built_in_role(role.name):
                raise Conflict(f"Built-in role '{role.name}' cannot be renamed", {"role_id": role_id})
        self._require_role_admin(caller_id)
        if new_name != role.name and self.repository.get_role_by_name(new_name) is not None:
            raise Conflict(f"Role '{new_name}' already exists", {"name": new_name})
        validated_ids = None if permission_ids is None else self._validate_permission_ids(permission_ids)

        with self.repository.transaction():
            self.repository.update_role(
                role.id,
                new_name,
                role.description if description is None else description,
            )
            if validated_ids is not None:
                self.repository.set_role_permissions(role.id, validated_ids)
            self.audit.log(
                LogAction.UPDATE_ROLE,
                user_id=caller_id,
                details={
                    "role_id": role.id,
                    "old_name": role.name,
                    "name": new_name,
                    "permission_ids": validated_ids,
                },
            )
        return self.repository.get_role_by_id(role.id)

    def delete_role(self, caller_id: int, role_id: int) -> None:
        """Delete a role and its assignments.

        Users left without any role get the default role on their next
        resolution.

        Raises:
            Conflict: The role is protected (for every caller)
        """
        role = self._load_role(role_id)
        if is_protected_role(role.name):
            raise Conflict(f"Built-in role '{role.name}' cannot be deleted", {"role_id": role_id})
        self._require_role_admin(caller_id)

        with self.repository.transaction():
            self.repository.delete_role(role.id)
            self.audit.log(
                LogAction.DELETE_ROLE,
                user_id=caller_id,
                details={"role_id": role.id, "name": role.name},
            )
        logger.info("Role deleted", extra={"user_id": caller_id, "role": role.name})

    def update_user_roles(self, caller_id: int, user_id: int, role_ids: Iterable[int]) -> Dict[str, Any]:
        """Replace the role set of a user.

        An empty set is replaced by the default role so no user is left
        without roles.
        """
        self._require_role_admin(caller_id)
        if self.repository.get_user_by_id(user_id) is None:
            raise NotFound("User", user_id)

        requested = sorted(set(role_ids))
        unknown = [rid for rid in requested if self.repository.get_role_by_id(rid) is None]
        if unknown:
            raise ValidationError(
                f"Unknown role ids: {unknown}",
                field_errors={"role_ids": [f"Unknown ids: {unknown}"]},
            )

        with self.repository.transaction():
            defaulted = not requested
            if defaulted:
                default_role = self.repository.get_role_by_name(DEFAULT_ROLE.value)
                if default_role is None:
                    default_role = self.repository.create_role(DEFAULT_ROLE.value, ROLE_DESCRIPTIONS[DEFAULT_ROLE])
                requested = [default_role.id]
            self.repository.set_user_roles(user_id, requested)
            self.audit.log(
                LogAction.UPDATE_USER_ROLES,
                user_id=caller_id,
                details={"target_user_id": user_id, "role_ids": requested, "defaulted": defaulted},
            )
        return self.get_user_roles_and_permissions(caller_id, user_id)
