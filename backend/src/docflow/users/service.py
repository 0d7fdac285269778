"""UserDirectory - creates and refreshes users from external identity profiles.

Called once per successful external login. Besides upserting the user row it
auto-assigns roles from organisational attributes:

- everyone gets ``user``
- BA equal to the district code gets ``district_manager`` and ``uploader``
- otherwise a user whose BA maps to an active branch gets ``branch_user``,
  and one whose position contains a manager keyword gets ``branch_manager``

Sync only ever adds roles. ``admin`` is assigned manually.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..audit.service import AuditTrail, LogAction
from ..branches.service import BranchService
from ..config import Settings, get_settings
from ..domain.ports import DocflowRepositoryPort
from ..domain.records import UserRecord
from ..domain.roles import RoleName
from ..errors import ValidationError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
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
)


class UserDirectory:
    def __init__(
        self,
        repository: DocflowRepositoryPort,
        audit: AuditTrail,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.audit = audit
        self.settings = settings or get_settings()
        self.branches = BranchService(repository)

    def auto_roles_for(self, user: UserRecord) -> List[RoleName]:
        """Roles implied by the user's organisational attributes."""
        roles = [RoleName.USER]
        if user.branch_ba_code == self.settings.DISTRICT_BA_CODE:
            roles += [RoleName.DISTRICT_MANAGER, RoleName.UPLOADER]
            return roles

        if self.branches.get_user_branch(user) is not None:
            roles.append(RoleName.BRANCH_USER)

        position = (user.position or "").lower()
        if any(keyword in position for keyword in self.settings.manager_position_keywords):
            roles.append(RoleName.BRANCH_MANAGER)
        return roles

    def sync_user_from_profile(self, profile: Dict[str, Any]) -> Tuple[UserRecord, bool]:
        """Upsert a user from an identity profile and add implied roles.

        Args:
            profile: ``username`` plus any of PROFILE_FIELDS

        Returns:
            (user, created)

        Raises:
            ValidationError: If the profile has no username
        """
        username = (profile.get("username") or "").strip()
        if not username:
            raise ValidationError(
                "Profile has no username",
                field_errors={"username": ["Username is required"]},
            )
        attributes = {key: profile[key] for key in PROFILE_FIELDS if key in profile}

        with self.repository.transaction():
            user, created = self.repository.upsert_user(username, attributes)
            if created:
                self.audit.log(
                    LogAction.CREATE_USER,
                    user_id=user.id,
                    details={"username": username, "ba": user.ba},
                )

            added = []
            for role_name in self.auto_roles_for(user):
                role = self.repository.get_role_by_name(role_name.value)
                if role is None:
                    logger.warning(
                        "Role missing during user sync; run the role seed",
                        extra={"role": role_name.value, "user_id": user.id},
                    )
                    continue
                if self.repository.add_user_role(user.id, role.id):
                    added.append(role.name)

            if added:
                self.audit.log(
                    LogAction.UPDATE_USER_ROLES,
                    user_id=user.id,
                    details={"target_user_id": user.id, "added": added, "source": "directory_sync"},
                )
            self.audit.log(LogAction.LOGIN, user_id=user.id, branch_ba_code=user.branch_ba_code)

        logger.info(
            "Synchronised user from identity profile",
            extra={"user_id": user.id, "created": created, "roles_added": added},
        )
        return user, created
