"""Role and permission vocabulary for DocFlow.

Roles:
- ADMIN: Full system access, role administration, every branch
- DISTRICT_MANAGER: District office staff, uploads and final checks, every branch
- UPLOADER: Creates and sends MT transmittals from the district office
- BRANCH_MANAGER: Branch head, acknowledges and returns documents for own branch
- BRANCH_USER: Branch staff, acknowledges and returns documents for own branch
- MANAGER, USER, GUEST: Built-in baseline roles

Transition Gate Matrix:
┌─────────────────────────────────────┬───────┬──────────┬──────────┬────────┬─────────┐
│ Edge                                │ ADMIN │ DISTRICT │ UPLOADER │ BRANCH │ BRANCH  │
│                                     │       │ MANAGER  │          │ USER   │ MANAGER │
├─────────────────────────────────────┼───────┼──────────┼──────────┼────────┼─────────┤
│ draft → sent_to_branch              │   ✓   │    ✓     │    ✓     │        │         │
│ sent_to_branch → acknowledged       │   ✓   │          │          │   ✓    │    ✓    │
│ sent_to_branch → sent_back          │   ✓   │          │          │   ✓    │    ✓    │
│ acknowledged → sent_back            │   ✓   │          │          │   ✓    │    ✓    │
│ sent_back → all_checked             │   ✓   │    ✓     │          │        │         │
│ all_checked → complete              │   ✓   │    ✓     │    ✓     │        │         │
└─────────────────────────────────────┴───────┴──────────┴──────────┴────────┴─────────┘
"""

import re
from enum import Enum
from typing import Dict, FrozenSet, List, Union

from ..errors import ValidationError


class RoleName(str, Enum):
    """Roles known to the engine.

    Values are stored as TEXT in the roles table and must match exactly.
    """
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
    GUEST = "guest"
    UPLOADER = "uploader"
    BRANCH_USER = "branch_user"
    BRANCH_MANAGER = "branch_manager"
    DISTRICT_MANAGER = "district_manager"


# Built-ins that can never be deleted
PROTECTED_ROLES: FrozenSet[str] = frozenset({
    RoleName.ADMIN.value,
    RoleName.USER.value,
    RoleName.GUEST.value,
})

# Transition gates and branch scoping look roles up by these names, so none
# of them can be renamed
BUILT_IN_ROLES: FrozenSet[str] = frozenset(role.value for role in RoleName)

# Every user resolves to at least this role
DEFAULT_ROLE = RoleName.USER

# Roles whose visibility is not limited to the user's own branch
ALL_BRANCH_ROLES: FrozenSet[str] = frozenset({
    RoleName.ADMIN.value,
    RoleName.DISTRICT_MANAGER.value,
})

_ROLE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]{1,49}$")
_PERMISSION_PATTERN = re.compile(r"^[a-z][a-z_]*:[a-z][a-z_]*$")


def validate_role_name(name: str) -> str:
    """Validate a role name for a runtime-created role.

    Known roles are always valid. Custom roles must be lower-case identifiers
    of 2 to 50 characters.

    Raises:
        ValidationError: If the name is empty or malformed

    Examples:
        >>> validate_role_name("auditor")
        'auditor'
        >>> validate_role_name("Auditor")
        Traceback (most recent call last):
        ...
        docflow.errors.ValidationError: Invalid role name: 'Auditor'
    """
    if isinstance(name, RoleName):
        return name.value
    candidate = (name or "").strip()
    if not _ROLE_NAME_PATTERN.match(candidate):
        raise ValidationError(
            f"Invalid role name: {name!r}",
            field_errors={"name": ["Role names are lower-case letters, digits and underscores"]},
        )
    return candidate


def is_protected_role(name: str) -> bool:
    return str(getattr(name, "value", name)) in PROTECTED_ROLES


def is_built_in_role(name: str) -> bool:
    return str(getattr(name, "value", name)) in BUILT_IN_ROLES


class PermissionName(str):
    """A validated ``resource:action`` permission name.

    Construction fails for anything that is not colon-namespaced, so a typo
    in a permission name is caught where the name is built rather than at
    check time.

    Examples:
        >>> PermissionName("documents:update_status").resource
        'documents'
        >>> PermissionName("update_status")
        Traceback (most recent call last):
        ...
        docflow.errors.ValidationError: Invalid permission name: 'update_status'
    """

    def __new__(cls, value: Union[str, "DocflowPermission"]):
        raw = value.value if isinstance(value, Enum) else value
        if not isinstance(raw, str) or not _PERMISSION_PATTERN.match(raw):
            raise ValidationError(
                f"Invalid permission name: {raw!r}",
                field_errors={"name": ["Permission names follow the resource:action convention"]},
            )
        return super().__new__(cls, raw)

    @property
    def resource(self) -> str:
        return self.split(":", 1)[0]

    @property
    def action(self) -> str:
        return self.split(":", 1)[1]


class DocflowPermission(str, Enum):
    """Permissions seeded into every deployment."""
    # Documents
    DOCUMENTS_CREATE = "documents:create"
    DOCUMENTS_UPLOAD = "documents:upload"
    DOCUMENTS_READ_BRANCH = "documents:read_branch"
    DOCUMENTS_READ_ALL_BRANCHES = "documents:read_all_branches"
    DOCUMENTS_UPDATE_STATUS = "documents:update_status"
    DOCUMENTS_APPROVE = "documents:approve"
    DOCUMENTS_DELETE = "documents:delete"

    # Comments
    COMMENTS_CREATE = "comments:create"
    COMMENTS_READ = "comments:read"
    COMMENTS_UPDATE = "comments:update"
    COMMENTS_DELETE = "comments:delete"

    # Notifications
    NOTIFICATIONS_SEND = "notifications:send"
    NOTIFICATIONS_MANAGE = "notifications:manage"

    # Reports
    REPORTS_BRANCH = "reports:branch"
    REPORTS_REGION = "reports:region"
    REPORTS_SYSTEM = "reports:system"
    REPORTS_READ = "reports:read"

    # Administration
    ADMIN_USERS = "admin:users"
    ADMIN_ROLES = "admin:roles"
    ADMIN_SYSTEM = "admin:system"
    ADMIN_FULL_ACCESS = "admin:full_access"
    SETTINGS_MANAGE = "settings:manage"

    # Baseline
    DASHBOARD_ACCESS = "dashboard:access"
    USERS_READ = "users:read"


P = DocflowPermission

ROLE_DESCRIPTIONS: Dict[RoleName, str] = {
    RoleName.ADMIN: "ผู้ดูแลระบบ",
    RoleName.MANAGER: "ผู้บริหาร",
    RoleName.USER: "ผู้ใช้งานทั่วไป",
    RoleName.GUEST: "ผู้เยี่ยมชม",
    RoleName.UPLOADER: "ผู้อัปโหลดเอกสาร",
    RoleName.BRANCH_USER: "ผู้ใช้สาขา",
    RoleName.BRANCH_MANAGER: "หัวหน้าสาขา",
    RoleName.DISTRICT_MANAGER: "ผู้จัดการเขต",
}

ROLE_PERMISSION_SEED: Dict[RoleName, List[DocflowPermission]] = {
    RoleName.ADMIN: list(DocflowPermission),
    RoleName.UPLOADER: [
        P.DOCUMENTS_CREATE,
        P.DOCUMENTS_UPLOAD,
        P.NOTIFICATIONS_SEND,
        P.DASHBOARD_ACCESS,
        P.REPORTS_READ,
    ],
    RoleName.BRANCH_USER: [
        P.DOCUMENTS_READ_BRANCH,
        P.DOCUMENTS_UPDATE_STATUS,
        P.COMMENTS_CREATE,
        P.COMMENTS_READ,
        P.DASHBOARD_ACCESS,
        P.REPORTS_READ,
    ],
    RoleName.BRANCH_MANAGER: [
        P.DOCUMENTS_READ_BRANCH,
        P.DOCUMENTS_UPDATE_STATUS,
        P.DOCUMENTS_APPROVE,
        P.COMMENTS_CREATE,
        P.COMMENTS_READ,
        P.REPORTS_BRANCH,
        P.DASHBOARD_ACCESS,
        P.REPORTS_READ,
    ],
    RoleName.DISTRICT_MANAGER: [
        P.DOCUMENTS_CREATE,
        P.DOCUMENTS_UPLOAD,
        P.DOCUMENTS_READ_ALL_BRANCHES,
        P.DOCUMENTS_UPDATE_STATUS,
        P.DOCUMENTS_APPROVE,
        P.COMMENTS_CREATE,
        P.COMMENTS_READ,
        P.NOTIFICATIONS_SEND,
        P.REPORTS_BRANCH,
        P.REPORTS_REGION,
        P.REPORTS_SYSTEM,
        P.DASHBOARD_ACCESS,
        P.REPORTS_READ,
    ],
    RoleName.MANAGER: [
        P.DOCUMENTS_READ_BRANCH,
        P.COMMENTS_READ,
        P.REPORTS_BRANCH,
        P.DASHBOARD_ACCESS,
        P.REPORTS_READ,
    ],
    RoleName.USER: [
        P.DOCUMENTS_READ_BRANCH,
        P.COMMENTS_CREATE,
        P.COMMENTS_READ,
        P.DASHBOARD_ACCESS,
        P.REPORTS_READ,
    ],
    RoleName.GUEST: [
        P.DASHBOARD_ACCESS,
    ],
}
