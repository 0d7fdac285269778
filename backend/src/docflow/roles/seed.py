"""Idempotent seeding of roles, permissions and R6 branches.

Safe to run repeatedly: existing rows are reused, the role → permission
mapping of built-in roles is reset to ``ROLE_PERMISSION_SEED``.
"""

import logging
from typing import Dict, List, Tuple

from ..domain.ports import DocflowRepositoryPort
from ..domain.roles import ROLE_DESCRIPTIONS, ROLE_PERMISSION_SEED, DocflowPermission, RoleName

logger = logging.getLogger(__name__)

PERMISSION_DESCRIPTIONS: Dict[DocflowPermission, str] = {
    DocflowPermission.DOCUMENTS_CREATE: "Create documents",
    DocflowPermission.DOCUMENTS_UPLOAD: "Upload MT documents",
    DocflowPermission.DOCUMENTS_READ_BRANCH: "Read documents of own branch",
    DocflowPermission.DOCUMENTS_READ_ALL_BRANCHES: "Read documents of every branch",
    DocflowPermission.DOCUMENTS_UPDATE_STATUS: "Change document status",
    DocflowPermission.DOCUMENTS_APPROVE: "Approve documents",
    DocflowPermission.DOCUMENTS_DELETE: "Delete documents",
    DocflowPermission.COMMENTS_CREATE: "Add comments",
    DocflowPermission.COMMENTS_READ: "Read comments",
    DocflowPermission.COMMENTS_UPDATE: "Edit comments",
    DocflowPermission.COMMENTS_DELETE: "Delete comments",
    DocflowPermission.NOTIFICATIONS_SEND: "Send notifications",
    DocflowPermission.NOTIFICATIONS_MANAGE: "Manage notification settings",
    DocflowPermission.REPORTS_BRANCH: "Branch reports",
    DocflowPermission.REPORTS_REGION: "Region reports",
    DocflowPermission.REPORTS_SYSTEM: "System reports",
    DocflowPermission.REPORTS_READ: "Read reports",
    DocflowPermission.ADMIN_USERS: "Administer users",
    DocflowPermission.ADMIN_ROLES: "Administer roles and permissions",
    DocflowPermission.ADMIN_SYSTEM: "Administer system settings",
    DocflowPermission.ADMIN_FULL_ACCESS: "Full administrative access",
    DocflowPermission.SETTINGS_MANAGE: "Manage settings",
    DocflowPermission.DASHBOARD_ACCESS: "Access the dashboard",
    DocflowPermission.USERS_READ: "Read user profiles",
}

# (ba_code, branch_code, name)
R6_BRANCHES: List[Tuple[int, int, str]] = [
    (1060, 5521011, "กปภ.สาขาขอนแก่น(ชั้นพิเศษ)"),
    (1061, 5521012, "กปภ.สาขาบ้านไผ่"),
    (1062, 5521013, "กปภ.สาขาชุมแพ"),
    (1063, 5521014, "กปภ.สาขาน้ำพอง"),
    (1064, 5521015, "กปภ.สาขาชนบท"),
    (1065, 5521016, "กปภ.สาขากระนวน"),
    (1066, 5521017, "กปภ.สาขาหนองเรือ"),
    (1067, 5521018, "กปภ.สาขาเมืองพล"),
    (1068, 5521019, "กปภ.สาขากาฬสินธุ์"),
    (1069, 5521020, "กปภ.สาขากุฉินารายณ์"),
    (1070, 5521021, "กปภ.สาขาสมเด็จ"),
    (1071, 5521022, "กปภ.สาขามหาสารคาม"),
    (1072, 5521023, "กปภ.สาขาพยัคฆภูมิพิสัย"),
    (1073, 5521024, "กปภ.สาขาชัยภูมิ"),
    (1074, 5521025, "กปภ.สาขาแก้งคร้อ"),
    (1075, 5521026, "กปภ.สาขาจัตุรัส"),
    (1076, 5521027, "กปภ.สาขาหนองบัวแดง"),
    (1077, 5521028, "กปภ.สาขาภูเขียว"),
    (1133, 5521029, "กปภ.สาขาร้อยเอ็ด"),
    (1134, 5521030, "กปภ.สาขาโพนทอง"),
    (1135, 5521031, "กปภ.สาขาสุวรรณภูมิ"),
    (1245, 5521032, "กปภ.สาขาบำเหน็จณรงค์"),
]


def seed_roles_and_permissions(repository: DocflowRepositoryPort) -> Dict[str, int]:
    """Create every built-in role and permission and link them.

    Returns:
        Counts of roles and permissions present after seeding
    """
    with repository.transaction():
        permission_ids: Dict[DocflowPermission, int] = {}
        for permission in DocflowPermission:
            record = repository.ensure_permission(permission.value, PERMISSION_DESCRIPTIONS.get(permission))
            permission_ids[permission] = record.id

        for role_name in RoleName:
            role = repository.get_role_by_name(role_name.value)
            if role is None:
                role = repository.create_role(role_name.value, ROLE_DESCRIPTIONS[role_name])
                logger.info("Created role", extra={"role": role_name.value})
            granted = ROLE_PERMISSION_SEED.get(role_name, [])
            repository.set_role_permissions(role.id, [permission_ids[p] for p in granted])

    return {"roles": len(RoleName), "permissions": len(permission_ids)}


def seed_branches(repository: DocflowRepositoryPort) -> int:
    """Create or refresh the R6 branch list. Returns the number of branches."""
    with repository.transaction():
        for ba_code, branch_code, name in R6_BRANCHES:
            repository.ensure_branch(ba_code, name, branch_code=branch_code, region_code="R6")
    logger.info("Seeded branches", extra={"count": len(R6_BRANCHES)})
    return len(R6_BRANCHES)
