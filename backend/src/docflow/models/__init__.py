"""SQLAlchemy Models for DocFlow"""

from .base import Base
from .user import User
from .role import Role, Permission, UserRole, RolePermission
from .branch import Branch
from .document import Document, DocumentStatusHistory, Comment
from .activity_log import ActivityLog

__all__ = [
    "Base",
    "User",
    "Role",
    "Permission",
    "UserRole",
    "RolePermission",
    "Branch",
    "Document",
    "DocumentStatusHistory",
    "Comment",
    "ActivityLog",
]
