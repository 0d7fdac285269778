"""Caller identity, role/permission resolution and branch-scoped access control."""

from .access_guard import AccessGuard
from .permission_resolver import PermissionResolver, ResolvedAccess

__all__ = ["AccessGuard", "PermissionResolver", "ResolvedAccess"]
