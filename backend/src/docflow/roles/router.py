"""Role, permission and user-role administration endpoints.

Mutations require admin:roles. Built-in roles (admin, user, guest) cannot
be renamed or deleted; attempts answer 409.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ..auth.dependencies import get_current_user
from ..dependencies import get_role_service
from ..domain.records import UserRecord
from .schemas import (
    PermissionResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    UserRolesResponse,
    UserRolesUpdate,
)
from .service import RoleService

router = APIRouter(tags=["Roles"])


@router.get("/roles", response_model=List[RoleResponse], summary="List roles")
def list_roles(
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.list_roles(caller.id)


@router.post(
    "/roles",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
)
def create_role(
    body: RoleCreate,
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.create_role(caller.id, body.name, body.description, body.permission_ids)


@router.patch("/roles/{role_id}", response_model=RoleResponse, summary="Update a role")
def update_role(
    role_id: int,
    body: RoleUpdate,
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.update_role(caller.id, role_id, body.name, body.description, body.permission_ids)


@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a role",
    description="Fails with 409 for built-in roles regardless of the caller's permissions.",
)
def delete_role(
    role_id: int,
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    service.delete_role(caller.id, role_id)


@router.get("/permissions", response_model=List[PermissionResponse], summary="List permissions")
def list_permissions(
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.list_permissions(caller.id)


@router.get(
    "/users/{user_id}/roles",
    response_model=UserRolesResponse,
    summary="Effective roles and permissions of a user",
)
def get_user_roles(
    user_id: int,
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.get_user_roles_and_permissions(caller.id, user_id)


@router.put(
    "/users/{user_id}/roles",
    response_model=UserRolesResponse,
    summary="Replace the roles of a user",
)
def update_user_roles(
    user_id: int,
    body: UserRolesUpdate,
    service: RoleService = Depends(get_role_service),
    caller: UserRecord = Depends(get_current_user),
):
    return service.update_user_roles(caller.id, user_id, body.role_ids)
