"""Pydantic schemas for role administration endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, description="Lower-case role name", examples=["auditor"])
    description: Optional[str] = None
    permission_ids: List[int] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """Omitted fields are left unchanged; ``permission_ids`` replaces the set."""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = None
    permission_ids: Optional[List[int]] = None


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    permission_ids: List[int] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PermissionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserRolesUpdate(BaseModel):
    """Replacement role set. An empty list assigns the default role."""
    role_ids: List[int] = Field(default_factory=list)


class UserRolesResponse(BaseModel):
    user_id: int
    roles: List[str]
    permissions: List[str]
