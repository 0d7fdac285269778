"""Pydantic schemas for the identity sync endpoint."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProfileSyncRequest(BaseModel):
    """Profile of a user who just signed in with the external identity provider."""
    username: str = Field(..., min_length=1, max_length=255, examples=["somchai.p"])
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    cost_center: Optional[str] = None
    ba: Optional[str] = Field(None, description="BA code of the user's branch", examples=["1060"])
    part: Optional[str] = None
    area: Optional[str] = None
    job_name: Optional[str] = None
    level: Optional[str] = None
    div_name: Optional[str] = None
    dep_name: Optional[str] = None
    org_name: Optional[str] = None
    position: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ProfileSyncResponse(BaseModel):
    """Bearer token for the synchronised user.

    Attributes:
        access_token: JWT access token
        token_type: Token type (always "bearer")
        expires_in: Token expiry in seconds
        created: True if this login created the user
        roles: Effective roles after sync, for display only
    """
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: int
    username: str
    created: bool
    roles: List[str]
