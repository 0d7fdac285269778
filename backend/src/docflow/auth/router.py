"""Identity sync endpoint.

The login front end authenticates users against the external identity
provider, then forwards the profile here. DocFlow creates or refreshes the
user, adds the roles implied by the profile and returns a bearer token.
The call is server-to-server and must carry the shared IDENTITY_SYNC_KEY.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..config import Settings, get_settings
from ..dependencies import get_permission_resolver, get_user_directory
from ..users.service import UserDirectory
from .jwt import create_access_token
from .permission_resolver import PermissionResolver
from .schemas import ProfileSyncRequest, ProfileSyncResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def require_sync_key(
    sync_key: Optional[str] = Header(None, alias="X-Identity-Sync-Key"),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.IDENTITY_SYNC_KEY
    if not expected or not sync_key or not secrets.compare_digest(sync_key, expected):
        logger.warning("Profile sync rejected: missing or invalid sync key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid identity sync key",
        )


@router.post(
    "/sync",
    response_model=ProfileSyncResponse,
    summary="Sync an externally authenticated user",
    description="Upserts the user from the identity profile, adds implied roles and issues a bearer token.",
    dependencies=[Depends(require_sync_key)],
)
def sync_profile(
    body: ProfileSyncRequest,
    directory: UserDirectory = Depends(get_user_directory),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    settings: Settings = Depends(get_settings),
):
    user, created = directory.sync_user_from_profile(body.model_dump(exclude_none=True))
    access = resolver.resolve(user.id)

    return ProfileSyncResponse(
        access_token=create_access_token(user_id=user.id, username=user.username),
        expires_in=settings.JWT_EXPIRY_MINUTES * 60,
        user_id=user.id,
        username=user.username,
        created=created,
        roles=sorted(access.roles),
    )
