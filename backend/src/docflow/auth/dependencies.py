"""FastAPI dependencies for caller authentication.

The bearer token only identifies the caller. Roles and permissions are
resolved per request by the services, never read from the token.

Usage:
    @router.get("/me")
    def me(caller: UserRecord = Depends(get_current_user)):
        return {"id": caller.id}
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..dependencies import get_repository
from ..domain.ports import DocflowRepositoryPort
from ..domain.records import UserRecord
from .jwt import decode_token

# HTTP Bearer token security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    repository: DocflowRepositoryPort = Depends(get_repository),
) -> UserRecord:
    """Extract and validate the JWT token, returning the authenticated user.

    Raises:
        HTTPException 401: If token is missing, invalid, expired, or user not found
    """
    try:
        payload = decode_token(credentials.credentials)
        subject = payload.get("sub")
        if not subject:
            raise _unauthorized("Invalid token: missing user ID claim")
        user_id = int(subject)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")
    except ValueError as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")

    user = repository.get_user_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user
