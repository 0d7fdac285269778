"""JWT token generation and validation

Bearer tokens identify the caller and nothing else. Roles and permissions
are deliberately absent from the claims: they are re-resolved from the
store on every request so that a role change takes effect immediately
instead of at the user's next login.

JWT Token Claims:
- sub: User id as a string
- username: Login name, for logs and display only
- iat: Issued-at Unix timestamp
- exp: Expiry Unix timestamp (iat + JWT_EXPIRY_MINUTES)

Example Token Payload:
{
  "sub": "42",
  "username": "somchai.p",
  "iat": 1704368400,
  "exp": 1704372000
}
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from ..config import get_settings


def create_access_token(user_id: int, username: str) -> str:
    """Create a JWT access token for an authenticated user.

    Args:
        user_id: User's database id
        username: User's login name

    Returns:
        str: Signed JWT token
    """
    settings = get_settings()

    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)

    payload = {
        "sub": str(user_id),  # Subject: user ID
        "username": username,
        "iat": int(now.timestamp()),  # Issued at
        "exp": int(expiration.timestamp()),  # Expiration
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()

    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
