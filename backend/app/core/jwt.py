"""
JWT token utilities for authentication.

Tokens carry the user's id and role; everything else is looked up per request.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload to encode (sub, user_id, role)
        expires_delta: Optional custom lifetime

    Example payload:
        {
            "sub": "o6_bmjrPTlm6_2sgVt7hMZOPfL2M",
            "user_id": 12,
            "role": "user",
            "exp": 1752105600
        }
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": datetime.now(timezone.utc) + lifetime})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_user_token(user) -> str:
    return create_access_token(
        data={"sub": user.openid, "user_id": user.id, "role": user.role.value}
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.

    Returns:
        The payload if the signature and expiry check out, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
