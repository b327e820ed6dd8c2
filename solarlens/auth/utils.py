"""
JWT helpers.

Tokens are issued by the identity provider in production; ``create_access_token``
exists for tooling and tests that need to mint one.
"""
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from solarlens.config import get_settings


class TokenData(BaseModel):
    """Token payload data."""
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    token_type: str = "access"


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        user_id: User's UUID as string
        email: User's email address
        role: User's role
        expires_delta: Optional custom expiration

    Returns:
        Encoded JWT token
    """
    settings = get_settings()
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": "access",
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT; None when the signature or expiry is invalid."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[TokenData]:
    """Return the token's data if it is a valid access token."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access" or not payload.get("sub"):
        return None
    return TokenData(
        user_id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        token_type=payload["type"],
    )
