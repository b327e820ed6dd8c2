"""
Authentication dependencies for FastAPI routes.
"""
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from solarlens.auth.utils import verify_access_token
from solarlens.database import get_db
from solarlens.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from solarlens.models.user import User

# HTTP Bearer token extractor
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from JWT token.

    Raises:
        AuthenticationError: If no token provided
        InvalidTokenError: If token is invalid or the user no longer exists
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    token_data = verify_access_token(credentials.credentials)
    if not token_data:
        raise InvalidTokenError()

    try:
        user_id = uuid.UUID(token_data.user_id)
    except ValueError:
        raise InvalidTokenError()

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise InvalidTokenError()
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise AuthorizationError("User account is disabled")
    return current_user

