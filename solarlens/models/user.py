"""
User model.

Only the profile fields the analysis engine reads live here; credentials
are managed by the identity provider that issues access tokens.
"""
import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Float, String
from sqlalchemy.sql import func

from solarlens.database import Base
from solarlens.models.types import UUID


class UserRole(str, Enum):
    """User role enumeration."""
    ADMIN = "admin"
    USER = "user"


class User(Base):
    """User model for ownership checks and saved location."""

    __tablename__ = "users"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Saved location, used when a request carries none
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    state = Column(String(2), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User {self.email}>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def has_location(self) -> bool:
        """Check whether the profile carries usable coordinates."""
        return self.latitude is not None and self.longitude is not None

    def can_access(self, owner_id: Optional[uuid.UUID]) -> bool:
        """Owners and admins may read or delete a record."""
        return self.is_admin or (owner_id is not None and str(owner_id) == str(self.id))
