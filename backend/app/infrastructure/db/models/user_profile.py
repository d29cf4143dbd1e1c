"""
UserProfile SQLModel for ARTI Ed

Display data keyed by the Supabase auth user id. The backend only reads it.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utcnow


class UserProfileModel(SQLModel, table=True):
    """Maps to the 'user_profiles' table."""

    __tablename__ = "user_profiles"

    id: str = Field(primary_key=True, max_length=64, description="auth.users id")
    full_name: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
    )
