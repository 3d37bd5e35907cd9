"""
User, Session and Profile Models
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from config import settings


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Session(BaseModel):
    """Authenticated caller, passed explicitly into every core entry point"""
    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    locale: str = settings.DEFAULT_LOCALE

    class Config:
        frozen = True


_PROFILE_DEFAULTS = {"xp_points": 0, "level": 1, "streak_days": 0}


class UserProfile(BaseModel):
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    xp_points: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    streak_days: int = Field(0, ge=0)
    role: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("xp_points", "level", "streak_days", mode="before")
    @classmethod
    def null_counters(cls, value, info):
        # Rows created before the gamification columns existed carry NULLs
        if value is None:
            return _PROFILE_DEFAULTS[info.field_name]
        return value

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or "Anonymous"


class SessionInfo(BaseModel):
    user_id: str
    email: Optional[str] = None
    locale: str
    role: Role
    is_admin: bool
