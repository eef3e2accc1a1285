"""
User record and request/response schemas.

Attributes are snake_case in Python and camelCase on the wire.
``UserResponse`` is the only shape a user leaves the service in; it has no
password field.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserProfileFields(CamelModel):
    """Optional astrological profile and usage fields."""

    birth_date: Optional[datetime] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    birth_latitude: Optional[float] = Field(None, ge=-90, le=90)
    birth_longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_subscribed: bool = False
    trial_ends_at: Optional[datetime] = None
    questions_asked: int = Field(0, ge=0)
    daily_streak: int = Field(0, ge=0)
    last_active_at: Optional[datetime] = None


class UserCreate(UserProfileFields):
    """Fields accepted by the store when creating a user."""

    email: str
    name: str
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)


class User(UserCreate):
    """Stored user record, including the ``salt:hash`` credential."""

    id: str
    created_at: datetime
    updated_at: datetime


class UserResponse(UserProfileFields):
    """User as returned by the API."""

    id: str
    email: str
    name: str
    created_at: datetime
    updated_at: datetime


def to_user_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user.model_dump(exclude={"password"}))


class RegisterUserRequest(CamelModel):
    """Registration body. Unknown keys (the mobile client sends ``username``) are ignored."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    birth_date: Optional[datetime] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    birth_latitude: Optional[float] = Field(None, ge=-90, le=90)
    birth_longitude: Optional[float] = Field(None, ge=-180, le=180)


class LoginUserRequest(CamelModel):
    email: EmailStr
    password: str


_NOT_NULLABLE = ("email", "name", "is_subscribed", "questions_asked", "daily_streak")


class UpdateUserRequest(CamelModel):
    """
    Partial profile update.

    Only keys present in the body are applied. ``id``, ``password``,
    ``createdAt``, ``updatedAt`` and any unknown key are rejected.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1)
    birth_date: Optional[datetime] = None
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    birth_latitude: Optional[float] = Field(None, ge=-90, le=90)
    birth_longitude: Optional[float] = Field(None, ge=-180, le=180)
    is_subscribed: Optional[bool] = None
    trial_ends_at: Optional[datetime] = None
    questions_asked: Optional[int] = Field(None, ge=0)
    daily_streak: Optional[int] = Field(None, ge=0)
    last_active_at: Optional[datetime] = None

    @field_validator(*_NOT_NULLABLE, mode="before")
    @classmethod
    def _reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v

    def changes(self) -> dict:
        """Return only the fields the client actually sent."""
        data = self.model_dump(exclude_unset=True)
        if "email" in data:
            data["email"] = normalize_email(data["email"])
        return data
