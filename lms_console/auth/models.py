from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    """Roles known to the backend."""

    ADMIN = "ADMIN"
    STUDENT = "STUDENT"
    TRAINER = "TRAINER"
    PROGRAM_COORDINATOR = "PROGRAM_COORDINATOR"


class AuthTokens(BaseModel):
    """Token pair as returned by login, signup and refresh."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class UserProfile(BaseModel):
    """Cached profile record.

    ``/api/auth/me`` reports ``userId`` while login reports ``id``; both are
    kept. Unknown fields are preserved so the cached copy round-trips.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    username: str | None = None
    email: str | None = None
    role: UserRole | None = None
    status: str | None = None
    display_id: str | None = Field(default=None, alias="displayId")
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuthPayload(BaseModel):
    """``data`` member of login / signup / refresh responses."""

    user: UserProfile | None = None
    tokens: AuthTokens


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorInfo(BaseModel):
    message: str
    details: list[ErrorDetail] | None = None


class ApiEnvelope(BaseModel):
    """Standard response envelope ``{success, data, message, error}``."""

    success: bool = False
    data: Any = None
    message: str | None = None
    error: ErrorInfo | None = None


class MessageResult(BaseModel):
    success: bool
    message: str


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    phone_number: str = Field(alias="phoneNumber")
    role: UserRole | None = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole | None) -> UserRole | None:
        """Admins are provisioned by other admins, never self-registered."""
        if v is UserRole.ADMIN:
            raise ValueError("ADMIN accounts cannot be created through signup")
        return v

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
