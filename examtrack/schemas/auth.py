"""Authentication and user schemas."""

from datetime import datetime

from pydantic import Field

from examtrack.models.user import UserRole
from examtrack.schemas.common import BaseSchema


class LoginRequest(BaseSchema):
    """Login request schema."""

    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshTokenRequest(BaseSchema):
    """Refresh token request schema."""

    refresh_token: str


class PasswordChange(BaseSchema):
    """Password change schema."""

    current_password: str
    new_password: str = Field(..., min_length=8)


class UserCreate(BaseSchema):
    """User creation schema (admin only)."""

    name: str = Field(..., min_length=2, max_length=255)
    username: str = Field(..., min_length=3, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, pattern=r"^\+?[1-9]\d{0,15}$")
    password: str = Field(..., min_length=8)
    role: UserRole
    student_code: str | None = Field(None, min_length=3, max_length=20)
    teacher_code: str | None = Field(None, min_length=3, max_length=20)
    grade: str | None = Field(None, max_length=20)
    section: str | None = Field(None, max_length=20)


class UserUpdate(BaseSchema):
    """User update schema (admin only)."""

    name: str | None = Field(None, min_length=2, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, pattern=r"^\+?[1-9]\d{0,15}$")
    grade: str | None = Field(None, max_length=20)
    section: str | None = Field(None, max_length=20)
    is_active: bool | None = None


class UserResponse(BaseSchema):
    """User response schema."""

    id: int
    name: str
    username: str
    email: str | None
    phone: str | None
    role: UserRole
    student_code: str | None
    teacher_code: str | None
    grade: str | None
    section: str | None
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class UserFilter(BaseSchema):
    """User filtering options."""

    role: UserRole | None = None
    grade: str | None = None
    is_active: bool | None = None
    search: str | None = None
