"""
User Pydantic Schemas

Schemas:
- UserCreate: Registration data (name, email, password)
- UserUpdate: Profile update fields
- UserResponse: The caller's own account, counters included
- UserPublicResponse: Profile visible to other users (no email)
- PasswordChange: Current + new password
- TokenResponse / RefreshTokenRequest: JWT exchange
- UserStatsResponse: Reconciled activity counters

Pydantic v2 Features Used:
- Field(): constraints and OpenAPI metadata
- field_validator: normalize and validate values
- EmailStr: built-in email validation
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _check_password_strength(v: str) -> str:
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one number")
    return v


def _check_name(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 2:
        raise ValueError("Name must be at least 2 characters")
    if not re.match(r"^[a-zA-Z\s]+$", v):
        raise ValueError("Name can only contain letters and spaces")
    return v


class UserCreate(BaseModel):
    """
    Schema for user registration.

    Example request body:
    {
        "name": "Jane Reader",
        "email": "jane@example.com",
        "password": "SecurePass123"
    }
    """

    name: str = Field(
        ...,
        min_length=2,
        max_length=50,
        description="Display name (letters and spaces)",
        examples=["Jane Reader"],
    )

    email: EmailStr = Field(
        ...,
        max_length=254,
        description="Email address, used to log in",
        examples=["jane@example.com"],
    )

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (min 8 chars, must include uppercase, lowercase and number)",
        examples=["SecurePass123"],
    )

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return _check_password_strength(v)


class UserUpdate(BaseModel):
    """Schema for updating the caller's profile. All fields optional."""

    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: EmailStr | None = Field(default=None, max_length=254)

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v: str | None) -> str | None:
        return _check_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else v


class UserResponse(BaseModel):
    """
    Schema for the authenticated user's own account.

    SECURITY: Never includes the password hash.
    """

    id: int = Field(..., description="Unique user identifier")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address")
    role: str = Field(..., description="user or admin")
    is_active: bool = Field(..., description="Whether the account is active")
    books_count: int = Field(..., ge=0, description="Active books added by the user")
    reviews_count: int = Field(..., ge=0, description="Active reviews written by the user")
    created_at: datetime = Field(..., description="When the user registered")
    last_login_at: datetime | None = Field(default=None, description="Last successful login")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Jane Reader",
                "email": "jane@example.com",
                "role": "user",
                "is_active": True,
                "books_count": 3,
                "reviews_count": 12,
                "created_at": "2024-01-15T10:30:00Z",
                "last_login_at": "2024-02-01T08:00:00Z",
            }
        },
    )


class UserPublicResponse(BaseModel):
    """Public profile of a user, as seen by others. Excludes email."""

    id: int = Field(..., description="Unique user identifier")
    name: str = Field(..., description="Display name")
    books_count: int = Field(default=0, description="Active books added")
    reviews_count: int = Field(default=0, description="Active reviews written")
    created_at: datetime = Field(..., description="When the user joined")

    model_config = ConfigDict(from_attributes=True)


class PasswordChange(BaseModel):
    """Schema for password change request."""

    current_password: str = Field(
        ...,
        min_length=1,
        description="Current password for verification",
    )

    new_password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="New password",
    )

    @field_validator("new_password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return _check_password_strength(v)


# =============================================================================
# Token Schemas
# =============================================================================


class TokenResponse(BaseModel):
    """
    Returned by login and refresh.

    The refresh token is also set as an httpOnly cookie.
    """

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type for Authorization header")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class RefreshTokenRequest(BaseModel):
    """Body for POST /auth/refresh when the cookie is not available."""

    refresh_token: str = Field(..., description="JWT refresh token")


class UserStatsResponse(BaseModel):
    """Reading activity of the authenticated user."""

    books_count: int = Field(..., ge=0)
    reviews_count: int = Field(..., ge=0)
    average_rating_given: float = Field(..., ge=0, le=5, description="0 when no reviews")
    member_since: datetime
