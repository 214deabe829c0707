"""Request / response schemas for the auth routes.

The ``User`` ORM model is re-exported from the database package so auth
code has a single import point.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.password import MAX_PASSWORD_BYTES
from database.models import User  # noqa: F401

__all__ = [
    "User",
    "SignupRequest",
    "LoginRequest",
    "RefreshRequest",
    "PublicUser",
    "LoginResult",
    "TokenPair",
]


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be blank")
        return v.strip()

    @field_validator("email")
    @classmethod
    def email_has_at(cls, v: str) -> str:
        local, sep, domain = v.strip().partition("@")
        if not sep or not local or not domain:
            raise ValueError("Email must look like name@domain")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    # Over-long passwords are not rejected here; they simply never match.
    password: str = Field(..., min_length=1, max_length=1024)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., min_length=1, alias="refreshToken")


class PublicUser(BaseModel):
    id: str
    name: str
    email: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class LoginResult(BaseModel):
    user: PublicUser
    access_token: str
    refresh_token: str
