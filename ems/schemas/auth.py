"""Pydantic schemas for authentication-related payloads and responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from ems.core.config import settings
from ems.core.enums import Role


def _require_code_or_token(code: str | None, token: str | None) -> None:
    if not code and not token:
        raise ValueError("either code or verification_token is required")


class SignupRequest(BaseModel):
    """Payload for self-service registration.

    Ownership of the email is shown either by the signup OTP itself (`code`)
    or by the `verification_token` returned from `/api/otp/verify`.
    """

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=settings.MIN_PASSWORD_LENGTH)
    role: Role
    code: str | None = Field(default=None, min_length=1, max_length=12)
    verification_token: str | None = None
    manager_email: EmailStr | None = None

    @model_validator(mode="after")
    def _check(self) -> "SignupRequest":
        _require_code_or_token(self.code, self.verification_token)
        if self.role is Role.EMPLOYEE and not self.manager_email:
            raise ValueError("manager_email is required for employee signup")
        return self


class LoginRequest(BaseModel):
    """Payload for login attempts."""

    email: EmailStr
    password: str
    role: Role


class PasswordResetRequest(BaseModel):
    email: EmailStr
    code: str | None = Field(default=None, min_length=1, max_length=12)
    verification_token: str | None = None
    new_password: str = Field(min_length=settings.MIN_PASSWORD_LENGTH)

    @model_validator(mode="after")
    def _check(self) -> "PasswordResetRequest":
        _require_code_or_token(self.code, self.verification_token)
        return self


class UserResponse(BaseModel):
    """Response body representing an account; never includes the password hash."""

    id: int
    employee_id: str
    name: str
    email: str
    role: Role
    position: str
    department: str
    salary: float
    phone: str
    address: str
    joining_date: str
    leaves_left: int
    status: str
    manager_id: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Bearer token response returned after successful authentication."""

    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    user: UserResponse


class ProfileUpdate(BaseModel):
    """Self-service profile edit. Email, salary, balance and status stay with the manager."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    position: str | None = None
    department: str | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = Field(default=None, max_length=500)
    joining_date: str | None = Field(default=None, max_length=32)

    model_config = ConfigDict(extra="forbid")
