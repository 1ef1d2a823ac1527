"""Pydantic schemas for OTP send, verify and cancel flows."""

from pydantic import BaseModel, EmailStr, Field

from ems.core.enums import OTPPurpose


class OTPRequest(BaseModel):
    """Payload used to request a new OTP for a specific email."""

    email: EmailStr
    purpose: OTPPurpose


class OTPVerify(BaseModel):
    """Payload used when submitting a received OTP code for validation."""

    email: EmailStr
    code: str = Field(min_length=1, max_length=12)


class OTPCancel(BaseModel):
    email: EmailStr


class OTPVerifyResponse(BaseModel):
    """`verification_token` stands in for the spent code in signup or password reset."""

    message: str
    purpose: OTPPurpose
    verification_token: str
