"""HTTP route handlers for registration, login and password reset."""

from fastapi import APIRouter, Depends, status

from ems.api import deps
from ems.db.models.user import User
from ems.schemas.auth import (
    AuthResponse,
    LoginRequest,
    PasswordResetRequest,
    ProfileUpdate,
    SignupRequest,
    UserResponse,
)
from ems.schemas.common import Message
from ems.services.auth import AuthService

router = APIRouter(prefix="/api/auth", tags=["authentication"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> AuthResponse:
    """Consume a signup OTP, create the account and return a bearer token."""

    user, token = await auth_service.signup(payload)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> AuthResponse:
    """Authenticate by email, password and role and return a bearer token."""

    user, token = await auth_service.login(payload)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/reset-password", response_model=Message)
async def reset_password(
    payload: PasswordResetRequest,
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> Message:
    """Replace the password after a password-reset OTP has been verified."""

    await auth_service.reset_password(payload)
    return Message(message="Password reset successful.")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(deps.get_current_user)) -> User:
    return user


@router.put("/me", response_model=UserResponse)
async def update_me(
    payload: ProfileUpdate,
    user: User = Depends(deps.get_current_user),
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> User:
    return await auth_service.update_profile(user, payload)
