"""Authentication domain logic orchestrating accounts, OTP, and JWT issuance."""

import logging
from datetime import timedelta

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.config import settings
from ems.core.enums import AccountStatus, OTPPurpose, Role
from ems.core.exceptions import DuplicateEmail, InvalidRequest, NotFoundError
from ems.core.security import create_access_token, get_password_hash, verify_password
from ems.db.models.user import User
from ems.schemas.auth import LoginRequest, PasswordResetRequest, ProfileUpdate, SignupRequest
from ems.services.accounts import AccountProvisioner
from ems.services.verification import OTPWorkflow

logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token(subject=str(user.id), expires_delta=expires_delta)


class AuthService:
    """High-level service used by API routes; holds DB session and OTP workflow."""

    def __init__(self, session: AsyncSession, otp_workflow: OTPWorkflow, provisioner: AccountProvisioner | None = None):
        """Inject dependencies so the service can hit both the DB and Redis."""
        self.session = session
        self.otp_workflow = otp_workflow
        self.provisioner = provisioner or AccountProvisioner(session)

    async def _get_user_by_email(self, email: str) -> User | None:
        """Fetch a user by email; shared helper to avoid repeated query code."""
        return await self.session.scalar(select(User).where(User.email == email))

    async def request_otp(self, email: str, purpose: OTPPurpose) -> None:
        """Send a code after checking the address suits the flow.

        Signup codes only go to unregistered addresses; reset codes only to
        registered ones.
        """
        existing_user = await self._get_user_by_email(email)
        if purpose is OTPPurpose.SIGNUP and existing_user:
            raise DuplicateEmail("Email already registered.")
        if purpose is OTPPurpose.PASSWORD_RESET and not existing_user:
            raise NotFoundError("Email not registered.")

        await self.otp_workflow.request_code(email, purpose)

    async def signup(self, payload: SignupRequest) -> tuple[User, str]:
        """Consume the signup code, create the account and return it with a token.

        Dependencies:
        - OTPWorkflow to prove control of the email address
        - AccountProvisioner for hashing, id allocation and persistence
        """

        if await self._get_user_by_email(payload.email):
            raise DuplicateEmail()

        manager = None
        if payload.role is Role.EMPLOYEE:
            manager = await self._get_user_by_email(payload.manager_email)
            if manager is None or manager.role != Role.MANAGER:
                raise InvalidRequest("No manager is registered with that email.")

        await self.otp_workflow.confirm(
            payload.email, OTPPurpose.SIGNUP, code=payload.code, proof=payload.verification_token
        )

        user = await self.provisioner.provision(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            manager=manager,
        )
        logger.info("Registered %s account %s", user.role, user.employee_id)
        return user, issue_token(user)

    async def login(self, payload: LoginRequest) -> tuple[User, str]:
        """Authenticate by email, password and role and mint an access token."""

        user = await self.session.scalar(
            select(User).where(User.email == payload.email, User.role == payload.role.value)
        )
        if not user or not verify_password(payload.password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials.",
            )

        if user.status == AccountStatus.TERMINATED:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="This account has been deactivated.",
            )

        return user, issue_token(user)

    async def reset_password(self, payload: PasswordResetRequest) -> None:
        """Set a new password once a password-reset code has been consumed."""

        user = await self._get_user_by_email(payload.email)
        if not user:
            raise NotFoundError("Email not registered.")

        await self.otp_workflow.confirm(
            payload.email, OTPPurpose.PASSWORD_RESET, code=payload.code, proof=payload.verification_token
        )

        user.hashed_password = get_password_hash(payload.new_password)
        await self.session.commit()
        await self.session.refresh(user)
        logger.info("Password reset for account %s", user.employee_id)

    async def update_profile(self, user: User, payload: ProfileUpdate) -> User:
        """Let an account holder edit their own profile; the email is fixed."""

        changes = payload.model_dump(exclude_unset=True)
        if "email" in changes:
            raise InvalidRequest("Email cannot be updated.")

        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value.strip() if field == "name" else value)
        await self.session.commit()
        await self.session.refresh(user)
        logger.info("Profile updated for account %s", user.employee_id)
        return user
