"""Dependency providers used by FastAPI endpoints.

These helpers expose database sessions, the Redis client, the mail sender,
and composed services through FastAPI's dependency injection system so route
handlers remain thin. Tests swap the leaves (session, Redis, mailer) via
`app.dependency_overrides`.
"""

from typing import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.enums import AccountStatus, Role
from ems.core.security import decode_access_token
from ems.db.models.user import User
from ems.db.session import get_session
from ems.services.attendance import AttendanceService
from ems.services.auth import AuthService
from ems.services.email import MailSender, send_email
from ems.services.employees import EmployeeService
from ems.services.leaves import LeaveService
from ems.services.otp import OTPStore, get_redis_client
from ems.services.tasks import TaskService
from ems.services.verification import OTPWorkflow

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async SQLAlchemy session tied to the shared engine."""

    async for session in get_session():
        yield session


def get_redis() -> Redis:
    """Return a singleton Redis client used for OTP storage."""
    return get_redis_client()


def get_mailer() -> MailSender:
    return send_email


def get_otp_workflow(
    redis: Redis = Depends(get_redis),
    mailer: MailSender = Depends(get_mailer),
) -> OTPWorkflow:
    return OTPWorkflow(OTPStore(redis), mailer=mailer)


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    otp_workflow: OTPWorkflow = Depends(get_otp_workflow),
) -> AuthService:
    """Assemble AuthService with its database session and Redis-backed OTP workflow."""
    return AuthService(session=session, otp_workflow=otp_workflow)


def get_employee_service(
    session: AsyncSession = Depends(get_db_session),
    mailer: MailSender = Depends(get_mailer),
) -> EmployeeService:
    return EmployeeService(session, mailer=mailer)


def get_leave_service(session: AsyncSession = Depends(get_db_session)) -> LeaveService:
    return LeaveService(session)


def get_task_service(session: AsyncSession = Depends(get_db_session)) -> TaskService:
    return TaskService(session)


def get_attendance_service(session: AsyncSession = Depends(get_db_session)) -> AttendanceService:
    return AttendanceService(session)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """Resolve the bearer token to an active account."""
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    subject = decode_access_token(token)
    if subject is None or not subject.isdigit():
        raise credentials_error

    user = await session.get(User, int(subject))
    if user is None or user.status == AccountStatus.TERMINATED:
        raise credentials_error
    return user


async def require_manager(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.MANAGER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Manager access required.")
    return user
