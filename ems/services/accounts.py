"""Materialize new accounts: duplicate check, password hashing, id allocation."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.config import settings
from ems.core.enums import AccountStatus, Role
from ems.core.exceptions import DuplicateEmail, InvalidRequest
from ems.core.security import get_password_hash
from ems.db.models.user import User
from ems.services.identifiers import EmployeeIdAllocator

PROFILE_FIELDS = ("position", "department", "salary", "phone", "address", "joining_date")


class AccountProvisioner:
    """Creates users; the only place a `User` row is first inserted."""

    def __init__(self, session: AsyncSession, allocator: EmployeeIdAllocator | None = None):
        self.session = session
        self.allocator = allocator or EmployeeIdAllocator(session)

    async def get_by_email(self, email: str) -> User | None:
        return await self.session.scalar(select(User).where(User.email == email))

    async def provision(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Role,
        manager: User | None = None,
        **profile,
    ) -> User:
        """Create and persist an account, returning it with its employee id.

        Raises `DuplicateEmail`, `AllocationExhausted` or `PersistenceError`.
        `manager` only applies to employees and is stored as a plain
        back-reference.
        """
        role = Role(role)
        unknown = set(profile) - set(PROFILE_FIELDS)
        if unknown:
            raise InvalidRequest(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        if await self.get_by_email(email):
            raise DuplicateEmail()

        user = User(
            name=name.strip(),
            email=email,
            hashed_password=get_password_hash(password),
            role=role.value,
            status=AccountStatus.ACTIVE.value,
            leaves_left=settings.DEFAULT_LEAVE_ALLOWANCE,
            manager_id=manager.id if manager is not None and role is Role.EMPLOYEE else None,
            **{field: value for field, value in profile.items() if value is not None},
        )
        return await self.allocator.allocate(user)
