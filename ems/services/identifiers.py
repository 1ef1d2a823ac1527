"""Employee-ID allocation fused with the account insert.

There is no "does this id exist?" pre-check: the insert itself is the check,
so two concurrent signups can never both claim the same identifier. A
collision on the `employee_id` unique constraint triggers a fresh draw.
"""

import logging
import re
import secrets
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.config import settings
from ems.core.enums import Role
from ems.core.exceptions import AllocationExhausted, DuplicateEmail, PersistenceError
from ems.db.models.user import User

logger = logging.getLogger(__name__)

ID_MIN = 10000
ID_MAX = 99999

# Names produced by the naming convention in `ems.db.base`.
_UNIQUE_CONSTRAINTS = {
    "uq_users_employee_id": "employee_id",
    "ix_users_email": "email",
}
_SQLITE_UNIQUE = re.compile(r"^UNIQUE constraint failed: users\.(\w+)")
_PG_UNIQUE = re.compile(r'^[^\n]*unique constraint "(\w+)"')


def draw_id_number() -> int:
    """Uniform draw from [10000, 99999]."""
    return ID_MIN + secrets.randbelow(ID_MAX - ID_MIN + 1)


def id_prefix(role: Role | str) -> str:
    return "MAN-" if role == Role.MANAGER else "EMP-"


def _violated_column(exc: IntegrityError) -> str | None:
    """Name the `users` column whose unique constraint `exc` reports, if any."""
    orig = exc.orig
    # asyncpg exposes the constraint name on the driver error behind the adapter.
    for source in (orig, getattr(orig, "__cause__", None)):
        name = getattr(source, "constraint_name", None)
        if name:
            return _UNIQUE_CONSTRAINTS.get(name)

    # Only the leading clause is inspected; the DETAIL part echoes row values.
    message = str(orig)
    match = _SQLITE_UNIQUE.search(message)
    if match:
        return match.group(1) if match.group(1) in _UNIQUE_CONSTRAINTS.values() else None
    match = _PG_UNIQUE.search(message)
    if match:
        return _UNIQUE_CONSTRAINTS.get(match.group(1))
    return None


class EmployeeIdAllocator:
    def __init__(
        self,
        session: AsyncSession,
        max_attempts: int = settings.EMPLOYEE_ID_MAX_ATTEMPTS,
        draw: Callable[[], int] = draw_id_number,
    ):
        self.session = session
        self.max_attempts = max_attempts
        self.draw = draw

    async def allocate(self, user: User) -> User:
        """Assign `user` a unique employee id and persist it.

        Each attempt draws a new number and commits; only a uniqueness
        violation on `employee_id` is retried. Raises `AllocationExhausted`
        after `max_attempts` collisions.
        """
        prefix = id_prefix(user.role)
        for attempt in range(1, self.max_attempts + 1):
            user.employee_id = f"{prefix}{self.draw()}"
            self.session.add(user)
            try:
                await self.session.commit()
            except IntegrityError as exc:
                await self.session.rollback()
                column = _violated_column(exc)
                if column == "employee_id":
                    logger.info(
                        "Duplicate employee id %s, retrying (%d/%d)",
                        user.employee_id,
                        attempt,
                        self.max_attempts,
                    )
                    continue
                if column == "email":
                    raise DuplicateEmail() from exc
                raise PersistenceError() from exc
            except SQLAlchemyError as exc:
                await self.session.rollback()
                logger.exception("Failed to persist account for %s", user.email)
                raise PersistenceError() from exc

            await self.session.refresh(user)
            return user

        logger.error("Exhausted %d attempts allocating a %s id", self.max_attempts, prefix.rstrip("-"))
        raise AllocationExhausted()
