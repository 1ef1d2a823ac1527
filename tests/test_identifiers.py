from __future__ import annotations

import re

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from ems.core.enums import Role
from ems.core.exceptions import AllocationExhausted, DuplicateEmail, PersistenceError
from ems.db.models.user import User
from ems.services.identifiers import (
    ID_MAX,
    ID_MIN,
    EmployeeIdAllocator,
    _violated_column,
    draw_id_number,
    id_prefix,
)


class ScriptedDraw:
    """Returns the given numbers in order and counts how often it was asked."""

    def __init__(self, numbers):
        self._numbers = list(numbers)
        self.calls = 0

    def __call__(self) -> int:
        value = self._numbers[min(self.calls, len(self._numbers) - 1)]
        self.calls += 1
        return value


def _user(email: str, role: Role = Role.MANAGER) -> User:
    return User(name="Test User", email=email, hashed_password="x", role=role.value)


async def _seed(session, employee_id: str, email: str) -> None:
    user = _user(email)
    user.employee_id = employee_id
    session.add(user)
    await session.commit()


async def _count_users(session) -> int:
    return await session.scalar(select(func.count()).select_from(User))


def test_prefix_by_role():
    assert id_prefix(Role.MANAGER) == "MAN-"
    assert id_prefix("manager") == "MAN-"
    assert id_prefix(Role.EMPLOYEE) == "EMP-"


def test_draw_stays_in_five_digit_range():
    for _ in range(500):
        assert ID_MIN <= draw_id_number() <= ID_MAX


async def test_allocates_on_first_attempt(session):
    draw = ScriptedDraw([12345])
    user = await EmployeeIdAllocator(session, draw=draw).allocate(_user("one@acme.io", Role.EMPLOYEE))

    assert user.employee_id == "EMP-12345"
    assert user.id is not None
    assert draw.calls == 1


async def test_retries_collisions_until_a_free_id(session):
    await _seed(session, "MAN-11111", "existing@acme.io")
    draw = ScriptedDraw([11111, 11111, 11111, 11111, 22222])

    user = await EmployeeIdAllocator(session, draw=draw).allocate(_user("boss@acme.io"))

    assert re.fullmatch(r"MAN-\d{5}", user.employee_id)
    assert user.employee_id == "MAN-22222"
    assert draw.calls == 5
    assert await _count_users(session) == 2


async def test_gives_up_after_max_attempts(session):
    await _seed(session, "MAN-11111", "existing@acme.io")
    draw = ScriptedDraw([11111])

    with pytest.raises(AllocationExhausted):
        await EmployeeIdAllocator(session, draw=draw).allocate(_user("boss@acme.io"))

    assert draw.calls == 5
    assert await _count_users(session) == 1


async def test_attempt_bound_is_configurable(session):
    await _seed(session, "MAN-11111", "existing@acme.io")
    draw = ScriptedDraw([11111])

    with pytest.raises(AllocationExhausted):
        await EmployeeIdAllocator(session, max_attempts=2, draw=draw).allocate(_user("boss@acme.io"))
    assert draw.calls == 2


async def test_email_conflict_is_not_retried(session):
    await _seed(session, "MAN-11111", "taken@acme.io")
    draw = ScriptedDraw([33333])

    with pytest.raises(DuplicateEmail):
        await EmployeeIdAllocator(session, draw=draw).allocate(_user("taken@acme.io"))
    assert draw.calls == 1


async def test_other_storage_failures_are_not_retried(session, monkeypatch):
    draw = ScriptedDraw([44444])

    async def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", broken_commit)

    with pytest.raises(PersistenceError):
        await EmployeeIdAllocator(session, draw=draw).allocate(_user("boss@acme.io"))
    assert draw.calls == 1


class DriverError(Exception):
    def __init__(self, message, constraint_name=None):
        super().__init__(message)
        self.constraint_name = constraint_name


def _integrity_error(message: str, constraint_name: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, DriverError(message, constraint_name))


def test_violation_is_classified_by_constraint_not_by_row_values():
    error = _integrity_error(
        'duplicate key value violates unique constraint "ix_users_email"\n'
        "DETAIL:  Key (email)=(employee_id@acme.io) already exists."
    )
    assert _violated_column(error) == "email"


def test_violation_classification_by_driver_constraint_name():
    assert _violated_column(_integrity_error("boom", "uq_users_employee_id")) == "employee_id"
    assert _violated_column(_integrity_error("boom", "ix_users_email")) == "email"
    assert _violated_column(_integrity_error("boom", "fk_leave_requests_user_id_users")) is None


def test_violation_classification_for_sqlite_messages():
    assert _violated_column(_integrity_error("UNIQUE constraint failed: users.employee_id")) == "employee_id"
    assert _violated_column(_integrity_error("UNIQUE constraint failed: users.email")) == "email"
    assert _violated_column(_integrity_error("NOT NULL constraint failed: users.name")) is None
