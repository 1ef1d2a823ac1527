from __future__ import annotations

import os
import re

# Settings are read at import time; point them at throwaway backends first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fakeredis import FakeAsyncRedis  # noqa: E402

from ems.api import deps  # noqa: E402
from ems.core.enums import Role  # noqa: E402
from ems.db import models  # noqa: E402,F401
from ems.db.base import Base  # noqa: E402
from ems.db.session import build_engine, build_session_factory  # noqa: E402
from ems.main import app  # noqa: E402
from ems.services.accounts import AccountProvisioner  # noqa: E402
from ems.services.otp import OTPStore  # noqa: E402

CODE_PATTERN = re.compile(r">\s*(\d{6})\s*</h3>")
PASSWORD_PATTERN = re.compile(r"Password: ([^<\s]+)</p>")


class FakeMailer:
    """Records every message instead of talking to SMTP."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def __call__(self, recipient: str, subject: str, body: str):
        self.sent.append((recipient, subject, body))
        if self.fail:
            return False, "SMTP server unavailable"
        return True, None

    def last_to(self, recipient: str) -> tuple[str, str, str]:
        for message in reversed(self.sent):
            if message[0] == recipient:
                return message
        raise AssertionError(f"no email sent to {recipient}")

    def last_code(self, recipient: str) -> str:
        match = CODE_PATTERN.search(self.last_to(recipient)[2])
        assert match, "email did not contain a code"
        return match.group(1)

    def last_password(self, recipient: str) -> str:
        match = PASSWORD_PATTERN.search(self.last_to(recipient)[2])
        assert match, "email did not contain a password"
        return match.group(1)


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    async with build_session_factory(engine)() as session:
        yield session


@pytest.fixture
async def redis():
    client = FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def store(redis):
    return OTPStore(redis)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
async def client(engine, redis, mailer):
    factory = build_session_factory(engine)

    async def _session():
        async with factory() as session:
            yield session

    app.dependency_overrides[deps.get_db_session] = _session
    app.dependency_overrides[deps.get_redis] = lambda: redis
    app.dependency_overrides[deps.get_mailer] = lambda: mailer
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
async def team(session):
    """Two managers and one employee reporting to the first."""
    provisioner = AccountProvisioner(session)
    manager = await provisioner.provision(name="Boss", email="boss@acme.io", password="secret1", role=Role.MANAGER)
    other = await provisioner.provision(name="Other", email="other@acme.io", password="secret1", role=Role.MANAGER)
    employee = await provisioner.provision(
        name="Worker", email="worker@acme.io", password="secret1", role=Role.EMPLOYEE, manager=manager
    )
    return manager, other, employee
