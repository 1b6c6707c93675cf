"""
Pytest configuration and fixtures for the backend tests.
"""
import os

# Settings are read at import time; configure the environment first.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["USE_MONGO"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_DIR"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"

import re
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from faker import Faker
from httpx import ASGITransport, AsyncClient

from main import app
from api.dependencies import get_auth_service
from core.security import PasswordHasher, TokenSigner
from db.account_store import SqlAccountStore
from db.base import initialize_database
from db.session import build_engine, build_session_factory
from services.auth_service import AuthService

fake = Faker()

STRONG_PASSWORD = "Abcdefgh123!"
TEST_SECRET = "test-secret-key"


class FrozenClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier:
    """Captures outbound messages instead of delivering them."""

    def __init__(self):
        self.sms: list[tuple[str, str]] = []
        self.emails: list[dict] = []

    async def notify_phone(self, phone: str, message: str) -> bool:
        self.sms.append((phone, message))
        return True

    async def notify_email(self, to_email: str, subject: str, text_body: str, html_body=None) -> bool:
        self.emails.append({"to": to_email, "subject": subject, "text": text_body, "html": html_body})
        return True

    def last_code(self, phone: str) -> str:
        for to, message in reversed(self.sms):
            if to == phone:
                return re.search(r"(\d{6})\s*$", message).group(1)
        raise AssertionError(f"no SMS sent to {phone}")

    def last_email_token(self, email: str) -> str:
        for sent in reversed(self.emails):
            if sent["to"] == email:
                return re.search(r"token=([\w\-\.]+)", sent["text"]).group(1)
        raise AssertionError(f"no email sent to {email}")


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await initialize_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(db_engine) -> SqlAccountStore:
    return SqlAccountStore(build_session_factory(db_engine))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2030, 1, 1, 12, 0, 0))


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def signer() -> TokenSigner:
    return TokenSigner(TEST_SECRET)


@pytest.fixture
def auth_service(store, hasher, signer, notifier, clock) -> AuthService:
    return AuthService(
        store=store,
        hasher=hasher,
        signer=signer,
        notifier=notifier,
        public_base_url="http://test",
        clock=clock,
    )


@pytest_asyncio.fixture
async def async_client(auth_service) -> AsyncGenerator[AsyncClient, None]:
    """Async client against the app, wired to the per-test auth service."""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def sample_registration() -> dict:
    return {
        "full_name": fake.name(),
        "email": fake.email(),
        "phone": fake.numerify("+1555#######"),
        "password": STRONG_PASSWORD,
    }


@pytest_asyncio.fixture
async def verified_user(auth_service, notifier, sample_registration) -> dict:
    """A registered user whose phone is already verified."""
    result = await auth_service.register(**sample_registration)
    code = notifier.last_code(sample_registration["phone"])
    await auth_service.verify_phone(result["userId"], code)
    return {**sample_registration, "user_id": result["userId"]}
