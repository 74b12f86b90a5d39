import os

# Must be in place before anything under admin_auth builds its settings.
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SENDER_EMAIL"] = ""
os.environ["GEOIP_ENABLED"] = "false"

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from admin_auth.core.config import Settings
from admin_auth.core.database import get_db
from admin_auth.core.security import TokenService
from admin_auth.main import create_app
from admin_auth.models import Base
from admin_auth.models.admin import AdminAccount, AdminRole, AdminStatus
from admin_auth.models.device_info import DeviceInfo
from admin_auth.services.account_service import get_account_by_id
from admin_auth.services.auth_service import AuthService
from admin_auth.services.notification_service import AccountNotifier
from admin_auth.services.threat_service import ThreatAnalyzer

PASSWORD = "Correct-Horse-42"
CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class RecordingDispatcher:
    """Stands in for the background worker: keeps jobs instead of running them."""

    def __init__(self):
        self.jobs = []

    def submit(self, name, factory):
        self.jobs.append((name, factory))
        return True

    @property
    def names(self):
        return [name for name, _ in self.jobs]

    def named(self, prefix):
        return [factory for name, factory in self.jobs if name.startswith(prefix)]

    def start(self):
        pass

    async def stop(self, timeout=5.0):
        pass


def make_device(
    ip="203.0.113.10",
    location="Accra, Ghana",
    browser="Chrome",
    os_name="Windows",
    device_type="Desktop",
):
    return DeviceInfo(
        ip=ip,
        user_agent=f"{browser}/{os_name}",
        browser=browser,
        os=os_name,
        device_type=device_type,
        location=location,
    )


@pytest.fixture
def device():
    return make_device()


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """In-memory SQLite async engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def mailer():
    return AsyncMock()


@pytest.fixture
def notifier(dispatcher, mailer):
    return AccountNotifier(dispatcher, mailer)


@pytest.fixture
def token_service():
    return TokenService(secret_key="unit-test-secret", expire_minutes=60)


@pytest.fixture
def auth_service(token_service, notifier):
    return AuthService(tokens=token_service, analyzer=ThreatAnalyzer(), notifier=notifier)


@pytest.fixture
def make_account(db):
    """Persist an account (approved admin by default) and return it."""

    async def factory(
        email="admin@example.com",
        password=PASSWORD,
        *,
        name="Test Admin",
        role=AdminRole.ADMIN,
        status=AdminStatus.APPROVED,
    ) -> AdminAccount:
        account = AdminAccount.register(
            name=name, email=email, password=password, role=role, status=status
        )
        db.add(account)
        await db.commit()
        return account

    return factory


@pytest.fixture
def load_account(session_factory):
    """Fresh read of an account, bypassing any session's identity map."""

    async def loader(account_id) -> AdminAccount | None:
        async with session_factory() as session:
            return await get_account_by_id(account_id, session)

    return loader


# ── HTTP ─────────────────────────────────────────────────────────────


@pytest.fixture
def app_settings():
    return Settings(RATE_LIMIT_ENABLED=False)


@pytest.fixture
def app(app_settings, session_factory, dispatcher, mailer):
    application = create_app(app_settings)
    application.state.notifier.dispatcher = dispatcher
    application.state.notifier.mailer = mailer

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c


@pytest.fixture
def login(client):
    """POST /login and return the response; the cookie jar is left empty."""

    async def do_login(email="admin@example.com", password=PASSWORD, user_agent=CHROME_UA):
        response = await client.post(
            "/api/admin/login",
            json={"email": email, "password": password},
            headers={"User-Agent": user_agent},
        )
        client.cookies.clear()
        return response

    return do_login


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
