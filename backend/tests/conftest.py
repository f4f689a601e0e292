import socket
from collections.abc import AsyncGenerator, Callable, Iterator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from micampofresco.core.config import settings
from micampofresco.core.notifications import Channel, NotificationSender
from micampofresco.core.rate_limiting import limiter
from micampofresco.models.base import Base
from micampofresco.repositories.account_repository import InMemoryAccountStore
from micampofresco.repositories.recovery_ledger import InMemoryRecoveryLedger
from micampofresco.services.auth_service import AuthService

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


# =============================================================================
# Settings
# =============================================================================

_OVERRIDDEN_SETTINGS = (
    "auth_secret",
    "bcrypt_rounds",
    "environment",
    "expose_recovery_code",
    "expose_error_details",
    "allow_direct_password_reset",
    "auth_constant_time_login",
    "recovery_code_ttl_minutes",
)


@pytest.fixture(autouse=True)
def test_settings() -> Iterator[None]:
    """Pin security-relevant settings for every test and restore afterwards.

    bcrypt cost 4 keeps hashing fast; production defaults to 10.
    """
    original = {name: getattr(settings, name) for name in _OVERRIDDEN_SETTINGS}

    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.bcrypt_rounds = 4
    settings.environment = "development"
    settings.expose_recovery_code = False
    settings.expose_error_details = False
    settings.allow_direct_password_reset = False
    settings.auth_constant_time_login = True
    settings.recovery_code_ttl_minutes = 60

    yield

    for name, value in original.items():
        setattr(settings, name, value)


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Rate limits would leak state between tests sharing the limiter."""
    original = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original


# =============================================================================
# Auth service fixtures (in-memory, no database)
# =============================================================================


@dataclass
class SentCode:
    """One recovery code captured by RecordingSender."""

    channel: str
    destination: str
    code: str


class RecordingSender(NotificationSender):
    """Notification sender that records instead of delivering."""

    def __init__(self, channel: str, outbox: list[SentCode]) -> None:
        self.channel = channel
        self._outbox = outbox

    async def send(self, destination: str, code: str) -> None:
        self._outbox.append(SentCode(self.channel, destination, code))


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def recovery_ledger() -> InMemoryRecoveryLedger:
    return InMemoryRecoveryLedger()


@pytest.fixture
def outbox() -> list[SentCode]:
    """Codes sent during the test, oldest first."""
    return []


@pytest.fixture
def sender_for(outbox: list[SentCode]) -> Callable[[Channel], NotificationSender]:
    return lambda channel: RecordingSender(channel, outbox)


@pytest.fixture
def auth_service(
    account_store: InMemoryAccountStore,
    recovery_ledger: InMemoryRecoveryLedger,
    sender_for: Callable[[Channel], NotificationSender],
) -> AuthService:
    """AuthService over in-memory stores with a recording sender."""
    return AuthService(account_store, recovery_ledger, sender_for=sender_for)


@pytest_asyncio.fixture
async def client(auth_service: AuthService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, wired to the in-memory auth service.

    Yields:
        AsyncClient with ASGI transport.
    """
    from micampofresco.api.deps import get_auth_service
    from micampofresco.main import app

    app.dependency_overrides[get_auth_service] = lambda: auth_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Database fixtures (PostgreSQL)
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
