"""Shared test fixtures: in-memory SQLite DB, async session, test client, mail outbox."""

import re

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.dependencies import get_db, get_email_service
from app.main import app
from app.models.base import Base
from app.services.email_service import EmailService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)


# Enable foreign key enforcement in SQLite (off by default).
@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

_CODE_RE = re.compile(r"Your one-time code: (\d+)")


class OutboxMailer(EmailService):
    """Keeps sent messages in memory instead of delivering them."""

    def __init__(self):
        super().__init__("console")
        self.outbox: list[dict] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.outbox.append({"to": to, "subject": subject, "body": body})

    def last_code(self, to: str) -> str:
        """The code in the newest message sent to ``to``."""
        for message in reversed(self.outbox):
            if message["to"] == to:
                return _CODE_RE.search(message["body"]).group(1)
        raise AssertionError(f"no email sent to {to}")


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a test DB session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def mailer() -> OutboxMailer:
    return OutboxMailer()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, mailer: OutboxMailer) -> AsyncClient:
    """Yield an httpx AsyncClient wired to the test DB and outbox mailer."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_email_service] = lambda: mailer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
