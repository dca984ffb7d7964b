import uuid
from collections.abc import AsyncIterator

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.services.email_service import EmailService

engine = create_async_engine(settings.database_url, echo=False)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """One session and one transaction per request: commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_email_service() -> EmailService:
    """Build the mail dispatcher from current settings; tests override this."""
    return EmailService.from_settings(settings)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def parse_uuid(value: str, name: str) -> uuid.UUID:
    """Parse a path id, answering 400 for malformed values."""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
