import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditLogEvent
from app.models.user import User


async def _create_user(db_session: AsyncSession) -> User:
    user = User(email="audit@example.com", password_hash="fakehash")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.mark.asyncio
async def test_create_and_read_audit_event(db_session: AsyncSession):
    """Insert audit event -> read -> fields match."""
    user = await _create_user(db_session)
    entity_id = uuid.uuid4()

    db_session.add(
        AuditLogEvent(
            user_id=user.id,
            event_type="lesson.progress_updated",
            entity_type="UserLessonProgress",
            entity_id=entity_id,
            action="progress_updated",
            detail={"progress_percent": 40},
            ip_address="127.0.0.1",
        )
    )
    await db_session.commit()

    result = await db_session.execute(
        select(AuditLogEvent).where(AuditLogEvent.user_id == user.id)
    )
    fetched = result.scalar_one()
    assert fetched.entity_id == entity_id
    assert fetched.detail == {"progress_percent": 40}
    assert fetched.timestamp is not None


@pytest.mark.asyncio
async def test_audit_events_removed_with_user(db_session: AsyncSession):
    """Deleting a user cascades to its audit events."""
    user = await _create_user(db_session)
    db_session.add(
        AuditLogEvent(
            user_id=user.id,
            event_type="auth.login",
            entity_type="User",
            entity_id=user.id,
            action="login",
        )
    )
    await db_session.commit()

    await db_session.delete(user)
    await db_session.commit()

    result = await db_session.execute(select(AuditLogEvent))
    assert result.scalars().all() == []
