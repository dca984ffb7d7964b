"""Audit trail for account and progress changes.

Events are append-only. Event types are dotted: "<area>.<action>", e.g.
"auth.login" or "lesson.progress_updated"; the action part is stored
separately so it can be filtered on its own.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditLogEvent


async def record(
    db: AsyncSession,
    event_type: str,
    *,
    user_id: uuid.UUID,
    entity: object,
    detail: dict | None = None,
    ip_address: str | None = None,
) -> AuditLogEvent:
    """Append an event about an ORM entity (anything with an ``id``)."""
    _, _, action = event_type.partition(".")
    event = AuditLogEvent(
        user_id=user_id,
        event_type=event_type,
        entity_type=type(entity).__name__,
        entity_id=entity.id,
        action=action or event_type,
        detail=detail,
        ip_address=ip_address,
    )
    db.add(event)
    await db.flush()
    return event


async def events_for_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    prefix: str | None = None,
    limit: int = 100,
) -> list[AuditLogEvent]:
    """A user's events, oldest first; ``prefix`` narrows by area, e.g. "auth."."""
    stmt = select(AuditLogEvent).where(AuditLogEvent.user_id == user_id)
    if prefix:
        stmt = stmt.where(AuditLogEvent.event_type.startswith(prefix))
    stmt = stmt.order_by(AuditLogEvent.timestamp.asc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
