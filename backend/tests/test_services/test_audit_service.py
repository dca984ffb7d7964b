import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services import audit_service


async def _create_user(db_session: AsyncSession, email: str = "audit-svc@example.com") -> User:
    user = User(email=email, password_hash="fakehash")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.mark.asyncio
async def test_record(db_session: AsyncSession):
    """record derives entity type, entity id and action from its arguments."""
    user = await _create_user(db_session)

    event = await audit_service.record(
        db_session,
        "profile.updated",
        user_id=user.id,
        entity=user,
        detail={"fields": ["phone"]},
        ip_address="10.0.0.1",
    )
    await db_session.commit()

    assert event.id is not None
    assert event.event_type == "profile.updated"
    assert event.entity_type == "User"
    assert event.entity_id == user.id
    assert event.action == "updated"
    assert event.ip_address == "10.0.0.1"


@pytest.mark.asyncio
async def test_events_for_user_filters(db_session: AsyncSession):
    user = await _create_user(db_session)
    other = await _create_user(db_session, "other-audit@example.com")

    for event_type in ("auth.login", "otp.issued", "auth.password_reset"):
        await audit_service.record(db_session, event_type, user_id=user.id, entity=user)
    await audit_service.record(db_session, "auth.login", user_id=other.id, entity=other)
    await db_session.commit()

    all_events = await audit_service.events_for_user(db_session, user.id)
    assert len(all_events) == 3

    auth_events = await audit_service.events_for_user(db_session, user.id, prefix="auth.")
    assert sorted(e.event_type for e in auth_events) == ["auth.login", "auth.password_reset"]

    limited = await audit_service.events_for_user(db_session, user.id, limit=1)
    assert len(limited) == 1
