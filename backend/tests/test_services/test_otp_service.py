from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.audit import AuditLogEvent
from app.models.otp import OtpCode, OtpPurpose
from app.models.user import User
from app.services import otp_service


async def _create_user(db: AsyncSession, email: str = "otp@example.com") -> User:
    user = User(email=email, password_hash="x", is_active=False)
    db.add(user)
    await db.flush()
    return user


def test_generate_otp_code_is_digits():
    for length in (4, 6, 8):
        code = otp_service.generate_otp_code(length)
        assert len(code) == length
        assert code.isdigit()


@pytest.mark.asyncio
async def test_issue_otp(db_session: AsyncSession):
    """Issued code is unused, sized per settings and expires otp_exp_minutes out."""
    user = await _create_user(db_session)
    before = datetime.now(timezone.utc)

    otp = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )

    assert len(otp.code) == settings.otp_length
    assert otp.used_at is None
    assert otp.sent_to == user.email
    expected = before + timedelta(minutes=settings.otp_exp_minutes)
    assert abs((otp.expires_at - expected).total_seconds()) < 5


@pytest.mark.asyncio
async def test_verify_otp_consumes_code(db_session: AsyncSession):
    user = await _create_user(db_session)
    otp = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )

    assert await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, code=otp.code
    ) is True
    assert otp.used_at is not None

    # Second use of the same code fails
    assert await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, code=otp.code
    ) is False


@pytest.mark.asyncio
async def test_verify_otp_wrong_code(db_session: AsyncSession):
    user = await _create_user(db_session)
    otp = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )
    wrong = "0" * len(otp.code) if otp.code != "0" * len(otp.code) else "1" * len(otp.code)

    assert await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, code=wrong
    ) is False
    assert otp.used_at is None


@pytest.mark.asyncio
async def test_verify_otp_purpose_is_scoped(db_session: AsyncSession):
    """A registration code does not verify a password reset."""
    user = await _create_user(db_session)
    otp = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )

    assert await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.PASSWORD_RESET, code=otp.code
    ) is False


@pytest.mark.asyncio
async def test_verify_otp_expired(db_session: AsyncSession):
    user = await _create_user(db_session)
    otp = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )
    otp.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    await db_session.commit()

    assert await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, code=otp.code
    ) is False

    fetched = (await db_session.execute(select(OtpCode))).scalar_one()
    assert fetched.used_at is None


@pytest.mark.asyncio
async def test_reissue_keeps_earlier_code_valid(db_session: AsyncSession):
    """Issuing again does not invalidate an earlier unused code."""
    user = await _create_user(db_session)
    first = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )
    await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )

    assert await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, code=first.code
    ) is True


@pytest.mark.asyncio
async def test_otp_audit_never_stores_code(db_session: AsyncSession):
    user = await _create_user(db_session)
    otp = await otp_service.issue_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=user.email
    )
    await otp_service.verify_otp(
        db_session, user_id=user.id, purpose=OtpPurpose.REGISTER, code=otp.code
    )

    result = await db_session.execute(
        select(AuditLogEvent).where(AuditLogEvent.user_id == user.id)
    )
    events = result.scalars().all()
    assert sorted(e.event_type for e in events) == ["otp.issued", "otp.verified"]
    for e in events:
        assert otp.code not in str(e.detail)
