from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.otp import OtpCode, OtpPurpose, PasswordResetToken
from app.models.user import User


@pytest.mark.asyncio
async def test_create_and_read_otp(db_session: AsyncSession):
    user = User(email="otp-model@example.com", password_hash="h", is_active=False)
    db_session.add(user)
    await db_session.flush()

    db_session.add(
        OtpCode(
            user_id=user.id,
            purpose=OtpPurpose.REGISTER,
            code="123456",
            sent_to=user.email,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=10),
        )
    )
    await db_session.commit()

    fetched = (await db_session.execute(select(OtpCode))).scalar_one()
    assert fetched.purpose == OtpPurpose.REGISTER
    assert fetched.code == "123456"
    assert fetched.used_at is None
    assert fetched.created_at is not None


@pytest.mark.asyncio
async def test_codes_kept_per_purpose(db_session: AsyncSession):
    """Several codes may coexist for one user, across and within purposes."""
    user = User(email="otp-many@example.com", password_hash="h")
    db_session.add(user)
    await db_session.flush()

    expires = datetime.now(timezone.utc) + timedelta(minutes=10)
    for purpose in (OtpPurpose.REGISTER, OtpPurpose.PASSWORD_RESET, OtpPurpose.PASSWORD_RESET):
        db_session.add(
            OtpCode(user_id=user.id, purpose=purpose, code="000000",
                    sent_to=user.email, expires_at=expires)
        )
    await db_session.commit()

    result = await db_session.execute(
        select(OtpCode).where(OtpCode.purpose == OtpPurpose.PASSWORD_RESET)
    )
    assert len(result.scalars().all()) == 2


@pytest.mark.asyncio
async def test_password_reset_token_unique(db_session: AsyncSession):
    user = User(email="reset-token@example.com", password_hash="h")
    db_session.add(user)
    await db_session.flush()

    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    db_session.add(PasswordResetToken(user_id=user.id, token="tok-1", expires_at=expires))
    await db_session.flush()
    db_session.add(PasswordResetToken(user_id=user.id, token="tok-1", expires_at=expires))
    with pytest.raises(IntegrityError):
        await db_session.flush()
