"""One-time passcodes: issue and single-use verification.

Issuing never touches earlier codes for the same (user, purpose); they stay
verifiable until they expire. Verification picks the newest unused code that
matches and marks it used.
"""

import logging
import random
import string
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.otp import OtpCode, OtpPurpose
from app.services import audit_service

logger = logging.getLogger("coursetrack.auth")


def generate_otp_code(length: int = 6) -> str:
    """Uniform random digits. Not drawn from a cryptographic source."""
    return "".join(random.choice(string.digits) for _ in range(length))


def _ensure_tz(dt: datetime) -> datetime:
    """SQLite returns naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


async def issue_otp(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    purpose: OtpPurpose,
    sent_to: str,
) -> OtpCode:
    """Create and persist a new code expiring otp_exp_minutes from now."""
    otp = OtpCode(
        user_id=user_id,
        purpose=purpose,
        code=generate_otp_code(settings.otp_length),
        sent_to=sent_to,
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.otp_exp_minutes),
    )
    db.add(otp)
    await db.flush()

    await audit_service.record(
        db,
        "otp.issued",
        user_id=user_id,
        entity=otp,
        detail={"purpose": purpose.value},
    )
    logger.info("otp issued user=%s purpose=%s", user_id, purpose.value)
    return otp


async def verify_otp(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    purpose: OtpPurpose,
    code: str,
) -> bool:
    """Consume a matching code. Returns False if none matches or it has expired."""
    result = await db.execute(
        select(OtpCode)
        .where(
            OtpCode.user_id == user_id,
            OtpCode.purpose == purpose,
            OtpCode.code == code,
            OtpCode.used_at.is_(None),
        )
        .order_by(OtpCode.created_at.desc())
        .limit(1)
    )
    otp = result.scalar_one_or_none()
    if otp is None:
        return False

    now = datetime.now(timezone.utc)
    if _ensure_tz(otp.expires_at) <= now:
        return False

    otp.used_at = now
    await db.flush()

    await audit_service.record(
        db,
        "otp.verified",
        user_id=user_id,
        entity=otp,
        detail={"purpose": purpose.value},
    )
    return True
