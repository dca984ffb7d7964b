"""Authentication: OTP registration, password login, password reset, current user.

Registration creates an inactive user and mails a REGISTER code; verifying
the code activates the account and returns a session token. Password reset
mails a PASSWORD_RESET code and replaces the hash once it is verified.

Session tokens are HS256 JWTs with the user id as ``sub``. They are checked
by signature and expiry only: there is no revocation list.
All account changes are logged to audit.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredCodeError,
    NotFoundError,
)
from app.dependencies import get_db
from app.models.otp import OtpPurpose
from app.models.user import User
from app.services import audit_service, otp_service
from app.services.email_service import EmailService

logger = logging.getLogger("coursetrack.auth")

AUTH_TOKEN_HEADER = "X-Auth-Token"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(
    user_id: uuid.UUID,
    *,
    secret: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session token for ``user_id``."""
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(days=settings.access_token_expire_days)
    claims = {"sub": str(user_id), "iat": now, "exp": now + expires_delta}
    return jwt.encode(claims, secret or settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, *, secret: str | None = None) -> uuid.UUID:
    """Return the user id a token was issued for.

    Raises InvalidCredentialsError for bad signatures, expired tokens and
    malformed subjects.
    """
    try:
        claims = jwt.decode(
            token, secret or settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        raise InvalidCredentialsError("Invalid or expired token") from e

    sub = claims.get("sub")
    if not sub:
        raise InvalidCredentialsError("Invalid token payload")
    try:
        return uuid.UUID(sub)
    except ValueError as e:
        raise InvalidCredentialsError("Invalid token payload") from e


async def _get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def register_request_otp(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    mailer: EmailService,
    ip_address: str | None = None,
) -> User:
    """Create an inactive user and mail a registration code.

    Raises ConflictError if the email is taken.
    """
    if await _get_user_by_email(db, email) is not None:
        raise ConflictError("User with this email already exists", field="email")

    user = User(
        email=email,
        password_hash=hash_password(password),
        is_active=False,
    )
    db.add(user)
    await db.flush()

    otp = await otp_service.issue_otp(
        db, user_id=user.id, purpose=OtpPurpose.REGISTER, sent_to=email
    )

    await audit_service.record(
        db,
        "auth.register_requested",
        user_id=user.id,
        entity=user,
        detail={"email": email},
        ip_address=ip_address,
    )

    await mailer.send_otp_email(to=email, code=otp.code, purpose=OtpPurpose.REGISTER.value)
    return user


async def register_verify_otp(
    db: AsyncSession,
    *,
    email: str,
    code: str,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Verify the registration code, activate the user, return (user, token)."""
    user = await _get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User", email=email)

    ok = await otp_service.verify_otp(
        db, user_id=user.id, purpose=OtpPurpose.REGISTER, code=code
    )
    if not ok:
        raise InvalidOrExpiredCodeError(user_id=user.id)

    if not user.is_active:
        user.is_active = True
        await db.flush()

    await audit_service.record(
        db,
        "auth.register_verified",
        user_id=user.id,
        entity=user,
        ip_address=ip_address,
    )
    logger.info("user activated user=%s", user.id)

    return user, create_access_token(user.id)


async def login_with_password(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Authenticate by password and return (user, token)."""
    user = await _get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User", email=email)
    if not user.is_active:
        raise InvalidCredentialsError("Account is not active", user_id=user.id)

    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials", user_id=user.id)

    await audit_service.record(
        db,
        "auth.login",
        user_id=user.id,
        entity=user,
        ip_address=ip_address,
    )

    return user, create_access_token(user.id)


async def request_password_reset(
    db: AsyncSession,
    *,
    email: str,
    mailer: EmailService,
    ip_address: str | None = None,
) -> None:
    """Mail a reset code to an active account.

    Unknown and inactive emails return normally with no side effects so the
    caller cannot tell them apart from a sent code.
    """
    user = await _get_user_by_email(db, email)
    if user is None or not user.is_active:
        return

    otp = await otp_service.issue_otp(
        db, user_id=user.id, purpose=OtpPurpose.PASSWORD_RESET, sent_to=email
    )

    await audit_service.record(
        db,
        "auth.password_reset_requested",
        user_id=user.id,
        entity=user,
        ip_address=ip_address,
    )

    await mailer.send_otp_email(
        to=email, code=otp.code, purpose=OtpPurpose.PASSWORD_RESET.value
    )


async def confirm_password_reset(
    db: AsyncSession,
    *,
    email: str,
    code: str,
    new_password: str,
    ip_address: str | None = None,
) -> User:
    """Verify a reset code and replace the password hash."""
    user = await _get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User", email=email)
    if not user.is_active:
        raise InvalidCredentialsError("Account is not active", user_id=user.id)

    ok = await otp_service.verify_otp(
        db, user_id=user.id, purpose=OtpPurpose.PASSWORD_RESET, code=code
    )
    if not ok:
        raise InvalidOrExpiredCodeError(user_id=user.id)

    user.password_hash = hash_password(new_password)
    await db.flush()

    await audit_service.record(
        db,
        "auth.password_reset",
        user_id=user.id,
        entity=user,
        ip_address=ip_address,
    )
    return user


def _extract_token(request: Request) -> str | None:
    token = request.headers.get(AUTH_TOKEN_HEADER)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency: validate the bearer token and return the current user.

    Raises HTTPException 401 if the token is missing, invalid or expired, or
    the user no longer exists or is inactive.
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No auth token provided",
        )

    try:
        user_id = decode_access_token(token)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        ) from e

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    request.state.user_id = str(user.id)
    return user
