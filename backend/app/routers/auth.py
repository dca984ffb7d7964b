"""Auth routes: OTP registration, password login, password reset, current user."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    confirm_password_reset,
    get_current_user,
    login_with_password,
    register_request_otp,
    register_verify_otp,
    request_password_reset,
)
from app.dependencies import client_ip, get_db, get_email_service
from app.models.user import User
from app.schemas.user import (
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    SuccessResponse,
    TokenResponse,
    UserRead,
    VerifyOtpRequest,
)
from app.services.email_service import EmailService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register/request-otp", response_model=SuccessResponse)
async def register_request(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
):
    """Create an inactive account and email a registration code."""
    await register_request_otp(
        db,
        email=body.email,
        password=body.password,
        mailer=mailer,
        ip_address=client_ip(request),
    )
    return SuccessResponse()


@router.post("/register/verify-otp", response_model=TokenResponse)
async def register_verify(
    body: VerifyOtpRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Activate the account with its code; returns a session token."""
    user, token = await register_verify_otp(
        db, email=body.email, code=body.code, ip_address=client_ip(request)
    )
    return TokenResponse(token=token, user_id=user.id)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    user, token = await login_with_password(
        db, email=body.email, password=body.password, ip_address=client_ip(request)
    )
    return TokenResponse(token=token, user_id=user.id)


@router.post("/password/reset/request", response_model=SuccessResponse)
async def password_reset_request(
    body: PasswordResetRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
):
    """Always succeeds, whether or not the account exists."""
    await request_password_reset(
        db, email=body.email, mailer=mailer, ip_address=client_ip(request)
    )
    return SuccessResponse()


@router.post("/password/reset/confirm", response_model=SuccessResponse)
async def password_reset_confirm(
    body: PasswordResetConfirm,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    await confirm_password_reset(
        db,
        email=body.email,
        code=body.code,
        new_password=body.new_password,
        ip_address=client_ip(request),
    )
    return SuccessResponse()


@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return UserRead.model_validate(current_user)
