import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class VerifyOtpRequest(BaseModel):
    email: str = Field(..., max_length=255)
    code: str = Field(..., min_length=4, max_length=16)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class PasswordResetRequest(BaseModel):
    email: str = Field(..., max_length=255)


class PasswordResetConfirm(BaseModel):
    email: str = Field(..., max_length=255)
    code: str = Field(..., min_length=4, max_length=16)
    new_password: str = Field(..., min_length=6, max_length=128)


class TokenResponse(BaseModel):
    token: str
    user_id: uuid.UUID


class SuccessResponse(BaseModel):
    success: bool = True


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    phone: str | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    phone: str | None = Field(None, min_length=1, max_length=32)
