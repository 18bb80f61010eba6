from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from config import settings


class UserRegister(BaseModel):
    """User registration request"""
    email: EmailStr
    password: str = Field(..., max_length=128)
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class UserLogin(BaseModel):
    """User login request"""
    email: EmailStr
    password: str = Field(..., max_length=128)


class TokenRefresh(BaseModel):
    """Token refresh request"""
    refresh_token: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    """Public view of a user; never carries the password hash"""
    id: int
    email: EmailStr
    name: str
    role: str

    model_config = {"from_attributes": True}


class AuthResult(BaseModel):
    """Tokens and user returned by register and login"""
    access_token: str
    refresh_token: str
    user: UserSummary


class RefreshResult(BaseModel):
    """Tokens returned by refresh; refresh_token is set only when rotation is on"""
    access_token: str
    refresh_token: Optional[str] = None


class LoginResponse(BaseModel):
    """Login/register response with user info and tokens"""
    user: UserSummary
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class TokenResponse(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    refresh_token: Optional[str] = None


class MessageResponse(BaseModel):
    """Generic message response"""
    message: str
    success: bool = True


class SessionResponse(BaseModel):
    """Refresh session as shown to its owner"""
    id: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    expires_at: datetime

    model_config = {"from_attributes": True}


class UserDetailResponse(UserSummary):
    """Current user with session info"""
    is_active: bool
    created_at: Optional[datetime] = None
    active_sessions: int = 0
