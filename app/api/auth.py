"""
Authentication Router
Register, login, refresh and logout backed by the refresh-session ledger
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import UnauthorizedError
from app.models.user import User
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    TokenRefresh,
    LoginResponse,
    TokenResponse,
    MessageResponse,
    SessionResponse,
    UserDetailResponse,
)
from app.services.auth_service import AuthService, auth_service
from app.services.session_ledger import SessionLedger
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============================================================================
# HELPER DEPENDENCIES
# ============================================================================

security = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    return auth_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Resolve the bearer access token to an active user

    Missing, malformed, expired or orphaned tokens all yield the same 401
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing authentication token")
    return await service.authenticate(db, credentials.credentials)


def _client_meta(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _access_ttl_seconds(service: AuthService) -> int:
    return int(service.tokens.access_token_ttl.total_seconds())


# ============================================================================
# REGISTRATION & LOGIN
# ============================================================================

@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    request: Request,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user and open a session

    - 409 if the email is already registered (including a lost race)
    - Argon2 password hashing
    """
    result = await service.register(
        db,
        email=user_data.email,
        password=user_data.password,
        name=user_data.name,
        **_client_meta(request),
    )

    return LoginResponse(
        user=result.user,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=_access_ttl_seconds(service),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """
    Login with email and password

    Unknown email, inactive account and wrong password all return the same 401
    """
    result = await service.login(
        db,
        email=login_data.email,
        password=login_data.password,
        **_client_meta(request),
    )

    return LoginResponse(
        user=result.user,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=_access_ttl_seconds(service),
    )


# ============================================================================
# TOKEN MANAGEMENT
# ============================================================================

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    token_data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """
    Exchange a refresh token for a new access token

    The refresh token must be validly signed AND have an unrevoked, unexpired
    ledger entry. A new refresh token is returned only when rotation is enabled.
    """
    result = await service.refresh(db, token_data.refresh_token)

    return TokenResponse(
        access_token=result.access_token,
        expires_in=_access_ttl_seconds(service),
        refresh_token=result.refresh_token,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """
    Revoke every active session of the current user

    Idempotent: logging out twice is not an error
    """
    await service.logout(db, current_user.id)

    return MessageResponse(
        message="Logged out successfully",
        success=True
    )


# ============================================================================
# USER PROFILE
# ============================================================================

@router.get("/me", response_model=UserDetailResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get current authenticated user profile
    """
    sessions = await SessionLedger(db).list_active_sessions(current_user.id)

    return UserDetailResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        is_active=current_user.is_active,
        created_at=current_user.created_at,
        active_sessions=len(sessions),
    )


@router.get("/sessions", response_model=list[SessionResponse])
async def get_sessions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List active sessions for current user
    """
    sessions = await SessionLedger(db).list_active_sessions(current_user.id)
    return [SessionResponse.model_validate(s) for s in sessions]
