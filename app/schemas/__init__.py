from app.schemas.auth import (
    UserRegister,
    UserLogin,
    TokenRefresh,
    UserSummary,
    AuthResult,
    RefreshResult,
    LoginResponse,
    TokenResponse,
    MessageResponse,
    UserDetailResponse,
    SessionResponse
)

__all__ = [
    # Requests
    "UserRegister",
    "UserLogin",
    "TokenRefresh",
    # Service results
    "UserSummary",
    "AuthResult",
    "RefreshResult",
    # Responses
    "LoginResponse",
    "TokenResponse",
    "MessageResponse",
    "UserDetailResponse",
    "SessionResponse",
]
