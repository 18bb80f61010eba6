"""
Authentication error kinds

AuthError subclasses are the only errors the auth service lets reach the HTTP
layer. InvalidTokenError is raised by the token authority and must be mapped
to UnauthorizedError before it leaves the service.
"""
from typing import Optional


class AuthError(Exception):
    """Base class for errors mapped to HTTP responses"""

    status_code: int = 400
    error: str = "BAD_REQUEST"
    default_message: str = "Bad request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConflictError(AuthError):
    """Identity already exists (409)"""
    status_code = 409
    error = "CONFLICT"
    default_message = "Email already registered"


class UnauthorizedError(AuthError):
    """Any credential, token or session failure (401)

    The message is fixed so that callers cannot tell which check failed.
    """
    status_code = 401
    error = "UNAUTHORIZED"
    default_message = "Authentication failed"


class InvalidTokenError(Exception):
    """Token signature, format or expiry check failed"""
