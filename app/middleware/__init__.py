"""
Middleware Package
Exports HTTP middleware components
"""
from .security_headers import SecurityHeadersMiddleware
from .request_logging import RequestLoggingMiddleware

__all__ = [
    "SecurityHeadersMiddleware",
    "RequestLoggingMiddleware",
]
