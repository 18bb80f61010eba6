"""
Security Headers Middleware
Adds protective headers to every API response
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from config import settings
import logging

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to all responses
    Token responses must never be cached by intermediaries
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)

        if "Server" in response.headers:
            del response.headers["Server"]

        security_headers = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "SAMEORIGIN",
            "X-XSS-Protection": "1; mode=block",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
            "Cache-Control": "no-store, no-cache, must-revalidate, private",
            "Pragma": "no-cache",
            "X-API-Version": settings.APP_VERSION,
        }

        # HSTS only when the request actually arrived over HTTPS
        is_https = (
            request.url.scheme == "https"
            or request.headers.get("x-forwarded-proto") == "https"
        )
        if settings.ENABLE_HSTS and settings.is_production and is_https:
            security_headers["Strict-Transport-Security"] = (
                f"max-age={settings.HSTS_MAX_AGE}; "
                "includeSubDomains; preload"
            )

        if settings.ENABLE_CSP:
            security_headers["Content-Security-Policy"] = settings.CSP_POLICY

        for header, value in security_headers.items():
            response.headers[header] = value

        if settings.DEBUG:
            logger.debug(f"Applied {len(security_headers)} security headers to {request.url.path}")

        return response
