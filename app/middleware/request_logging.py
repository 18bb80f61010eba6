"""
Request Logging Middleware
Logs every request with status and duration, and flags slow ones
"""
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from config import settings
import logging

logger = logging.getLogger("app.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, slow_threshold_ms: int = settings.SLOW_REQUEST_THRESHOLD_MS):
        super().__init__(app)
        self.slow_threshold_ms = slow_threshold_ms

    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent", "")
        start = time.perf_counter()

        logger.info(f"Incoming request: {method} {path} - IP: {client_ip} - User-Agent: {user_agent}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.error(
                f"Request error: {method} {path} - Duration: {duration_ms}ms - Error: {e}",
                exc_info=True
            )
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"Outgoing response: {method} {path} - Status: {response.status_code} - Duration: {duration_ms}ms")

        if duration_ms > self.slow_threshold_ms:
            logger.warning(f"Slow request: {method} {path} took {duration_ms}ms")

        return response
