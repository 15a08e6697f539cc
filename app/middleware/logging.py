"""
Logging Middleware for Request/Response Logging

Logs every HTTP request with method, path, status code, processing time and
client IP. Stats requests may fall back to scanning raw visits, so the
latency figure is also the quickest way to spot a missing nightly rollup.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("link_analytics")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.

    It wraps the request/response cycle to add logging without
    modifying endpoint code.
    """

    async def dispatch(self, request: Request, call_next):
        client_ip = self._get_client_ip(request)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            process_time = time.perf_counter() - start_time
            logger.exception(
                f"{request.method} {request.url.path} "
                f"FAILED {process_time*1000:.2f}ms IP:{client_ip}"
            )
            raise

        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response

    def _get_client_ip(self, request: Request) -> str:
        """
        Extract client IP address from request.

        Cloudflare's CF-Connecting-IP wins, then the first X-Forwarded-For
        hop, then the socket peer.
        """
        connecting_ip = request.headers.get("CF-Connecting-IP")
        if connecting_ip:
            return connecting_ip.strip()

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        return request.client.host if request.client else "unknown"


def add_logging_middleware(app):
    """Add logging middleware to FastAPI app."""
    app.add_middleware(LoggingMiddleware)
