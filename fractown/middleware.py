import time
import logging
from collections import defaultdict
from threading import Lock
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .exceptions import create_error_response

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Coarse per-IP request cap; the OTP and login throttles sit in the services."""

    def __init__(self, app: ASGIApp, requests_per_minute: int = 60):
        super().__init__(app)
        self.requests = defaultdict(list)
        self.rate_limit = requests_per_minute
        self._lock = Lock()
        self._next_sweep = 0.0

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"

        if self.hit(client_ip, time.time()):
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return JSONResponse(
                status_code=429,
                content=create_error_response("Rate limit exceeded. Please try again later.", 429, "RATE_LIMITED"),
                headers={"Retry-After": "60"},
            )
        return await call_next(request)

    def hit(self, client_ip: str, current_time: float) -> bool:
        """Record a request; True when the IP is over its per-minute cap."""
        with self._lock:
            if current_time >= self._next_sweep:
                # Forget IPs with nothing left in the last minute
                for ip in [ip for ip, times in self.requests.items() if not times or current_time - times[-1] >= 60]:
                    del self.requests[ip]
                self._next_sweep = current_time + 60
            recent = [t for t in self.requests[client_ip] if current_time - t < 60]
            limited = len(recent) >= self.rate_limit
            if not limited:
                recent.append(current_time)
            self.requests[client_ip] = recent
        return limited


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Session tokens travel in responses
        response.headers["Cache-Control"] = "no-store"

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(f"Response: {response.status_code} in {duration:.3f}s")

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error: {str(e)}", exc_info=True)
            message = f"Internal server error: {str(e)}" if self.debug else "Internal server error"
            return JSONResponse(status_code=500, content=create_error_response(message, 500))


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_size: Optional[int] = None):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if self.max_size and content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                return JSONResponse(status_code=400, content=create_error_response("Invalid Content-Length", 400))
            if size > self.max_size:
                return JSONResponse(status_code=413, content=create_error_response("Request entity too large", 413))
        return await call_next(request)
