"""
Rate limiting for the storefront API
In-memory sliding window, applied globally by middleware and per endpoint
(checkout confirmation, login, contact form) by dependency
"""
import hashlib
import time
from collections import defaultdict
from typing import Callable, Dict, List, Tuple

from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse


class RateLimiter:
    """
    In-memory rate limiter using a sliding window.

    Counts are per process; several API instances each keep their own window.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        # {identifier: [timestamp, ...]}
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._clock = clock
        self._last_cleanup = clock()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int) -> None:
        now = self._clock()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2
        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [ts for ts in self._requests[identifier] if ts > cutoff]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(self, identifier: str, max_requests: int, window_seconds: int = 60) -> Tuple[bool, int, int]:
        """
        Record a request if it fits in the window.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = self._clock()
        window_start = now - window_seconds
        in_window = [ts for ts in self._requests[identifier] if ts > window_start]
        self._requests[identifier] = in_window

        if len(in_window) >= max_requests:
            retry_after = int(min(in_window) + window_seconds - now) + 1
            return False, 0, retry_after

        in_window.append(now)
        return True, max_requests - len(in_window), 0

    def reset(self) -> None:
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


# Requests per minute for the global middleware
RATE_LIMITS = {
    "admin": 600,      # Bearer token (admin console polls the order list)
    "session": 300,    # Storefront client with an X-Session-Id
    "anonymous": 120,
}

EXEMPT_PATHS = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def client_ip(request: Request) -> str:
    """Client IP, honoring X-Forwarded-For from the hosting proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def request_identity(request: Request) -> Tuple[str, str]:
    """
    (kind, identifier) for the caller.

    Priority: bearer token, then storefront session id, then IP.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        digest = hashlib.sha256(auth_header.encode()).hexdigest()[:16]
        return "admin", f"jwt:{digest}"

    session_id = request.headers.get("X-Session-Id")
    if session_id:
        return "session", f"session:{session_id[:64]}"

    return "anonymous", f"ip:{client_ip(request)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Global rate limit per caller.

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - Retry-After: Seconds until a request is accepted again (when limited)
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        kind, identifier = request_identity(request)
        limit = RATE_LIMITS[kind]

        is_allowed, remaining, retry_after = rate_limiter.is_allowed(identifier, limit, window_seconds=60)

        if not is_allowed:
            # JSONResponse instead of HTTPException so CORS headers are still added
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please slow down."},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(retry_after),
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


def rate_limit(max_requests: int, window_seconds: int = 60):
    """
    Dependency factory for per-endpoint limits.

    Usage:
        @router.post("/confirm")
        async def confirm(_: None = Depends(rate_limit(settings.CHECKOUT_RATE_LIMIT))):
            ...
    """

    async def rate_limit_check(request: Request) -> None:
        _, identity = request_identity(request)
        identifier = f"endpoint:{request.url.path}:{identity}"

        is_allowed, _, retry_after = rate_limiter.is_allowed(identifier, max_requests, window_seconds)
        if not is_allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded for this endpoint. Try again in {retry_after} seconds.",
                headers={
                    "X-RateLimit-Limit": str(max_requests),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(retry_after),
                }
            )

    return rate_limit_check
