"""
Rate limiting for public Storefront endpoints
Uses in-memory storage with sliding window algorithm

Only endpoints that anyone can hit without a token (contact form, order
creation) are limited. Limits are per process; behind several workers
each worker counts separately.
"""
import hashlib
import time
from collections import defaultdict
from typing import Dict, Tuple

from fastapi import HTTPException, Request, status


class RateLimiter:
    """In-memory rate limiter using sliding window algorithm."""

    def __init__(self, cleanup_interval: int = 60):
        # {identifier: [timestamp, ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._last_cleanup = time.time()
        self._cleanup_interval = cleanup_interval

    def _cleanup_old_entries(self, window_seconds: int):
        """Remove entries older than twice the window"""
        now = time.time()

        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [ts for ts in self._requests[identifier] if ts > cutoff]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = time.time()
        window_start = now - window_seconds

        requests_in_window = [ts for ts in self._requests[identifier] if ts > window_start]
        self._requests[identifier] = requests_in_window

        if len(requests_in_window) >= max_requests:
            oldest_timestamp = min(requests_in_window)
            retry_after = int(oldest_timestamp + window_seconds - now) + 1
            return False, 0, retry_after

        requests_in_window.append(now)

        remaining = max_requests - len(requests_in_window)
        return True, remaining, 0

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    """Get the client IP, considering proxies"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def request_identifier(request: Request) -> str:
    """Endpoint-scoped identifier: bearer token hash, else client IP"""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token_hash = hashlib.sha256(auth_header.encode("utf-8")).hexdigest()[:16]
        return f"endpoint:{request.url.path}:jwt:{token_hash}"

    return f"endpoint:{request.url.path}:ip:{get_client_ip(request)}"


def rate_limit(max_requests: int = 100, window_seconds: int = 60):
    """
    Dependency factory for per-endpoint rate limits.

    Usage:
        @router.post("/contact", dependencies=[Depends(rate_limit(5))])
        async def contact_form(...):
            pass
    """
    async def rate_limit_check(request: Request):
        is_allowed, remaining, retry_after = rate_limiter.is_allowed(
            identifier=request_identifier(request),
            max_requests=max_requests,
            window_seconds=window_seconds
        )

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
