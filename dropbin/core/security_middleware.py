"""
Request guards shared by the text endpoints:
rate limiting, content size checks, security headers and ETags.
"""
import time
import hashlib
from typing import Dict
from collections import deque
from fastapi import Request, HTTPException, status
from fastapi.responses import Response

from dropbin.core.config import settings
from dropbin.core.errors import ContentTooLarge


class RateLimiter:
    """Sliding-window in-memory rate limiter keyed by client IP."""

    # full sweep of idle keys every this many checks
    SWEEP_EVERY = 1000

    def __init__(self, window: int = None, limits: Dict[str, int] = None):
        self.window = window if window is not None else settings.RATE_LIMIT_WINDOW_SECONDS
        self.limits = limits if limits is not None else {
            "create": settings.RATE_LIMIT_CREATE,
            "read": settings.RATE_LIMIT_READ,
            "write": settings.RATE_LIMIT_WRITE,
        }
        # one deque of request timestamps per (ip, endpoint type); empty deques are dropped
        self.requests: Dict[str, deque] = {}
        self._checks = 0

    def _prune(self, key: str, now: float) -> deque:
        request_times = self.requests.get(key)
        if request_times is None:
            return deque()
        while request_times and request_times[0] <= now - self.window:
            request_times.popleft()
        if not request_times:
            del self.requests[key]
        return request_times

    def sweep(self) -> None:
        now = time.time()
        for key in list(self.requests):
            self._prune(key, now)

    def is_allowed(self, client_ip: str, endpoint_type: str = "read") -> bool:
        self._checks += 1
        if self._checks % self.SWEEP_EVERY == 0:
            self.sweep()

        now = time.time()
        key = f"{endpoint_type}:{client_ip}"
        max_requests = self.limits.get(endpoint_type, self.limits["read"])
        request_times = self._prune(key, now)

        if len(request_times) >= max_requests:
            return False

        request_times.append(now)
        self.requests[key] = request_times
        return True

    def get_remaining_requests(self, client_ip: str, endpoint_type: str = "read") -> int:
        now = time.time()
        max_requests = self.limits.get(endpoint_type, self.limits["read"])
        request_times = self._prune(f"{endpoint_type}:{client_ip}", now)
        return max(0, max_requests - len(request_times))

    def reset(self) -> None:
        self.requests.clear()
        self._checks = 0


rate_limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    """Client IP; proxy headers are used only when TRUST_PROXY_HEADERS is set."""
    if settings.TRUST_PROXY_HEADERS:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # the first entry is the originating client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    return request.client.host if request.client else "unknown"


def check_rate_limit(request: Request, endpoint_type: str = "read") -> None:
    client_ip = get_client_ip(request)

    if not rate_limiter.is_allowed(client_ip, endpoint_type):
        remaining = rate_limiter.get_remaining_requests(client_ip, endpoint_type)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={
                "X-RateLimit-Remaining": str(remaining),
                "X-RateLimit-Reset": str(int(time.time() + rate_limiter.window)),
                "Retry-After": str(rate_limiter.window),
            }
        )


def validate_content_size(content: str, max_size: int = None) -> None:
    """
    Reject content whose UTF-8 encoding exceeds ``max_size`` bytes.

    Raises:
        ContentTooLarge: if the content is over the limit
    """
    if not content:
        return

    max_size = max_size if max_size is not None else settings.MAX_CONTENT_SIZE
    content_size = len(content.encode("utf-8"))

    if content_size > max_size:
        raise ContentTooLarge(
            f"Content size ({content_size / 1024:.2f}KB) exceeds the maximum limit of {max_size / 1024:.0f}KB"
        )


def add_security_headers(response: Response) -> None:
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if "text/" in response.headers.get("Content-Type", ""):
        response.headers["Content-Security-Policy"] = "default-src 'none'; style-src 'unsafe-inline'"


def generate_etag(content: str) -> str:
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def check_if_none_match(request: Request, etag: str) -> bool:
    if_none_match = request.headers.get("If-None-Match")
    if if_none_match:
        return if_none_match.strip('"') == etag
    return False
