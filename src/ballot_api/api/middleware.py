"""CORS, rate limiting, and security headers middleware."""

import json
import time
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from ballot_api.core.config import Settings

_DEFAULT_TRUSTED_HEADERS = ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"]

# Ballots, tokens and snapshots must never be cached by intermediaries.
_NO_STORE_ROUTES = ("/auth", "/ballots", "/backup")

# Health probes and the scheduler never count against a client's budget.
_RATE_LIMIT_EXEMPT_ROUTES = ("/health", "/elections/status/cron")


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Extract the real client IP from proxy headers or direct connection.

    Checks headers in priority order. For X-Forwarded-For, uses the
    leftmost (client-supplied) IP. Falls back to request.client.host.

    Args:
        request: The incoming Starlette request.
        trusted_headers: Ordered list of header names to check.
            Defaults to ["CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"].

    Returns:
        The client IP address string, or "unknown" if not determinable.
    """
    headers = trusted_headers if trusted_headers is not None else _DEFAULT_TRUSTED_HEADERS

    for header in headers:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        if header.lower() == "x-forwarded-for":
            return value.split(",")[0].strip()
        return value

    if request.client:
        return request.client.host
    return "unknown"


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    kwargs: dict[str, Any] = {
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "DELETE", "OPTIONS"],
        "allow_headers": ["Authorization", "Content-Type"],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses and disable caching of sensitive routes."""

    def __init__(self, app: ASGIApp, api_prefix: str = "/api/v1") -> None:
        super().__init__(app)
        self.no_store_prefixes = tuple(api_prefix + route for route in _NO_STORE_ROUTES)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        if request.url.path.startswith(self.no_store_prefixes):
            response.headers["Cache-Control"] = "no-store"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiting middleware.

    Limits requests per client IP with a sliding one-minute window.  The
    scheduler endpoint and health probes are exempt.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        trusted_proxy_headers: list[str] | None = None,
        api_prefix: str = "/api/v1",
        exempt_paths: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_headers = trusted_proxy_headers
        if exempt_paths is None:
            exempt_paths = (api_prefix + route for route in _RATE_LIMIT_EXEMPT_ROUTES)
        self.exempt_paths = frozenset(exempt_paths)
        self._request_counts: dict[str, list[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit and process request.

        Returns:
            Response, or 429 if rate limited.
        """
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client_ip = get_client_ip(request, self.trusted_proxy_headers)
        now = time.time()
        window_start = now - 60.0

        self._request_counts[client_ip] = [t for t in self._request_counts[client_ip] if t > window_start]

        if len(self._request_counts[client_ip]) >= self.requests_per_minute:
            retry_after = max(1, int(self._request_counts[client_ip][0] - window_start))
            return Response(
                content=json.dumps({"detail": "Rate limit exceeded", "code": "rate-limited"}),
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(retry_after)},
            )

        self._request_counts[client_ip].append(now)
        return await call_next(request)
