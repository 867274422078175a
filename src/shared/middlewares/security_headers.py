"""Browser hardening headers on every response."""

from collections.abc import Callable, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "style-src 'self' 'unsafe-inline'",
        "script-src 'self'",
        "img-src 'self' data: https:",
        "frame-ancestors 'self'",
        "base-uri 'self'",
        "object-src 'none'",
    ]
)

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}

HSTS_VALUE = "max-age=15552000; includeSubDomains"

# Swagger UI and ReDoc pull their assets from a CDN
DOCS_PATHS: tuple[str, ...] = ("/docs", "/redoc")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add hardening headers without overriding ones a route already set.

    Args:
        app: The wrapped ASGI application
        hsts: Also send Strict-Transport-Security (only meaningful behind HTTPS)
        csp_exempt_paths: Path prefixes served without a Content-Security-Policy

    """

    def __init__(self, app: ASGIApp, hsts: bool = False, csp_exempt_paths: Iterable[str] = DOCS_PATHS):
        super().__init__(app)
        self.hsts = hsts
        self.csp_exempt_paths = tuple(csp_exempt_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        if not request.url.path.startswith(self.csp_exempt_paths):
            response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)
        if self.hsts:
            response.headers.setdefault("Strict-Transport-Security", HSTS_VALUE)
        return response
