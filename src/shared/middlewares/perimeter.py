"""API perimeter gate.

Runs before routing. Requests to non-public API paths that carry no
credential at all are answered with a bare 404, so anonymous scanners cannot
tell protected endpoints from missing ones. Route guards still do the real
verification; the gate only looks at whether a credential is present.
"""

from collections.abc import Callable, Iterable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from src.config.settings import PerimeterGateMode
from src.features.auth.cookies import REFRESH_COOKIE_NAME
from src.shared.audit.security import log_security_event

PUBLIC_PATHS: tuple[str, ...] = (
    "/auth/register",
    "/auth/login",
    "/auth/refresh",
    "/auth/google",
    "/auth/google/demo",
    "/auth/google/callback",
    "/auth/google/status",
    "/health",
    "/status",
)


def not_found_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "success": False,
            "error": "Not Found",
            "message": "The requested resource was not found",
            "code": "RESOURCE_NOT_FOUND",
        },
    )


class PerimeterGateMiddleware(BaseHTTPMiddleware):
    """Reject credential-less requests to protected API paths with 404.

    Args:
        app: The wrapped ASGI application
        api_prefix: Only paths under this prefix are gated
        mode: Which credential must be present (see ``PerimeterGateMode``)
        public_paths: Paths, relative to ``api_prefix``, that are never gated

    """

    def __init__(
        self,
        app: ASGIApp,
        api_prefix: str = "/api",
        mode: PerimeterGateMode = PerimeterGateMode.ANY_CREDENTIAL,
        public_paths: Iterable[str] = PUBLIC_PATHS,
    ):
        super().__init__(app)
        self.api_prefix = api_prefix.rstrip("/")
        self.mode = PerimeterGateMode(mode)
        self.public_paths = tuple(f"{self.api_prefix}{path}" for path in public_paths)

    def is_public(self, path: str) -> bool:
        return any(path == public or path.startswith(f"{public}/") for public in self.public_paths)

    def is_gated(self, path: str) -> bool:
        if path != self.api_prefix and not path.startswith(f"{self.api_prefix}/"):
            return False
        return not self.is_public(path)

    def has_credential(self, request: Request) -> bool:
        has_cookie = bool(request.cookies.get(REFRESH_COOKIE_NAME))
        if self.mode == PerimeterGateMode.REFRESH_COOKIE:
            return has_cookie
        return has_cookie or request.headers.get("authorization", "").startswith("Bearer ")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.mode == PerimeterGateMode.OFF or request.method == "OPTIONS":
            return await call_next(request)

        if self.is_gated(request.url.path) and not self.has_credential(request):
            log_security_event(
                "perimeter_rejected",
                request,
                f"Request without credential blocked at perimeter ({self.mode})",
                method=request.method,
            )
            return not_found_response()

        return await call_next(request)
