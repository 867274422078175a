"""Error taxonomy shared by every feature.

Each exception knows its HTTP status and a stable machine-readable ``code``;
the handlers in ``handlers.py`` turn them into
``{"success": false, "error": ..., "code": ...}`` bodies.
"""

from typing import Any

from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base class for errors that are safe to show to the client."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        detail: str = "Request failed",
        code: str | None = None,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        details: list[dict[str, Any]] | None = None,
        clear_refresh_cookie: bool = False,
    ):
        super().__init__(status_code=status_code or self.status_code, detail=detail, headers=headers)
        self.code = code or self.code
        self.details = details
        self.clear_refresh_cookie = clear_refresh_cookie


class ValidationException(APIException):
    """Client input is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, detail: str = "Validation failed", code: str | None = None, details=None):
        super().__init__(detail=detail, code=code, details=details)


class ConflictException(APIException):
    """The request collides with existing state."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"

    def __init__(self, detail: str = "Resource already exists", code: str | None = None):
        super().__init__(detail=detail, code=code)


class NotFoundException(APIException):
    """Resource does not exist, or must look as if it does not."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "RESOURCE_NOT_FOUND"

    def __init__(self, detail: str = "The requested resource was not found", code: str | None = None):
        super().__init__(detail=detail, code=code)


class InternalServerException(APIException):
    """Store or codec failure. The detail is hidden in production."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, detail: str = "Internal server error", code: str | None = None):
        super().__init__(detail=detail, code=code)
