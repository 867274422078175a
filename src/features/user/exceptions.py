"""User-related exceptions."""

from src.shared.errors.exceptions import ConflictException


class UserAlreadyExists(ConflictException):
    """Raised when registering an email that is already taken."""

    def __init__(self):
        super().__init__(detail="User with this email already exists", code="USER_EXISTS")
