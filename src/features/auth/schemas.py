"""Authentication schemas (DTOs)."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from src.features.user.schemas import CamelModel, UserResponse
from src.shared.validators.password import validate_password_strength


# Request schemas
class UserRegisterRequest(BaseModel):
    """Registration request. Accepts ``firstName``/``lastName`` or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr = Field(..., description="Email address (validated via email-validator)")
    password: str = Field(
        ...,
        min_length=8,
        description="At least 8 characters with an uppercase letter, a lowercase letter, a digit and one of @$!%*?&",
    )
    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=50)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value)


class UserLoginRequest(BaseModel):
    """Login request. Password strength is not re-checked on login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


# Response schemas
class SessionData(CamelModel):
    """Payload returned when a session is opened (register, login, demo login)."""

    user: UserResponse
    access_token: str
    expires_in: int  # seconds


class SessionEnvelope(CamelModel):
    success: bool = True
    message: str
    data: SessionData


class RefreshData(CamelModel):
    access_token: str
    expires_in: int  # seconds


class RefreshEnvelope(CamelModel):
    success: bool = True
    message: str
    data: RefreshData


class MessageResponse(CamelModel):
    success: bool = True
    message: str
