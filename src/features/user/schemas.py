"""User schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserResponse(CamelModel):
    """Public view of a user. Never includes the credential hash."""

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    is_verified: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None


class UserData(CamelModel):
    user: UserResponse


class UserEnvelope(CamelModel):
    success: bool = True
    message: str
    data: UserData


class SessionResponse(CamelModel):
    """One active refresh-token record, as shown to its owner."""

    id: int
    user_agent: str | None = None
    ip_address: str | None = None
    created_at: datetime
    expires_at: datetime


class SessionsData(CamelModel):
    sessions: list[SessionResponse]


class SessionsEnvelope(CamelModel):
    success: bool = True
    message: str
    data: SessionsData
