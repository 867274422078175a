"""Demo identity provider schemas."""

from pydantic import BaseModel

from src.features.auth.schemas import SessionData
from src.features.user.schemas import CamelModel


class DemoLoginRequest(BaseModel):
    """Email is checked by the route so it can answer with provider-specific codes."""

    email: str | None = None


class ProviderSessionData(SessionData):
    provider: str
    is_new_user: bool


class ProviderSessionEnvelope(CamelModel):
    success: bool = True
    message: str
    data: ProviderSessionData
