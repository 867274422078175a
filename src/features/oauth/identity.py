"""Identity resolution for third-party logins.

``IdentityResolver`` is the seam where a real OAuth provider plugs in; the
token/session core only needs a resolved ``User``. ``DemoIdentityResolver``
simulates Google without any network traffic and must never be exposed in
production (the router is not mounted there).
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.features.user.models import User
from src.features.user.service import UserService

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@authkit.com"


@dataclass(frozen=True)
class ProviderProfile:
    """Profile data as an identity provider would return it."""

    provider_id: str
    email: str
    given_name: str
    family_name: str
    verified_email: bool = True

    @property
    def name(self) -> str:
        return f"{self.given_name} {self.family_name}"


@dataclass(frozen=True)
class ResolvedIdentity:
    user: User
    profile: ProviderProfile
    is_new_user: bool


class IdentityResolver(Protocol):
    """Turns a provider-asserted email into a local user."""

    provider: str

    async def resolve(self, session: AsyncSession, email: str) -> ResolvedIdentity: ...


def simulate_profile(email: str) -> ProviderProfile:
    """Build the profile a provider would return for ``email``."""
    if email == DEMO_EMAIL:
        return ProviderProfile(
            provider_id="google_demo_123456789",
            email=DEMO_EMAIL,
            given_name="Demo",
            family_name="User",
        )

    name_parts = email.split("@")[0].split(".")
    given_name = (name_parts[0] or "User")[:50]
    family_name = (name_parts[1] if len(name_parts) > 1 and name_parts[1] else "Google")[:50]
    return ProviderProfile(
        provider_id=f"google_{secrets.token_hex(5)}",
        email=email,
        given_name=given_name,
        family_name=family_name,
    )


class DemoIdentityResolver:
    """Mock Google login: link to an existing account or create one."""

    provider = "google"

    async def resolve(self, session: AsyncSession, email: str) -> ResolvedIdentity:
        profile = simulate_profile(email)

        user = await UserService.get_user_by_email(session, email)
        if user is not None:
            logger.info(f"[DEMO OAUTH] Email exists, linking to existing account {user.id}")
            return ResolvedIdentity(user=user, profile=profile, is_new_user=False)

        # The account gets a random credential nobody knows; password login stays impossible
        user = await UserService.create_user(
            session,
            email=profile.email,
            password=secrets.token_urlsafe(32),
            first_name=profile.given_name,
            last_name=profile.family_name,
            is_verified=profile.verified_email,
        )
        logger.info(f"[DEMO OAUTH] Created account {user.id} for {'demo user' if email == DEMO_EMAIL else 'new email'}")
        return ResolvedIdentity(user=user, profile=profile, is_new_user=True)


def get_identity_resolver() -> IdentityResolver:
    """Dependency returning the active resolver; override it to plug in a real provider."""
    return DemoIdentityResolver()
