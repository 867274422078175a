"""Application settings and configuration."""

import logging
from enum import StrEnum

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.cors_config import CORSConfiguration, CORSConfigurationError

logger = logging.getLogger(__name__)


class PerimeterGateMode(StrEnum):
    """Which credential the API perimeter gate requires on non-public paths.

    ANY_CREDENTIAL: refresh cookie or bearer header.
    REFRESH_COOKIE: refresh cookie only.
    OFF: gate disabled, route guards decide alone.
    """

    ANY_CREDENTIAL = "any_credential"
    REFRESH_COOKIE = "refresh_cookie"
    OFF = "off"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "AuthKit API"
    app_version: str = "1.0.0"

    # Environment-specific settings
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # Database
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 0
    database_pool_timeout: int = 5
    database_connect_timeout: int = 2
    database_pool_recycle: int = 3600
    database_echo: bool = False
    database_create_tables: bool = True  # create missing tables at startup

    # API
    api_prefix: str = "/api"

    # CORS
    cors_origin: str = "http://localhost:3001"
    cors_max_age: int = 600

    # JWT
    jwt_secret: str
    jwt_refresh_secret: str
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "authkit"
    jwt_audience: str = "authkit-api"
    jwt_expires_in: str = "15m"
    jwt_refresh_expires_in: str = "7d"

    # Credentials
    password_hash_time_cost: int = 3

    # Cookies
    cookie_domain: str | None = None

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100

    # Request gating
    perimeter_gate_mode: PerimeterGateMode = PerimeterGateMode.ANY_CREDENTIAL

    # Demo identity provider (never mounted in production)
    demo_oauth_enabled: bool = True

    # Ledger maintenance
    token_sweep_interval_seconds: int = 3600

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """Ensure the prefix starts with a slash and has no trailing slash."""
        v = "/" + v.strip().strip("/")
        return v if v != "/" else ""

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"json", "text"}:
            raise ValueError(f"Log format must be 'json' or 'text', got {v}")
        return fmt

    @model_validator(mode="after")
    def check_signing_keys(self) -> "Settings":
        """Access and refresh tokens must be signed with different keys."""
        if not self.jwt_secret or not self.jwt_refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must both be set")
        if self.jwt_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def demo_oauth_active(self) -> bool:
        """The demo identity provider is only ever exposed outside production."""
        return self.demo_oauth_enabled and not self.is_production

    @property
    def auth_cookie_path(self) -> str:
        """Path the refresh cookie is scoped to."""
        return f"{self.api_prefix}/auth"

    @property
    def rate_limit(self) -> str:
        """Default limit string understood by slowapi."""
        return f"{self.rate_limit_max_requests} per {self.rate_limit_window_seconds} seconds"

    def get_cors_configuration(self) -> CORSConfiguration:
        """Get CORS configuration for the current environment.

        Raises:
            CORSConfigurationError: If CORS configuration is invalid or insecure.

        """
        try:
            return CORSConfiguration(
                allow_origins=self.cors_origin,
                max_age=self.cors_max_age,
                environment=self.environment,
            )
        except CORSConfigurationError as exc:
            logger.error(f"Failed to create CORS configuration: {exc}")
            raise


settings = Settings()  # type: ignore[call-arg]
