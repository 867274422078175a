"""CORS configuration for cookie-based authentication.

The refresh token travels in a cookie, so credentials are always allowed and
every allowed origin has to be named explicitly.
"""

import logging
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
DEFAULT_HEADERS = ["content-type", "authorization", "x-requested-with"]
DEVELOPMENT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
]


class CORSConfigurationError(Exception):
    """Raised when CORS configuration is invalid or insecure."""

    pass


def normalize_origin(origin: str) -> str:
    """Normalize an origin URL by stripping whitespace and trailing slashes.

    Args:
        origin: The origin URL to normalize

    Returns:
        Normalized origin URL

    Raises:
        CORSConfigurationError: If origin is empty, a wildcard or not a URL.

    """
    origin = origin.strip()

    if not origin:
        raise CORSConfigurationError("Origin cannot be empty")

    if origin == "*":
        raise CORSConfigurationError(
            "Wildcard origins (*) cannot be combined with credentialed requests. "
            "Provide explicit allowed origins instead."
        )

    parsed = urlparse(origin)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise CORSConfigurationError(f"Invalid origin URL: {origin}")

    return origin.rstrip("/")


def parse_comma_separated_list(value: str | list[str] | None) -> list[str]:
    """Parse comma-separated string or return as-is if already a list.

    Raises:
        CORSConfigurationError: If value is of an unsupported type.

    """
    if value is None:
        return []

    if isinstance(value, list):
        return [v.strip() for v in value if v.strip()]

    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]

    raise CORSConfigurationError(f"Invalid value type: {type(value)}")


class CORSConfiguration:
    """Validated CORS settings for the Starlette ``CORSMiddleware``."""

    def __init__(
        self,
        allow_origins: str | list[str] | None = None,
        max_age: int = 600,
        environment: str = "development",
    ):
        """Initialize CORS configuration.

        Args:
            allow_origins: Comma-separated string or list of allowed origins
            max_age: Max age for preflight cache in seconds
            environment: Environment name (development, staging, production)

        Raises:
            CORSConfigurationError: If configuration is invalid or insecure.

        """
        self.environment = environment.lower()
        self.max_age = max_age
        self.allow_credentials = True
        self.allow_methods = list(DEFAULT_METHODS)
        self.allow_headers = list(DEFAULT_HEADERS)

        origins = parse_comma_separated_list(allow_origins)
        if not origins and self.environment == "development":
            origins = list(DEVELOPMENT_ORIGINS)

        if not origins:
            raise CORSConfigurationError(
                f"{self.environment.capitalize()} environment requires explicit allowed origins"
            )

        self.allow_origins = [normalize_origin(o) for o in origins]

        insecure = [o for o in self.allow_origins if o.startswith("http://")]
        if insecure and self.environment == "production":
            logger.warning(f"Plain-http CORS origins configured in production: {', '.join(insecure)}")

    def get_middleware_config(self) -> dict:
        """Get configuration dict for ``CORSMiddleware``."""
        return {
            "allow_origins": self.allow_origins,
            "allow_credentials": self.allow_credentials,
            "allow_methods": self.allow_methods,
            "allow_headers": self.allow_headers,
            "max_age": self.max_age,
        }

    def log_configuration(self) -> None:
        """Log effective CORS configuration at startup."""
        logger.info(
            f"CORS Configuration:\n"
            f"  Environment: {self.environment}\n"
            f"  Origins: {', '.join(self.allow_origins)}\n"
            f"  Methods: {', '.join(self.allow_methods)}\n"
            f"  Credentials: {self.allow_credentials}\n"
            f"  Preflight Max Age: {self.max_age}s"
        )
