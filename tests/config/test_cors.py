"""Tests for CORS configuration and security."""

import pytest

from src.config.cors_config import (
    DEVELOPMENT_ORIGINS,
    CORSConfiguration,
    CORSConfigurationError,
    normalize_origin,
    parse_comma_separated_list,
)


class TestOriginNormalization:
    """Test origin URL normalization."""

    def test_normalize_removes_trailing_slash(self):
        assert normalize_origin("https://example.com/") == "https://example.com"
        assert normalize_origin("https://example.com//") == "https://example.com"

    def test_normalize_strips_whitespace(self):
        assert normalize_origin("  https://example.com  ") == "https://example.com"

    def test_normalize_preserves_valid_origins(self):
        assert normalize_origin("https://example.com") == "https://example.com"
        assert normalize_origin("http://localhost:3000") == "http://localhost:3000"

    def test_normalize_rejects_empty_origin(self):
        with pytest.raises(CORSConfigurationError, match="Origin cannot be empty"):
            normalize_origin("   ")

    def test_normalize_rejects_wildcard(self):
        """Credentialed requests never work with ``*``."""
        with pytest.raises(CORSConfigurationError, match="Wildcard"):
            normalize_origin("*")

    @pytest.mark.parametrize("origin", ["not-a-url", "example.com", "ftp://example.com"])
    def test_normalize_rejects_invalid_urls(self, origin):
        with pytest.raises(CORSConfigurationError, match="Invalid origin URL"):
            normalize_origin(origin)


class TestParseCommaSeparatedList:
    """Test parsing of comma-separated lists."""

    def test_parse_string_with_whitespace(self):
        assert parse_comma_separated_list(" a , b ,, c ") == ["a", "b", "c"]

    def test_parse_list_returns_stripped_items(self):
        assert parse_comma_separated_list([" a", "", "b "]) == ["a", "b"]

    def test_parse_none_returns_empty_list(self):
        assert parse_comma_separated_list(None) == []

    def test_parse_invalid_type_raises_error(self):
        with pytest.raises(CORSConfigurationError, match="Invalid value type"):
            parse_comma_separated_list(123)  # type: ignore[arg-type]


class TestCORSConfigurationByEnvironment:
    def test_development_defaults_to_localhost(self):
        config = CORSConfiguration(environment="development")
        assert config.allow_origins == DEVELOPMENT_ORIGINS

    def test_development_with_custom_origins(self):
        config = CORSConfiguration(allow_origins="http://localhost:5173/", environment="development")
        assert config.allow_origins == ["http://localhost:5173"]

    @pytest.mark.parametrize("environment", ["staging", "production"])
    def test_explicit_origins_required_outside_development(self, environment):
        with pytest.raises(CORSConfigurationError, match="requires explicit allowed origins"):
            CORSConfiguration(environment=environment)

    @pytest.mark.parametrize("environment", ["development", "staging", "production"])
    def test_wildcard_rejected_everywhere(self, environment):
        with pytest.raises(CORSConfigurationError, match="Wildcard"):
            CORSConfiguration(allow_origins="*", environment=environment)

    def test_production_accepts_explicit_origins(self):
        config = CORSConfiguration(
            allow_origins="https://app.example.com, https://admin.example.com",
            environment="production",
        )
        assert config.allow_origins == ["https://app.example.com", "https://admin.example.com"]

    def test_environment_name_is_case_insensitive(self):
        config = CORSConfiguration(allow_origins="https://example.com", environment="PRODUCTION")
        assert config.environment == "production"


class TestCORSMiddlewareConfig:
    def test_get_middleware_config_structure(self):
        config = CORSConfiguration(allow_origins="https://example.com", max_age=1200, environment="production")

        assert config.get_middleware_config() == {
            "allow_origins": ["https://example.com"],
            "allow_credentials": True,
            "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["content-type", "authorization", "x-requested-with"],
            "max_age": 1200,
        }

    def test_credentials_always_enabled(self):
        for environment in ("development", "staging", "production"):
            config = CORSConfiguration(allow_origins="https://example.com", environment=environment)
            assert config.allow_credentials is True

    def test_log_configuration_does_not_raise(self):
        CORSConfiguration(environment="development").log_configuration()
