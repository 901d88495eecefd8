"""
Environment-aware configuration.
Security keys, token lifetimes, refresh cookie policy, CORS and database URL.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

from utils.exceptions import ConfigurationError

load_dotenv()  # Read .env if present

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")

# Public placeholder; production refuses to start with it
DEFAULT_JWT_SECRET = "dev-secret-change-me"
MIN_PRODUCTION_SECRET_LENGTH = 32


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key, "").strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, ""))
    except ValueError:
        return default


def _same_site(value: str) -> str:
    normalized = value.strip().lower()
    if normalized == "strict":
        return "Strict"
    if normalized == "none":
        return "None"
    return "Lax"


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    REQUIRE_STRONG_JWT_SECRET = False
    # Single frontend origin; credentials are allowed so it must not be '*'
    CORS_ORIGINS = os.getenv("CORS_ALLOWED_ORIGIN", "http://localhost:5173")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///todo.db")

    # Access tokens (stateless JWT)
    JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=_env_int("JWT_ACCESS_TTL_MINUTES", 60))

    # Refresh sessions (opaque, rotated, delivered as a cookie)
    REFRESH_TOKEN_EXPIRES = timedelta(hours=_env_int("JWT_REFRESH_TTL_HOURS", 168))
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "todo_refresh_token")
    REFRESH_COOKIE_DOMAIN = os.getenv("REFRESH_COOKIE_DOMAIN") or None
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/v1/auth")
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", False)
    REFRESH_COOKIE_HTTPONLY = _env_bool("REFRESH_COOKIE_HTTPONLY", True)
    REFRESH_COOKIE_SAMESITE = _same_site(os.getenv("REFRESH_COOKIE_SAMESITE", "Lax"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"  # in-memory, never the dev file
    JWT_SECRET = "testing-secret-not-for-production-use-0123456789"
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)
    REFRESH_TOKEN_EXPIRES = timedelta(hours=24)
    REFRESH_COOKIE_NAME = "todo_refresh_token"
    REFRESH_COOKIE_PATH = "/api/v1/auth"
    REFRESH_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    REQUIRE_STRONG_JWT_SECRET = True
    DATABASE_URL = os.getenv("DATABASE_URL")
    JWT_SECRET = os.getenv("JWT_SECRET")
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", True)


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def check_production_secret(secret: str | None) -> None:
    """Refuse a missing, placeholder or short JWT secret."""
    if not secret or not secret.strip():
        raise ConfigurationError("JWT_SECRET must be set in production")
    if secret == DEFAULT_JWT_SECRET:
        raise ConfigurationError("JWT_SECRET is still the development placeholder")
    if len(secret) < MIN_PRODUCTION_SECRET_LENGTH:
        raise ConfigurationError(
            f"JWT_SECRET must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production"
        )
