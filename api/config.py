"""
Environment-aware configuration.
Token secrets, lifetimes, password hash cost and store timeouts are read once
at startup; services copy what they need and never look here again.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    # Keep a copy of env for visibility
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Credential store
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth.db")
    STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ECHO = False

    # Tokens: access and refresh are signed with independent secrets
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "session-auth-api")
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret-change-me-0123456789")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRES_MINUTES", "15")))
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret-change-me-9876543210")
    REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.getenv("REFRESH_TOKEN_EXPIRES_DAYS", "7")))

    # Argon2 cost parameters
    PASSWORD_HASH_TIME_COST = int(os.getenv("PASSWORD_HASH_TIME_COST", "3"))
    PASSWORD_HASH_MEMORY_COST = int(os.getenv("PASSWORD_HASH_MEMORY_COST", "65536"))
    PASSWORD_HASH_PARALLELISM = int(os.getenv("PASSWORD_HASH_PARALLELISM", "4"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    STORE_TIMEOUT_SECONDS = 1.0
    ACCESS_TOKEN_SECRET = "test-access-secret-0123456789abcdef0123"
    REFRESH_TOKEN_SECRET = "test-refresh-secret-fedcba9876543210fedc"
    # Cheap hashing keeps the suite fast
    PASSWORD_HASH_TIME_COST = 1
    PASSWORD_HASH_MEMORY_COST = 1024
    PASSWORD_HASH_PARALLELISM = 1


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "prod"


def validate_config(config) -> None:
    """Refuse to start with unusable token settings."""
    if config["ACCESS_TOKEN_SECRET"] == config["REFRESH_TOKEN_SECRET"]:
        raise RuntimeError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
    if config["ACCESS_TOKEN_EXPIRES"] >= config["REFRESH_TOKEN_EXPIRES"]:
        raise RuntimeError("access tokens must expire before refresh tokens")
    if config["APP_ENV"] in ("prod", "production"):
        for key in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET", "SECRET_KEY"):
            if not os.getenv(key):
                raise RuntimeError(f"{key} must be set in production")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
