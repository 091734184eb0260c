"""
Environment-aware configuration.
Values come from the process environment, with a .env file loaded first if present.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    # Keep a copy of env for visibility
    APP_ENV = os.getenv("APP_ENV", "dev")

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///book-store.db")
    DATABASE_ECHO = _env_bool("DATABASE_ECHO", "false")
    STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "5"))
    CREATE_TABLES = _env_bool("CREATE_TABLES", "true")

    # Access tokens
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me-dev-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "bookstore-api")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)

    # Refresh tokens / session cookies
    REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    REFRESH_COOKIE_NAME = "refreshToken"
    FAMILY_COOKIE_NAME = "tokenFamily"
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/v1/auth")
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", "false")

    # Argon2 cost (None -> library defaults)
    ARGON2_TIME_COST = int(os.getenv("ARGON2_TIME_COST", "0")) or None
    ARGON2_MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "0")) or None
    ARGON2_PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "0")) or None


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    # File based: every connection must see the same database
    DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///test-book-store.db")
    JWT_SECRET = "test-secret-0123456789-abcdefghijklmnop"
    COOKIE_SECURE = False
    # Cheap hashing keeps the suite fast
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 1024
    ARGON2_PARALLELISM = 1


class ProductionConfig(BaseConfig):
    DEBUG = False
    JWT_SECRET = os.getenv("JWT_SECRET")
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", "true")
    CREATE_TABLES = _env_bool("CREATE_TABLES", "false")


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
