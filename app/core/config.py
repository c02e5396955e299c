# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (SQLAlchemy URL, e.g. postgresql://... or sqlite:///./shop.db)

    Optional:
      - everything else below has a working default for local development
    """

    PROJECT_NAME: str = "Live Catalog API"
    API_PREFIX: str = "/api"

    # Database
    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    DATABASE_REQUIRE_SSL: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 0

    LOG_LEVEL: str = "INFO"

    # Anonymous session that carries the cart binding
    SESSION_COOKIE_NAME: str = "cart_session"
    SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30

    # Catalog listing
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

    # Push channel
    REALTIME_PATH: str = "/ws/products"
    REALTIME_SEND_ON_CONNECT: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
