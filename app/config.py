from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Stock Count Service"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./stock_count.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    API_KEYS: Optional[str] = None
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None

    # ==============================
    # Inventory
    # ==============================
    INVENTORY_TX_MAX_WAIT_SECONDS: float = 10.0
    INVENTORY_TX_TIMEOUT_SECONDS: float = 60.0
    INVENTORY_HISTORY_LIMIT: int = 20
    INVENTORY_ALLOW_NEGATIVE_COUNTS: bool = False
    STOCK_ACCURACY_INDICATOR_KEY: str = "STOCK_ACCURACY"


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
