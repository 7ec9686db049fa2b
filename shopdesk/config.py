from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "ShopDesk"
    ENVIRONMENT: str = "local"

    # ==============================
    # Storage
    # ==============================
    DATABASE_URL: str = "sqlite:///./shopdesk.db"
    STORAGE_BACKEND: str = "database"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Inventory
    # ==============================
    DEFAULT_MIN_STOCK: int = 5

    # ==============================
    # Sales
    # ==============================
    SALE_TOTAL_POLICY: str = "verify"
    CLIENT_STAMP_ORDER_ON_CREATE: bool = True

    # ==============================
    # Reports
    # ==============================
    SUMMARY_DEFAULT_DAYS: int = 30
    TOP_PRODUCTS_LIMIT: int = 5


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
