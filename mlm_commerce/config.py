from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./mlm_commerce.db"

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "MLM Commerce Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Public URL of the storefront, used to build referral links
    APP_URL: str = "http://localhost:3000"

    # Commission engine
    COMMISSION_SCHEME: str = "ORDER_TOTAL"  # Options: ORDER_TOTAL, PRODUCT_TIER
    COMMISSION_MAX_LEVELS: int = 4  # Upline levels paid per order
    CYCLE_CHECK_DEPTH: int = 10  # Upline levels walked when attaching a sponsor
    NETWORK_MAX_DEPTH: int = 5  # Downline levels rendered in the network tree
    VOLUME_WINDOW_DAYS: int = 30  # Trailing window for seller sales volume

    # Insert default tiers, catalogue and demo network on startup
    SEED_ON_STARTUP: bool = False

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('COMMISSION_SCHEME')
    @classmethod
    def validate_commission_scheme(cls, v):
        v = v.upper()
        if v not in ("ORDER_TOTAL", "PRODUCT_TIER"):
            raise ValueError(f"Unknown commission scheme: {v}")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return self.CORS_ORIGINS

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
