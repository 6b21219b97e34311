from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Union
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./distbill.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Distributor Billing"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # GST
    DEFAULT_STATE_CODE: str = "24"  # Gujarat, used when the seller GSTIN is blank
    DEFAULT_GST_RATE: float = 5  # Used when the profile forces a default rate but none is set

    # Invoice numbering
    INVOICE_NUMBERING: str = "COUNT"  # COUNT (invoice count + offset) or SEQUENCE (persisted counter)
    INVOICE_NUMBER_OFFSET: int = 65
    INVOICE_NUMBER_FORMAT: str = "{prefix} -{sequence}"

    # Stock
    STOCK_POLICY: str = "ALLOW_NEGATIVE"  # ALLOW_NEGATIVE or REJECT_NEGATIVE

    # Dashboard
    LOW_STOCK_THRESHOLD: int = 50
    EXPIRY_WARNING_MONTHS: int = 3

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('INVOICE_NUMBERING', 'STOCK_POLICY', mode='before')
    @classmethod
    def uppercase_modes(cls, v: Union[str, None]):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return list(self.CORS_ORIGINS)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
