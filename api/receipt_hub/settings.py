# receipt_hub/settings.py
"""
Receipt Hub Settings - PostgreSQL connection, logging and receipt numbering.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    # =========================================================================
    # PostgreSQL Database
    # =========================================================================
    DB_HOST: str = Field(default="localhost", validation_alias="DB_HOST")
    DB_PORT: int = Field(default=5432, validation_alias="DB_PORT")
    DB_NAME: str = Field(default="receipt_hub", validation_alias="DB_NAME")
    DB_USER: str = Field(default="postgres", validation_alias="DB_USER")
    DB_PASSWORD: str = Field(default="postgres", validation_alias="DB_PASSWORD")

    # Connection pool settings
    DB_POOL_SIZE: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    DB_ECHO: bool = Field(default=False, validation_alias="DB_ECHO")

    # Full async URL override (e.g. sqlite+aiosqlite:///./receipts.db)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "RECEIPT_HUB_DATABASE_URL"),
    )
    DB_CREATE_SCHEMA: bool = Field(
        default=False,
        description="Create missing tables on startup (development only)",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_DIR: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "logs"),
        validation_alias=AliasChoices("LOG_DIR", "RECEIPT_HUB_LOG_DIR"),
    )
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # =========================================================================
    # Receipts
    # =========================================================================
    IMPORT_RECEIPT_PREFIX: str = "NH"
    CHECK_RECEIPT_PREFIX: str = "KIEM"
    PRODUCT_CODE_PREFIX: str = "NK"
    PAGINATION_MAX_LIMIT: int = 50

    # =========================================================================
    # Feature Flags
    # =========================================================================
    PUSH_NOTIFICATIONS_ENABLED: bool = Field(
        default=False,
        description="Deliver completion notifications to user devices",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
