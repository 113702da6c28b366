"""
Service settings.

Every value can be overridden from the environment (or ``.env``) using
the section prefix, e.g. ``STORAGE_DATA_DIR=/var/lib/workshop`` or
``LEDGER_DRIFT_TOLERANCE=0.001``.
"""

from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where the SQLite ledger lives and how it is opened."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "workshop.db"
    pool_size: int = Field(default=5, ge=1)
    # Writers queue on the database lock for up to this long (ms)
    busy_timeout: int = Field(default=30000, ge=0)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class LedgerSettings(BaseSettings):
    """Stock ledger behaviour."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    default_unit: str = Field(default="pcs", min_length=1)
    drift_tolerance: Decimal = Field(default=Decimal("0"), ge=0)
    check_consistency_on_start: bool = False
    # Batch size for full-table scans (drift checks, receipt sync)
    scan_page_size: int = Field(default=200, ge=1, le=5000)


class APISettings(BaseSettings):
    """HTTP server."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Workshop Ledger"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    storage: StorageSettings = Field(default_factory=StorageSettings, validate_default=True)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("storage", mode="after")
    @classmethod
    def create_data_dir(cls, v: StorageSettings) -> StorageSettings:
        v.data_dir.mkdir(parents=True, exist_ok=True)
        return v


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
