"""Configuration management for the inventory engine."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``POS_INVENTORY_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="POS_INVENTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Directory holding the JSON stores")

    # Reservations
    reservation_ttl_minutes: int = Field(
        default=15, gt=0, description="Minutes a reservation holds stock"
    )
    expiring_soon_minutes: int = Field(
        default=5, gt=0, description="Window for the expiring-soon query"
    )
    sweep_interval_seconds: float = Field(
        default=60, gt=0, description="Seconds between expiry sweeps"
    )
    min_override_reason_length: int = Field(
        default=10, ge=1, description="Shortest acceptable manager override reason"
    )

    # Audit compliance
    high_value_threshold: float = Field(default=500, description="Flag entries above this value")
    large_quantity_threshold: float = Field(
        default=100, description="Flag entries moving more than this quantity"
    )
    review_value_threshold: float = Field(
        default=100, description="Default value cut-off for the review query"
    )
    review_quantity_threshold: float = Field(
        default=50, description="Default quantity cut-off for the review query"
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="text", description="Log format")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @property
    def store_path(self) -> Path:
        return self.data_dir / "inventory.json"

    @property
    def menu_path(self) -> Path:
        return self.data_dir / "menu.json"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
