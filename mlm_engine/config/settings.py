"""
Engine settings.

Loads runtime configuration from environment variables (prefix ``MLM_``)
using pydantic-settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mlm_engine.models.enums import PlacementAlgorithm


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Tree
    root_member_id: str | None = Field(
        default=None,
        description="Placement fallback and system fund recipient",
    )
    placement_algorithm: PlacementAlgorithm = PlacementAlgorithm.BALANCED
    placement_max_depth: int = Field(default=7, ge=1, le=64)

    # Money
    currency: str = "USD"
    currency_decimals: int = Field(default=2, ge=0, le=8)

    # Statistics cache
    stats_cache_ttl_seconds: int = Field(default=300, ge=0)

    # Member codes
    member_code_prefix: str = "MB"
    member_code_width: int = Field(default=7, ge=1, le=12)

    # Ledger
    risk_approval_threshold: int = Field(default=5, ge=0, le=10)

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Persistence adapter
    database_url: str | None = None
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_prefix="MLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}, got {v}")
        return level

    @field_validator("root_member_id", "log_file", "database_url")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


# Global settings instance
settings = Settings()
