"""Configuration management using Pydantic Settings"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="PAYCYCLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service
    service_name: str = "paycycle"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "plain"] = "json"

    # Billing rules
    month_end_token: str = "月末"
    holidays: List[str] = Field(default_factory=lambda: ["01-01"])  # fixed MM-DD dates
    bank_adjust_weekend: bool = True

    # Caller-owned schedule view cache
    view_cache_ttl_seconds: float = 300.0
    view_cache_max_entries: int = 24

    # Aggregations slower than this are logged at WARNING
    aggregation_warn_ms: float = 100.0

    @field_validator("holidays")
    @classmethod
    def _check_holidays(cls, value: List[str]) -> List[str]:
        for raw in value:
            month, _, day = raw.partition("-")
            if not (month.isdigit() and day.isdigit()):
                raise ValueError(f"Holiday must be formatted MM-DD: {raw!r}")
            if not (1 <= int(month) <= 12 and 1 <= int(day) <= 31):
                raise ValueError(f"Holiday out of range: {raw!r}")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance"""
    return Settings()


settings = get_settings()
