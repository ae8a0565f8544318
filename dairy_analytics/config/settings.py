"""
Dairy Supply-Chain Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings
with environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dairy_analytics.models import DEDUP_KEY


class LoaderSettings(BaseSettings):
    """Record Loader Configuration"""

    model_config = SettingsConfigDict(env_prefix="LOADER_")

    strict: bool = Field(default=False, description="Abort the whole load on the first malformed record")
    null_values: List[str] = Field(
        default=["", "NULL", "null", "None", "NA", "N/A"],
        description="Raw tokens read as null",
    )
    date_formats: List[str] = Field(
        default=["%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y"],
        description="Date formats tried in order",
    )


class CleaningSettings(BaseSettings):
    """Record Cleaning Configuration"""

    model_config = SettingsConfigDict(env_prefix="CLEANING_")

    truthy_token: str = Field(default="Yes", description="Raw flag value mapped to True")
    dedup_key: List[str] = Field(
        default_factory=lambda: list(DEDUP_KEY),
        description="Composite key identifying duplicate records",
    )


class AnalyticsSettings(BaseSettings):
    """KPI Aggregation Configuration"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    moving_average_window: int = Field(default=7, description="Trailing window size in rows")
    top_n: int = Field(default=10, description="Row limit for top-N ranking views")
    decimals: int = Field(default=2, description="Decimal places for rounded KPIs")


class DataLakeSettings(BaseSettings):
    """Data Lake Storage Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Raw data zone path")
    curated_path: str = Field(default="./data/curated", description="Curated zone path")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")
    log_file: Optional[str] = Field(default=None, description="Log file path")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="dairy-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    loader: LoaderSettings = Field(default_factory=LoaderSettings)
    cleaning: CleaningSettings = Field(default_factory=CleaningSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
