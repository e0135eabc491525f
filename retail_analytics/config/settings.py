"""
Retail Warehouse Analytics
Centralized Configuration Management

Configuration is managed with Pydantic settings: every section reads its own
environment prefix, values are validated and typed, and the aggregate
``Settings`` object is cached by ``get_settings()``.
"""

from datetime import date
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Warehouse Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="retail_warehouse", description="Database name")
    user: str = Field(default="analytics", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, description="Full database URL (overrides host/port)")

    @property
    def sync_url(self) -> str:
        """Sync database URL for psycopg2 - uses POSTGRES_URL if set"""
        if self.url:
            return self.url
        return f"postgresql+psycopg2://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class ReportSettings(BaseSettings):
    """Report Generation Configuration"""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    reference_date: Optional[date] = Field(
        default=None,
        description="Reference 'now' for age and recency metrics",
    )
    output_path: str = Field(default="./data/reports", description="Report output directory")
    output_format: str = Field(default="parquet", description="Report file format: parquet or csv")
    write_output: bool = Field(default=False, description="Write report files after computing")
    legacy_age_groups: bool = Field(
        default=True,
        description="Use the warehouse's historical age buckets (21-29, 31-39, 41-49)",
    )

    @field_validator("output_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate output format value"""
        allowed = ["parquet", "csv"]
        if v.lower() not in allowed:
            raise ValueError(f"Output format must be one of: {allowed}")
        return v.lower()


class SegmentationSettings(BaseSettings):
    """Customer and Product Segmentation Thresholds"""

    model_config = SettingsConfigDict(env_prefix="SEGMENT_")

    customer_min_lifespan_months: int = Field(
        default=12, description="Minimum lifespan for VIP/Regular customers"
    )
    vip_sales_threshold: float = Field(
        default=5000, description="Customers above this total are VIP"
    )
    high_performer_threshold: float = Field(
        default=50000, description="Products above this total are High Performers"
    )
    mid_performer_threshold: float = Field(
        default=10000, description="Products at or above this total are Mid Performers"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class DataQualitySettings(BaseSettings):
    """Data Quality Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    enable_data_quality_checks: bool = Field(
        default=True,
        description="Run data quality checks before building reports",
    )
    strict_mode: bool = Field(
        default=False,
        description="Treat data quality warnings as failures",
    )


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
    app_name: str = Field(default="retail-analytics", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode: log at DEBUG level")
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    reports: ReportSettings = Field(default_factory=ReportSettings)
    segmentation: SegmentationSettings = Field(default_factory=SegmentationSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    data_quality: DataQualitySettings = Field(default_factory=DataQualitySettings)

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
