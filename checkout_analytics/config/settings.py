"""
Checkout Analytics Aggregation Engine
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Dict, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Event store (PostgreSQL) configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="checkout_analytics", alias="database", description="Database name")
    user: str = Field(default="analytics", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")

    # Event store RPC
    events_function: str = Field(
        default="get_analytics_events_by_types",
        description="SQL function returning events for a tenant, event types and window",
    )
    statement_timeout_ms: int = Field(default=30000, description="Per-statement timeout")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class AnalyticsSettings(BaseSettings):
    """Aggregation engine configuration"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    detail_limit: int = Field(default=100, description="Max rows in detail lists")
    default_period: str = Field(default="week", description="Period used when none is requested")
    default_plan: str = Field(default="starter", description="Plan assumed when the gateway sends none")
    plan_max_range_days: Dict[str, int] = Field(
        default={"starter": 7, "professional": 90, "enterprise": 365},
        description="Maximum custom range span per plan, in days",
    )

    # CAC approximation
    default_cac: float = Field(default=25.0, description="Estimated CAC for unmatched channels")
    ltv_proxy_multiplier: float = Field(default=2.0, description="AOV multiplier used as LTV proxy")

    @field_validator("default_period")
    @classmethod
    def validate_period(cls, v: str) -> str:
        """Validate default period value"""
        allowed = ["today", "week", "month", "year"]
        if v.lower() not in allowed:
            raise ValueError(f"Default period must be one of: {allowed}")
        return v.lower()


class SecuritySettings(BaseSettings):
    """Security and tenant context configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Tenant context headers set by the upstream auth gateway
    account_header: str = Field(default="X-Account-ID", alias="ACCOUNT_HEADER", description="Tenant account header")
    plan_header: str = Field(default="X-Plan-Code", alias="PLAN_HEADER", description="Tenant plan header")

    # Rate limiting
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Requests per client per window, enforced per worker process")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")

    # Metrics
    enable_metrics: bool = Field(default=True, alias="ENABLE_METRICS", description="Expose /metrics")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format value"""
        allowed = ["json", "text"]
        if v.lower() not in allowed:
            raise ValueError(f"Log format must be one of: {allowed}")
        return v.lower()


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
    app_name: str = Field(default="checkout-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
