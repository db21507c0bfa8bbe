"""Application settings and configuration helpers."""

from __future__ import annotations

from functools import lru_cache

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import MetricsConfigError


class MetricsConfig(BaseModel):
    """Validated export settings handed to the metrics pipeline."""

    model_config = ConfigDict(frozen=True)

    collector_url: AnyHttpUrl
    bearer_token: str = Field(min_length=1)
    source_label: str = Field(min_length=1)
    flush_interval: float = Field(default=10.0, gt=0)
    export_timeout: float = Field(default=5.0, gt=0)


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(default="JWT Pizza Service", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    metrics_enabled: bool = Field(default=True, description="Start the periodic exporter on startup.")
    metrics_url: AnyHttpUrl | None = Field(
        default=None,
        description="OTLP HTTP endpoint of the telemetry collector.",
    )
    metrics_api_key: str | None = Field(
        default=None,
        description="Bearer token sent to the collector.",
    )
    metrics_source: str = Field(
        default="jwt-pizza-service",
        min_length=1,
        description="Value of the source attribute attached to every metric.",
    )
    metrics_flush_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Period between two exports.",
    )
    metrics_export_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single collector request.",
    )

    @property
    def metrics_configured(self) -> bool:
        return bool(self.metrics_url and self.metrics_api_key)

    @property
    def metrics_config(self) -> MetricsConfig:
        """Return the export configuration, or raise if the collector is not set up."""

        missing = [
            name
            for name, value in (("METRICS_URL", self.metrics_url), ("METRICS_API_KEY", self.metrics_api_key))
            if not value
        ]
        if missing:
            raise MetricsConfigError(f"metrics export requires {', '.join(missing)}")

        return MetricsConfig(
            collector_url=self.metrics_url,
            bearer_token=self.metrics_api_key,
            source_label=self.metrics_source,
            flush_interval=self.metrics_flush_interval_seconds,
            export_timeout=self.metrics_export_timeout_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
