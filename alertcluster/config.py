"""
Configuration management for the alert clustering service.

Uses Pydantic Settings for type-safe configuration with multiple sources:
- Environment variables (highest priority)
- .env file
- Defaults (lowest priority)
"""

import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClusteringConfig(BaseSettings):
    """DBSCAN clustering and result cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLUSTERING_",
        env_file=".env",
        env_file_encoding="utf-8"
    )

    # Defaults applied when a caller leaves both DBSCAN parameters unset
    default_eps: float = Field(
        default=0.3,
        gt=0.0,
        le=2.0,
        description="Default maximum cosine distance between neighbours"
    )
    default_min_samples: int = Field(
        default=2,
        ge=1,
        description="Default neighbourhood size (including the point) for a core point"
    )

    # Result cache
    cache_ttl_seconds: float = Field(
        default=3600.0,
        gt=0.0,
        description="Lifetime of a cached clustering summary"
    )
    cache_cleanup_interval_seconds: float = Field(
        default=600.0,
        gt=0.0,
        description="How often the background sweep removes expired summaries"
    )

    # Cluster keywords
    keyword_limit: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Maximum keywords attached to each cluster"
    )

    # Size guard (O(n^2) neighbour computation)
    max_alerts_per_run: int = Field(
        default=5000,
        ge=1,
        description="Log a warning when a clustering run exceeds this many alerts"
    )

    @field_validator("cache_cleanup_interval_seconds")
    @classmethod
    def validate_cleanup_interval(cls, v: float, info) -> float:
        """Ensure the sweep runs at least once per TTL period."""
        ttl = info.data.get("cache_ttl_seconds")
        if ttl is not None and v > ttl:
            raise ValueError(
                f"cache_cleanup_interval_seconds ({v}) must be <= cache_ttl_seconds ({ttl})"
            )
        return v


class ServiceConfig(BaseSettings):
    """FastAPI service configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVICE_")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    reload: bool = Field(default=False)
    workers: int = Field(default=1, ge=1)

    def uvicorn_options(self) -> dict:
        """
        Keyword arguments for uvicorn.run.

        Reload mode runs a single process, so workers is only passed
        without it. Each worker holds its own clustering cache.
        """
        options = {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level.lower(),
        }
        if not self.reload:
            options["workers"] = self.workers
        return options



class CORSConfig(BaseSettings):
    """CORS configuration for the browsing API."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    # Allowed origins (comma-separated for multiple origins)
    allowed_origins: str = Field(
        default="*", description="Comma-separated list of allowed origins (* for all, ONLY for dev)"
    )
    allow_credentials: bool = Field(
        default=False, description="Allow credentials (cookies, auth headers)"
    )
    allowed_methods: str = Field(
        default="GET,OPTIONS",
        description="Comma-separated list of allowed HTTP methods",
    )
    allowed_headers: str = Field(
        default="*", description="Comma-separated list of allowed headers (* for all)"
    )
    max_age: int = Field(default=600, ge=0, description="Preflight cache duration in seconds")

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated origins into list."""
        if self.allowed_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def methods_list(self) -> list[str]:
        """Parse comma-separated methods into list."""
        return [method.strip() for method in self.allowed_methods.split(",") if method.strip()]

    @property
    def headers_list(self) -> list[str]:
        """Parse comma-separated headers into list."""
        if self.allowed_headers == "*":
            return ["*"]
        return [header.strip() for header in self.allowed_headers.split(",") if header.strip()]


class LoggingConfig(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )

    # Output format
    json_output: bool = Field(
        default=True, description="Use JSON output (True for production, False for development)"
    )

    # Console colorization (only for non-JSON output)
    colorized: bool = Field(
        default=False, description="Colorize console output (only for development)"
    )

    # Slow request logging thresholds
    slow_request_warning_ms: float = Field(
        default=250.0, ge=0.0, description="Log warning if request exceeds this latency (ms)"
    )
    slow_request_error_ms: float = Field(
        default=1000.0, ge=0.0, description="Log error if request exceeds this latency (ms)"
    )

    # Service metadata (injected into all logs)
    service_name: str = Field(
        default="alert-clustering", description="Service name for log aggregation"
    )
    service_version: str = Field(default="0.1.0", description="Service version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )

    @field_validator("slow_request_error_ms")
    @classmethod
    def validate_slow_request_thresholds(cls, v: float, info) -> float:
        """Ensure error threshold is greater than warning threshold."""
        warning = info.data.get("slow_request_warning_ms")
        if warning is not None and v <= warning:
            raise ValueError(
                f"slow_request_error_ms ({v}) must be > slow_request_warning_ms ({warning})"
            )
        return v


class Settings(BaseSettings):
    """Root configuration for the alert clustering service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def validate_configuration(self) -> None:
        """
        Validate cross-field constraints and log warnings.
        Called at application startup.
        """
        if self.clustering.default_eps > 1.0:
            logging.warning(
                f"default_eps={self.clustering.default_eps} exceeds 1.0 - "
                f"orthogonal alerts will be treated as neighbours"
            )

        if self.clustering.default_min_samples == 1:
            logging.warning(
                "default_min_samples=1 makes every alert a core point - noise set will be empty"
            )

        if "*" in self.cors.origins_list and self.logging.environment == "production":
            logging.warning("CORS allows all origins in production")


# Global settings instance (lazy-loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get global settings instance (singleton pattern).

    Returns:
        Settings: Application configuration
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate_configuration()
    return _settings
