"""Configuration management for the flat-file store."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreOptions(BaseModel):
    """Store options recognized by ``StoreEngine.configure``.

    Attribute names double as the option keys accepted by the engine.
    """

    create: frozenset[str] = Field(
        default_factory=frozenset,
        description="Database names allowed to be created and accessed",
    )
    errors: bool = Field(default=False, description="Raise failures instead of logging only")
    ext: str = Field(default=".dat", description="Database file extension")
    gzip: bool = Field(default=False, description="Wrap database files in gzip")
    path: Path | None = Field(default=None, description="Storage root directory")

    @field_validator("create", mode="before")
    @classmethod
    def _coerce_create(cls, value: Any) -> Any:
        # A single database name is accepted as shorthand
        if isinstance(value, str):
            return frozenset({value})
        return value

    def as_mapping(self) -> dict[str, Any]:
        """Return the options as a plain mapping keyed by option name."""
        return {
            "create": sorted(self.create),
            "errors": self.errors,
            "ext": self.ext,
            "gzip": self.gzip,
            "path": self.path,
        }


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="flatdb", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration, read from ``FLATDB_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLATDB_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    store: StoreOptions = Field(default_factory=StoreOptions)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
