"""
Configuration models for lokisink using Pydantic v2 Settings.

`Settings` reads the environment (prefix ``LOKISINK_``, nested delimiter
``__``); `LokiSinkConfig` is the per-sink model accepted by
`LokiWriteSyncer`.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
    SettingsError,
)

from .errors import ConfigurationError

LATEST_CONFIG_SCHEMA_VERSION = "1.0"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _tags_or_empty(value: Mapping[str, str] | None) -> dict[str, str]:
    if value is None:
        return {}
    return dict(value)


class LokiSinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    url: str
    tags: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float | None = Field(default=None, gt=0.0)

    @field_validator("url")
    @classmethod
    def _ensure_url_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url must not be empty")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Mapping[str, str] | None) -> dict[str, str]:
        return _tags_or_empty(value)


class CoreSettings(BaseModel):
    """Library-wide toggles."""

    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit DEBUG/WARN diagnostics for sink failures to stderr",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )


class LokiSettings(BaseModel):
    """Environment-provided defaults for a sink."""

    url: str | None = Field(
        default=None,
        description="Loki location, e.g. loki://logs:3100/?UNSAFE_secure=false",
    )
    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Stream labels attached to every push",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Timeout for the client created when none is supplied",
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Mapping[str, str] | None) -> dict[str, str]:
        return _tags_or_empty(value)

    def to_sink_config(self) -> LokiSinkConfig:
        if not self.url:
            raise ConfigurationError(
                "loki.url is not configured (set LOKISINK_LOKI__URL)"
            )
        return parse_sink_config(
            LokiSinkConfig,
            url=self.url,
            tags=self.tags,
            timeout_seconds=self.timeout_seconds,
        )


class Settings(BaseSettings):
    """Top-level configuration model."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    core: CoreSettings = Field(default_factory=CoreSettings)
    loki: LokiSettings = Field(default_factory=LokiSettings)

    model_config = SettingsConfigDict(
        env_prefix="LOKISINK_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    def to_json(self) -> str:
        import json

        return json.dumps(self.model_dump(by_alias=True, exclude_none=True))

    def to_dict(self) -> dict[str, object]:
        from typing import cast

        return cast(
            dict[str, object],
            self.model_dump(by_alias=True, exclude_none=True),
        )


def parse_sink_config(
    model: type[ModelT],
    config: ModelT | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> ModelT:
    """Build a config model from an instance, a mapping, or keyword arguments.

    Keyword arguments override mapping keys. Validation failures are
    re-raised as `ConfigurationError`.
    """
    if isinstance(config, model) and not kwargs:
        return config
    data: dict[str, Any] = {}
    if isinstance(config, BaseModel):
        data.update(config.model_dump())
    elif config is not None:
        data.update(config)
    data.update(kwargs)
    try:
        return model(**data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid {model.__name__}: {exc}",
            cause=exc,
        ) from exc


def load_settings(**overrides: Any) -> Settings:
    """Read `Settings` from the environment.

    Malformed ``LOKISINK_*`` values (invalid JSON, wrong types) are re-raised
    as `ConfigurationError`.
    """
    try:
        return Settings(**overrides)
    except (ValidationError, SettingsError) as exc:
        raise ConfigurationError(f"Invalid LOKISINK_* settings: {exc}", cause=exc) from exc
