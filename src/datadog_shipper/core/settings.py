"""
Configuration for the Datadog hook using Pydantic v2 Settings.

Resolution precedence (highest first):

1. Explicit keyword options passed to ``HookSettings`` / ``load_settings``
2. ``DATADOG_*`` environment variables (``DATADOG_API_KEY``, ``DATADOG_REGION``...)
3. Legacy unprefixed variables: ``SERVICE``, ``HOST``, ``ENVIRONMENT``,
   ``APPLICATION``, ``MAINTAINER``
4. Hard-coded defaults below
"""

from __future__ import annotations

import json
import os
from typing import Annotated, Any, Literal, Mapping

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from . import diagnostics
from .errors import ConfigurationError
from .levels import DEFAULT_LEVEL, canonical_level_name

BASE_PATH = "/v1/input"
API_KEY_HEADER = "DD-API-KEY"

REGION_ENDPOINTS: dict[str, str] = {
    "us": "https://http-intake.logs.datadoghq.com",
    "eu": "https://http-intake.logs.datadoghq.eu",
    "us-gov": "https://http-intake.logs.ddog-gov.com",
}

# The maximum content size per request is 5MB
MAX_CONTENT_SIZE = 5 * 1024 * 1024
# The maximum size for a single log is 256kB
MAX_LINE_SIZE = 256 * 1024
# The maximum amount of logs that can be sent in a single request is 1000
MAX_LINE_COUNT = 1000

DEFAULT_MAX_RETRIES = 5
DEFAULT_FLUSH_INTERVAL_SECONDS = 5.0

# Legacy environment names mapped to the field they populate
_LEGACY_ENV: dict[str, str] = {
    "service": "SERVICE",
    "hostname": "HOST",
    "environment": "ENVIRONMENT",
    "application": "APPLICATION",
    "maintainer": "MAINTAINER",
}

Region = Literal["us", "eu", "us-gov"]


class HookSettings(BaseSettings):
    """Immutable hook configuration."""

    api_key: str = Field(default="", description="Datadog API key (required)")
    min_level: str = Field(
        default=DEFAULT_LEVEL, description="Minimum level shipped to Datadog"
    )
    region: Region = Field(default="us", description="Datadog intake region")
    endpoint: str | None = Field(
        default=None, description="Explicit intake base URL; overrides region"
    )
    service: str = Field(default="unknown", description="Service tag")
    hostname: str = Field(default="unknown", description="Hostname tag")
    source: str = Field(default="python", description="ddsource identifier")
    tags: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=dict, description="Global key:value tags"
    )
    environment: str | None = Field(default=None, description="environment tag")
    application: str | None = Field(default=None, description="application tag")
    maintainer: str | None = Field(default=None, description="maintainer tag")
    batching_enabled: bool = Field(
        default=True, description="Batch entries locally before sending"
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        description="Delivery attempts per batch; negative retries forever",
    )
    flush_interval_seconds: float = Field(
        default=DEFAULT_FLUSH_INTERVAL_SECONDS,
        gt=0.0,
        description="Periodic flush interval",
    )
    max_content_size: int = Field(default=MAX_CONTENT_SIZE, ge=3)
    max_line_size: int = Field(default=MAX_LINE_SIZE, ge=1)
    max_line_count: int = Field(default=MAX_LINE_COUNT, ge=1)
    timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Per-attempt HTTP timeout"
    )
    retry_base_delay: float = Field(
        default=0.1, ge=0.0, description="First backoff delay; 0 disables backoff"
    )
    retry_max_delay: float = Field(default=5.0, ge=0.0)
    enable_metrics: bool = Field(
        default=False, description="Export Prometheus counters"
    )
    atexit_close: bool = Field(
        default=True, description="Close the hook automatically at interpreter exit"
    )

    model_config = SettingsConfigDict(
        env_prefix="DATADOG_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _apply_legacy_env(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        lowered = {str(k).lower() for k in data}
        for field_name, env_name in _LEGACY_ENV.items():
            if field_name in lowered:
                continue
            value = os.environ.get(env_name)
            if value:
                data = {**data, field_name: value}
        return data

    @field_validator("api_key")
    @classmethod
    def _strip_api_key(cls, value: str) -> str:
        return value.strip()

    @field_validator("min_level", mode="before")
    @classmethod
    def _canonical_min_level(cls, value: Any) -> str:
        return canonical_level_name(value if isinstance(value, int) else str(value))

    @field_validator("region", mode="before")
    @classmethod
    def _normalize_region(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "":
                return "us"
        return value

    @field_validator("endpoint")
    @classmethod
    def _strip_endpoint(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(k): str(v) for k, v in value.items()}
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return {}
            if text.startswith("{"):
                try:
                    parsed = json.loads(text)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid tags JSON: {e}") from e
                if not isinstance(parsed, dict):
                    raise ValueError("tags JSON must decode to an object")
                return {str(k): str(v) for k, v in parsed.items()}
            tags: dict[str, str] = {}
            for item in text.split(","):
                item = item.strip()
                if not item:
                    continue
                key, sep, val = item.partition(":")
                if not sep:
                    raise ValueError(f"Invalid tag {item!r}, expected key:value")
                tags[key.strip()] = val.strip()
            return tags
        raise ValueError("tags must be a mapping or a 'key:value,...' string")

    @field_validator("max_retries", mode="before")
    @classmethod
    def _lenient_max_retries(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                diagnostics.warn(
                    "settings",
                    "invalid max_retries, using default",
                    value=value,
                    default=DEFAULT_MAX_RETRIES,
                )
                return DEFAULT_MAX_RETRIES
        return value

    @model_validator(mode="after")
    def _check_limits(self) -> HookSettings:
        # A maximal line must fit in a payload on its own: "[" + line + "]"
        if self.max_line_size + 2 > self.max_content_size:
            raise ValueError("max_line_size + 2 must not exceed max_content_size")
        if self.retry_max_delay < self.retry_base_delay:
            raise ValueError("retry_max_delay must be >= retry_base_delay")
        return self

    @property
    def intake_endpoint(self) -> str:
        """Base URL of the intake host, before ``BASE_PATH``."""
        return self.endpoint or REGION_ENDPOINTS[self.region]

    def resolved_tags(self) -> list[str]:
        """``key:value`` tags sent as ``ddtags``, in a stable order."""
        tags = [f"{key}:{value}" for key, value in self.tags.items()]
        legacy = {
            "environment": self.environment,
            "application": self.application,
            "maintainer": self.maintainer,
        }
        for key, value in legacy.items():
            if value and key not in self.tags:
                tags.append(f"{key}:{value}")
        if (
            self.maintainer
            and self.application
            and self.environment
            and "reference" not in self.tags
        ):
            tags.append(
                f"reference:{self.maintainer}.{self.application}."
                f"{self.service}.{self.environment}"
            )
        return tags


def load_settings(settings: HookSettings | None = None, **overrides: Any) -> HookSettings:
    """Resolve settings and enforce the required API key.

    Raises:
        ConfigurationError: If validation fails or no API key is available
    """
    try:
        if settings is None:
            settings = HookSettings(**overrides)
        elif overrides:
            merged = {**settings.model_dump(exclude_unset=True), **overrides}
            settings = HookSettings(**merged)
    except ValidationError as e:
        raise ConfigurationError("invalid datadog hook settings", cause=e) from e
    if not settings.api_key:
        raise ConfigurationError("apiKey not provided, cannot create datadog hook")
    return settings
