"""
Configuration models for logtrunc using Pydantic v2 Settings.

Settings are read from the environment (``LOGTRUNC_`` prefix, ``__`` as the
nested delimiter) or passed explicitly. Per-plugin options live under
``filter_config`` keyed by plugin name and are validated by each plugin's own
config model at construction time.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (  # type: ignore[import-not-found]
    BaseSettings,
    SettingsConfigDict,
)

# Keep explicit version to allow schema gating and forward migrations later
LATEST_CONFIG_SCHEMA_VERSION = "1.0"


class CoreSettings(BaseModel):
    """Pipeline-wide toggles.

    Keep this minimal and stable; prefer plugin-specific settings elsewhere.
    """

    enable_metrics: bool = Field(
        default=False,
        description="Enable Prometheus-compatible metrics",
    )
    # Structured internal diagnostics for non-fatal errors (filters/loader)
    internal_logging_enabled: bool = Field(
        default=False,
        description="Emit DEBUG/WARN diagnostics for internal events",
    )
    filters: list[str] = Field(
        default_factory=list,
        description="Ordered list of filter plugin names to apply",
    )
    plugin_validation_mode: Literal["disabled", "warn", "strict"] = Field(
        default="disabled",
        description="Protocol validation applied to loaded plugins",
    )

    @field_validator("filters")
    @classmethod
    def _strip_filter_names(cls, value: list[str]) -> list[str]:
        names = [v.strip() for v in value]
        if any(not n for n in names):
            raise ValueError("filter names must not be empty")
        return names


class Settings(BaseSettings):
    """Top-level configuration model with versioning and core settings."""

    schema_version: str = Field(default=LATEST_CONFIG_SCHEMA_VERSION)

    core: CoreSettings = Field(default_factory=CoreSettings)
    filter_config: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-filter configuration keyed by plugin name",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOGTRUNC_",
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
