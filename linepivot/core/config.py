"""Configuration for formatting, the image overlay and logging."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator

from .exceptions import ConfigurationError


class FormattingConfig(BaseModel):
    """Configuration for line-level formatting."""

    max_indent: int = Field(default=8, ge=0, description="Deepest indent level")
    header_levels: int = Field(default=6, ge=1, description="Number of header levels")
    line_heights: list[str] = Field(
        default=["1", "1.15", "1.5", "2", "2.5", "3"],
        description="Allowed line-height tokens",
    )
    marker_style: str = Field(
        default="attribute",
        description="How list markers are stored (attribute or inline)",
    )

    @field_validator("marker_style")
    @classmethod
    def validate_marker_style(cls, value: str) -> str:
        value = value.lower()
        if value not in {"attribute", "inline"}:
            raise ValueError(f"marker_style must be 'attribute' or 'inline', got {value!r}")
        return value


class OverlayConfig(BaseModel):
    """Configuration for the image overlay bar."""

    bar_offset: int = Field(
        default=92, description="Distance from the image's right edge to the bar's left edge"
    )
    eligible_tags: list[str] = Field(
        default=["img"], description="Element tags the overlay can attach to"
    )
    actions: list[str] = Field(
        default=["download", "copy"], description="Buttons shown on the bar"
    )
    fetch_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for fetching image bytes"
    )

    @field_validator("actions")
    @classmethod
    def validate_actions(cls, value: list[str]) -> list[str]:
        unknown = set(value) - {"download", "copy"}
        if unknown:
            raise ValueError(f"Unknown overlay actions: {sorted(unknown)}")
        return value


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format (json or text)")
    output: str = Field(default="stderr", description="Log output (stderr, stdout or file)")
    file_path: str | None = Field(default=None, description="Log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, value: str) -> str:
        if value not in {"json", "text"}:
            raise ValueError(f"format must be 'json' or 'text', got {value!r}")
        return value


class EditorConfig(BaseModel):
    """Main LinePivot configuration."""

    formatting: FormattingConfig = Field(default_factory=FormattingConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str | None = None) -> EditorConfig:
        """Build a configuration, converting pydantic errors to ConfigurationError."""
        try:
            return cls(**data)
        except pydantic.ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e.error_count()} error(s)",
                config_file=source,
                context={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    @classmethod
    def from_file(cls, config_path: Path | str) -> EditorConfig:
        """Load configuration from a YAML file with a top-level ``linepivot`` key."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                config_file=str(config_path),
            )

        with open(config_path) as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Configuration file is not valid YAML: {e}",
                    config_file=str(config_path),
                ) from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                config_file=str(config_path),
            )
        return cls.from_dict(config_data.get("linepivot", {}), source=str(config_path))

    @classmethod
    def from_env(cls) -> EditorConfig:
        """Load configuration from environment variables."""
        data: dict[str, dict[str, Any]] = {"formatting": {}, "overlay": {}, "logging": {}}

        if level := os.getenv("LINEPIVOT_LOG_LEVEL"):
            data["logging"]["level"] = level
        if log_format := os.getenv("LINEPIVOT_LOG_FORMAT"):
            data["logging"]["format"] = log_format
        if marker_style := os.getenv("LINEPIVOT_MARKER_STYLE"):
            data["formatting"]["marker_style"] = marker_style
        if max_indent := os.getenv("LINEPIVOT_MAX_INDENT"):
            data["formatting"]["max_indent"] = max_indent
        if bar_offset := os.getenv("LINEPIVOT_OVERLAY_BAR_OFFSET"):
            data["overlay"]["bar_offset"] = bar_offset
        if timeout := os.getenv("LINEPIVOT_FETCH_TIMEOUT"):
            data["overlay"]["fetch_timeout"] = timeout

        return cls.from_dict(data, source="environment")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()


# Global configuration instance
_config: EditorConfig | None = None


def get_config() -> EditorConfig:
    """Get the global configuration."""
    global _config
    if _config is None:
        _config = EditorConfig.from_env()
    return _config


def set_config(config: EditorConfig | None) -> None:
    """Set (or with None, reset) the global configuration."""
    global _config
    _config = config


def load_config(config_path: Path | str | None = None) -> EditorConfig:
    """Load and set the global configuration."""
    if config_path:
        config = EditorConfig.from_file(config_path)
    else:
        config = EditorConfig.from_env()
    set_config(config)
    return config
