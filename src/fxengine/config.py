"""
Configuration schema for the FX fixing engine.

This module defines the configuration hierarchy using Pydantic for
validation. Configuration can be loaded from YAML files with environment
variable overrides.

Numeric tunables are clamped into their valid range rather than rejected,
so a stale or hand-edited config never stops the pipeline.

Example:
    config = PipelineConfig.from_yaml("config/engine.yaml")
    print(config.analytics.vol_window)
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
import yaml

from .analytics.series import AnalyticsOptions, VolBucketThresholds, clamp_int
from .data.fixings import WindowKey, parse_window
from .regime.classifier import RegimeOptions


def _floor_zero(value: float) -> float:
    return max(0.0, float(value))


# ---------------------------------------------------------------------------
# Pipeline Stage Configuration
# ---------------------------------------------------------------------------

class AnalyticsConfig(BaseModel):
    """Series analytics configuration."""
    vol_window: int = Field(default=7, description="Rolling window in returns, clamped to [2, 60]")
    jump_threshold_pct: float = Field(default=5.0, description="Jump threshold in percentage points")
    flat_epsilon: float = Field(default=0.0, description="Flat-run tolerance")

    @field_validator("vol_window", mode="before")
    @classmethod
    def clamp_vol_window(cls, v: Union[int, float, str]) -> int:
        return clamp_int(float(v), 2, 60)

    @field_validator("jump_threshold_pct", "flat_epsilon")
    @classmethod
    def clamp_non_negative(cls, v: float) -> float:
        return _floor_zero(v)

    def to_options(self) -> AnalyticsOptions:
        return AnalyticsOptions(
            vol_window=self.vol_window,
            jump_threshold_pct=self.jump_threshold_pct,
            flat_epsilon=self.flat_epsilon,
        )


class VolBucketConfig(BaseModel):
    """Volatility bucket thresholds (percentage points)."""
    low_below: float = Field(default=0.25)
    elevated_below: float = Field(default=0.75)

    @field_validator("low_below", "elevated_below")
    @classmethod
    def clamp_non_negative(cls, v: float) -> float:
        return _floor_zero(v)

    @model_validator(mode="after")
    def order_thresholds(self) -> "VolBucketConfig":
        """Keep the elevated bound at or above the low bound."""
        if self.elevated_below < self.low_below:
            self.elevated_below = self.low_below
        return self

    def to_thresholds(self) -> VolBucketThresholds:
        return VolBucketThresholds(low_below=self.low_below, elevated_below=self.elevated_below)


class RegimeConfig(BaseModel):
    """Regime classifier configuration."""
    slope_window: int = Field(default=14, description="Trailing slope window, clamped to [7, 60]")
    drift_slope_abs_pct_per_day: float = Field(default=0.06, description="Drift threshold in %/day")
    shock_jump_threshold_pct: float = Field(default=5.0, description="Shock threshold in percentage points")

    @field_validator("slope_window", mode="before")
    @classmethod
    def clamp_slope_window(cls, v: Union[int, float, str]) -> int:
        return clamp_int(float(v), 7, 60)

    @field_validator("drift_slope_abs_pct_per_day", "shock_jump_threshold_pct")
    @classmethod
    def clamp_non_negative(cls, v: float) -> float:
        return _floor_zero(v)

    def to_options(self) -> RegimeOptions:
        return RegimeOptions(
            slope_window=self.slope_window,
            drift_slope_abs_pct_per_day=self.drift_slope_abs_pct_per_day,
            shock_jump_threshold_pct=self.shock_jump_threshold_pct,
        )


# ---------------------------------------------------------------------------
# Logging Configuration
# ---------------------------------------------------------------------------

class JsonLogFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="WARNING")
    format: str = Field(default="text", description="json or text")
    file_path: Optional[Path] = None

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("format must be 'json' or 'text'")
        return v

    def configure(self) -> None:
        """Install a handler on the package logger according to this config."""
        handler: logging.Handler
        if self.file_path is not None:
            handler = logging.FileHandler(self.file_path)
        else:
            handler = logging.StreamHandler()

        if self.format == "json":
            handler.setFormatter(JsonLogFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )

        package_logger = logging.getLogger("fxengine")
        package_logger.handlers.clear()
        package_logger.addHandler(handler)
        package_logger.setLevel(self.level)


# ---------------------------------------------------------------------------
# Main Configuration
# ---------------------------------------------------------------------------

class PipelineConfig(BaseModel):
    """
    Root configuration for the fixing engine.

    Contains the tunables of every pipeline stage plus the default pair and
    history window. It can be loaded from YAML files with environment
    variable substitution.

    Example:
        config = PipelineConfig.from_yaml("config/engine.yaml")
    """

    name: str = Field(default="fx_fixing_engine")
    pair: str = Field(default="SSPUSD")
    window: WindowKey = WindowKey.D90

    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    vol_buckets: VolBucketConfig = Field(default_factory=VolBucketConfig)
    regime: RegimeConfig = Field(default_factory=RegimeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("window", mode="before")
    @classmethod
    def fallback_window(cls, v: object) -> WindowKey:
        if isinstance(v, WindowKey):
            return v
        return parse_window(str(v))

    @classmethod
    def from_yaml(cls, path: Union[str, Path], env_override: bool = True) -> "PipelineConfig":
        """
        Load configuration from a YAML file with optional environment variable overrides.

        Environment variables are substituted using ${VAR_NAME} syntax in the YAML file.

        Args:
            path: Path to the YAML configuration file
            env_override: Whether to substitute environment variables

        Returns:
            Validated PipelineConfig instance

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            ValidationError: If the configuration is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            content = f.read()

        if env_override:
            content = cls._substitute_env_vars(content)

        data = yaml.safe_load(content) or {}
        return cls.model_validate(data)

    @staticmethod
    def _substitute_env_vars(content: str) -> str:
        """Substitute ${VAR_NAME} patterns with environment variable values."""
        pattern = r'\$\{(\w+)\}'

        def replace(match: re.Match) -> str:
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))

        return re.sub(pattern, replace, content)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """
        Save configuration to a YAML file.

        Args:
            path: Destination path for the YAML file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
