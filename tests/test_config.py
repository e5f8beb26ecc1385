"""
Tests for the configuration module.

This module tests:
- Default values
- Silent clamping of numeric tunables
- YAML loading with environment variable substitution
- Logging configuration validation
"""

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from fxengine.config import (
    AnalyticsConfig,
    JsonLogFormatter,
    LoggingConfig,
    PipelineConfig,
    RegimeConfig,
    VolBucketConfig,
)
from fxengine.data.fixings import WindowKey


# =============================================================================
# Test Defaults and Clamping
# =============================================================================

class TestDefaults:
    """Tests for default configuration values."""

    def test_pipeline_defaults(self):
        config = PipelineConfig()

        assert config.pair == "SSPUSD"
        assert config.window is WindowKey.D90
        assert config.analytics.vol_window == 7
        assert config.analytics.jump_threshold_pct == 5.0
        assert config.analytics.flat_epsilon == 0.0
        assert config.vol_buckets.low_below == 0.25
        assert config.vol_buckets.elevated_below == 0.75
        assert config.regime.slope_window == 14
        assert config.regime.drift_slope_abs_pct_per_day == 0.06
        assert config.regime.shock_jump_threshold_pct == 5.0
        assert config.logging.level == "WARNING"

    def test_to_options(self):
        opts = AnalyticsConfig(vol_window=10, jump_threshold_pct=3).to_options()
        assert opts.vol_window == 10
        assert opts.jump_threshold_pct == 3.0

        regime = RegimeConfig(slope_window=21).to_options()
        assert regime.slope_window == 21


class TestClamping:
    """Tests for out-of-range values being clamped instead of rejected."""

    @pytest.mark.parametrize("raw,expected", [
        (1, 2),
        (500, 60),
        (7.9, 7),
        ("10", 10),
        (float("inf"), 60),
        (float("nan"), 2),
    ])
    def test_vol_window(self, raw, expected):
        assert AnalyticsConfig(vol_window=raw).vol_window == expected

    @pytest.mark.parametrize("raw,expected", [(1, 7), (100, 60), (30, 30), (float("inf"), 60)])
    def test_slope_window(self, raw, expected):
        assert RegimeConfig(slope_window=raw).slope_window == expected

    def test_negative_thresholds_floor_at_zero(self):
        analytics = AnalyticsConfig(jump_threshold_pct=-2, flat_epsilon=-0.1)
        regime = RegimeConfig(drift_slope_abs_pct_per_day=-1, shock_jump_threshold_pct=-5)

        assert analytics.jump_threshold_pct == 0.0
        assert analytics.flat_epsilon == 0.0
        assert regime.drift_slope_abs_pct_per_day == 0.0
        assert regime.shock_jump_threshold_pct == 0.0

    def test_vol_bucket_ordering(self):
        config = VolBucketConfig(low_below=1.0, elevated_below=0.5)
        assert config.elevated_below == 1.0

    def test_invalid_window_falls_back(self):
        assert PipelineConfig(window="7d").window is WindowKey.D90
        assert PipelineConfig(window="365D").window is WindowKey.D365

    def test_non_numeric_window_rejected(self):
        with pytest.raises(ValidationError):
            AnalyticsConfig(vol_window="abc")


# =============================================================================
# Test YAML Loading
# =============================================================================

class TestYamlLoading:
    """Tests for from_yaml / to_yaml."""

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "pair: SSPKES\n"
            "window: 30d\n"
            "analytics:\n"
            "  vol_window: 200\n"
            "regime:\n"
            "  slope_window: 21\n"
        )
        config = PipelineConfig.from_yaml(path)

        assert config.pair == "SSPKES"
        assert config.window is WindowKey.D30
        assert config.analytics.vol_window == 60
        assert config.regime.slope_window == 21

    def test_infinite_windows_from_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "analytics:\n"
            "  vol_window: .inf\n"
            "regime:\n"
            "  slope_window: -.inf\n"
        )
        config = PipelineConfig.from_yaml(path)

        assert config.analytics.vol_window == 60
        assert config.regime.slope_window == 7

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FXENGINE_PAIR", "SSPEUR")
        path = tmp_path / "engine.yaml"
        path.write_text("pair: ${FXENGINE_PAIR}\n")

        assert PipelineConfig.from_yaml(path).pair == "SSPEUR"
        assert PipelineConfig.from_yaml(path, env_override=False).pair == "${FXENGINE_PAIR}"

    def test_unset_env_var_left_in_place(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FXENGINE_UNSET", raising=False)
        path = tmp_path / "engine.yaml"
        path.write_text("name: ${FXENGINE_UNSET}\n")

        assert PipelineConfig.from_yaml(path).name == "${FXENGINE_UNSET}"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert PipelineConfig.from_yaml(path) == PipelineConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PipelineConfig.from_yaml(tmp_path / "missing.yaml")

    def test_round_trip(self, tmp_path):
        original = PipelineConfig(
            pair="SSPKES",
            window="all",
            analytics=AnalyticsConfig(vol_window=10),
            logging=LoggingConfig(level="info", format="json"),
        )
        path = tmp_path / "out" / "engine.yaml"
        original.to_yaml(path)

        assert PipelineConfig.from_yaml(path) == original


# =============================================================================
# Test Logging Configuration
# =============================================================================

class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_unknown_format_rejected(self):
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_configure_installs_handler(self, tmp_path):
        log_file = tmp_path / "engine.log"
        LoggingConfig(level="INFO", format="json", file_path=log_file).configure()

        package_logger = logging.getLogger("fxengine")
        try:
            assert package_logger.level == logging.INFO
            assert len(package_logger.handlers) == 1
            logging.getLogger("fxengine.pipeline").info("hello")
            package_logger.handlers[0].flush()
            assert '"message": "hello"' in log_file.read_text()
        finally:
            for handler in package_logger.handlers:
                handler.close()
            package_logger.handlers.clear()
            package_logger.setLevel(logging.NOTSET)

    def test_json_formatter(self):
        record = logging.LogRecord(
            "fxengine.pipeline", logging.WARNING, __file__, 1, "Series has %d points", (3,), None
        )
        payload = json.loads(JsonLogFormatter().format(record))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "fxengine.pipeline"
        assert payload["message"] == "Series has 3 points"
        assert "exc_info" not in payload

    def test_json_formatter_includes_exception(self):
        try:
            raise ValueError("bad fixing")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            "fxengine", logging.ERROR, __file__, 1, "failed", (), exc_info
        )
        payload = json.loads(JsonLogFormatter().format(record))

        assert "ValueError: bad fixing" in payload["exc_info"]
