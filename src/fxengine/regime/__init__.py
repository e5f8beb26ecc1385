"""Regime classification module."""

from .classifier import (
    RegimeOptions,
    RegimePoint,
    RegimeSegment,
    RegimeType,
    build_regime_segments,
    classify_regimes,
    trailing_slope,
)

__all__ = [
    "RegimeOptions",
    "RegimePoint",
    "RegimeSegment",
    "RegimeType",
    "build_regime_segments",
    "classify_regimes",
    "trailing_slope",
]
