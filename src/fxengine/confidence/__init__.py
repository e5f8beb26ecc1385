"""Confidence scoring module."""

from .scoring import (
    ConfidenceInput,
    ConfidenceLevel,
    ConfidenceResult,
    EARLY_HISTORY_POINTS,
    score_confidence,
    score_series_confidence,
)

__all__ = [
    "ConfidenceInput",
    "ConfidenceLevel",
    "ConfidenceResult",
    "EARLY_HISTORY_POINTS",
    "score_confidence",
    "score_series_confidence",
]
