"""
Confidence Scoring Module

Deterministic, explainable confidence verdict for each fixing.

This scores data integrity and interpretability of the derived signals,
not real-world causality. The rule order is fixed; reordering changes the
verdict at rule boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from ..analytics.series import PointAnalytics, VolBucket
from ..regime.classifier import RegimePoint, RegimeType

# Points before this index lack trailing context for volatility and slope.
EARLY_HISTORY_POINTS = 7


class ConfidenceLevel(Enum):
    """Confidence levels, from most to least reliable."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ConfidenceInput:
    """
    Facts about one point used for scoring.

    Attributes:
        idx: Position of the point in the series.
        total: Number of points in the series.
        has_manual_fixing: A manual fixing (not necessarily an override) exists.
        has_manual_override: A manual override exists.
        is_jump: Jump flag from the series analytics.
        vol_bucket: Volatility bucket for the point.
        regime_key: Regime assigned to the point.
        has_vol_history: Rolling volatility is available for the point.
    """

    idx: int
    total: int
    has_manual_fixing: bool
    has_manual_override: bool
    is_jump: bool
    vol_bucket: VolBucket
    regime_key: RegimeType
    has_vol_history: bool


@dataclass
class ConfidenceResult:
    """Confidence verdict with diagnostic reasons."""

    level: ConfidenceLevel
    label: str
    reasons: list[str] = field(default_factory=list)


def _result(level: ConfidenceLevel, reasons: list[str]) -> ConfidenceResult:
    return ConfidenceResult(level=level, label=level.label, reasons=reasons)


def score_confidence(inp: ConfidenceInput) -> ConfidenceResult:
    """
    Score the confidence of a single point.

    Args:
        inp: Facts about the point.

    Returns:
        ConfidenceResult with level, display label and reasons.
    """
    reasons: list[str] = []

    early = inp.idx < EARLY_HISTORY_POINTS
    if early:
        reasons.append("Limited trailing history for analytics.")

    # A deliberate override is always low confidence.
    if inp.has_manual_override:
        reasons.append("Manual override recorded on this date.")
        return _result(ConfidenceLevel.LOW, reasons)

    if inp.has_manual_fixing:
        reasons.append("Manual fixing recorded on this date.")
    if inp.is_jump:
        reasons.append("Large day-over-day move detected (discontinuity).")
    if not inp.has_vol_history:
        reasons.append("Insufficient volatility history.")
    if inp.vol_bucket is VolBucket.HIGH:
        reasons.append("High volatility.")
    if inp.vol_bucket is VolBucket.ELEVATED:
        reasons.append("Elevated volatility.")
    if inp.regime_key is RegimeType.UNKNOWN:
        reasons.append("Regime classification uncertain.")

    high_vol = inp.vol_bucket is VolBucket.HIGH
    high_or_elevated = inp.vol_bucket in (VolBucket.HIGH, VolBucket.ELEVATED)
    unknown_regime = inp.regime_key is RegimeType.UNKNOWN

    if (
        (inp.is_jump and high_vol)
        or (inp.has_manual_fixing and high_vol)
        or (inp.is_jump and unknown_regime and high_or_elevated)
    ):
        return _result(ConfidenceLevel.LOW, reasons)

    if (
        inp.has_manual_fixing
        or high_or_elevated
        or unknown_regime
        or inp.is_jump
        or early
        or not inp.has_vol_history
    ):
        return _result(ConfidenceLevel.MEDIUM, reasons)

    reasons.append("Stable analytics profile (no override, low volatility, no discontinuity).")
    return _result(ConfidenceLevel.HIGH, reasons)


def score_series_confidence(
    analytics: Sequence[PointAnalytics],
    regimes: Sequence[RegimePoint],
    vol_bucket_by_idx: Callable[[int], VolBucket],
    has_manual_fixing_by_idx: Callable[[int], bool],
    has_manual_override_by_idx: Callable[[int], bool],
) -> list[ConfidenceResult]:
    """
    Score every point of a series.

    ``analytics`` and ``regimes`` must be positionally parallel.
    """
    total = len(analytics)
    return [
        score_confidence(
            ConfidenceInput(
                idx=idx,
                total=total,
                has_manual_fixing=has_manual_fixing_by_idx(idx),
                has_manual_override=has_manual_override_by_idx(idx),
                is_jump=a.is_jump,
                vol_bucket=vol_bucket_by_idx(idx),
                regime_key=regimes[idx].key,
                has_vol_history=a.vol_pct is not None,
            )
        )
        for idx, a in enumerate(analytics)
    ]
