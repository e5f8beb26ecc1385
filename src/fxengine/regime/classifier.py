"""
Regime Classification Module

Assigns one discrete regime per fixing from the series analytics and two
per-index lookups (volatility bucket, manual override presence), and
collapses the per-point labels into contiguous segments for chart overlays.

Classification Logic (first match wins):
    1. Manual override on the date -> INTERVENTION
    2. |pct_delta| >= shock threshold -> SHOCK
    3. |trailing slope| >= drift threshold -> DRIFT
    4. Volatility bucket is low -> STABLE
    5. Else -> UNKNOWN
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from ..analytics.series import PointAnalytics, VolBucket, clamp_int


class RegimeType(Enum):
    """
    Regime classifications for a fixing series.

    Each regime describes the character of price action around a date.
    """

    STABLE = "stable"
    """Low volatility and no persistent directional change."""

    DRIFT = "drift"
    """Persistent directional change over the trailing window."""

    SHOCK = "shock"
    """Large day-over-day discontinuity."""

    INTERVENTION = "intervention"
    """Manual override recorded on the date."""

    UNKNOWN = "unknown"
    """Unable to classify due to insufficient data or elevated volatility."""

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class RegimePoint:
    """Regime assigned to a single point, with the reason behind it."""

    key: RegimeType
    label: str
    reason: str


@dataclass(frozen=True)
class RegimeSegment:
    """
    Maximal contiguous run of points sharing one regime.

    Attributes:
        key: Regime of every point in the run.
        label: Display label for the regime.
        from_idx: Index of the first point in the run.
        to_idx: Index of the last point in the run (inclusive).
    """

    key: RegimeType
    label: str
    from_idx: int
    to_idx: int

    @property
    def length(self) -> int:
        return self.to_idx - self.from_idx + 1


@dataclass
class RegimeOptions:
    """
    Options for classify_regimes.

    Attributes:
        slope_window: Trailing window used to compute slope in %/day (default: 14, range 7-60).
        drift_slope_abs_pct_per_day: Drift threshold in %/day (default: 0.06).
        shock_jump_threshold_pct: Shock threshold in percentage points (default: 5).
            Should match the analytics jump threshold.
    """

    slope_window: int = 14
    drift_slope_abs_pct_per_day: float = 0.06
    shock_jump_threshold_pct: float = 5.0

    def clamped(self) -> RegimeOptions:
        """Return a copy with every tunable forced into its valid range."""
        return RegimeOptions(
            slope_window=clamp_int(self.slope_window, 7, 60),
            drift_slope_abs_pct_per_day=max(0.0, float(self.drift_slope_abs_pct_per_day)),
            shock_jump_threshold_pct=max(0.0, float(self.shock_jump_threshold_pct)),
        )


VolBucketLookup = Callable[[int], VolBucket]
OverrideLookup = Callable[[int], bool]

# Share of the slope window that must hold valid returns.
MIN_SLOPE_COVERAGE = 0.6


def trailing_slope(
    analytics: Sequence[PointAnalytics],
    idx: int,
    window: int,
) -> float | None:
    """
    Mean pct_delta over the ``window`` points ending at ``idx``.

    Returns None when fewer than ``window`` points precede ``idx`` or when
    fewer than ceil(window * 0.6) of the points carry a finite pct_delta.
    """
    start = idx - window
    if start < 0:
        return None

    total = 0.0
    count = 0
    for i in range(start + 1, idx + 1):
        r = analytics[i].pct_delta
        if r is None or not math.isfinite(r):
            continue
        total += r
        count += 1

    if count < math.ceil(window * MIN_SLOPE_COVERAGE):
        return None
    return total / count


def _volatility_note(bucket: VolBucket) -> str:
    if bucket is VolBucket.HIGH:
        return "high volatility"
    if bucket is VolBucket.ELEVATED:
        return "elevated volatility"
    return "low volatility"


def _point(key: RegimeType, reason: str) -> RegimePoint:
    return RegimePoint(key=key, label=key.label, reason=reason)


def classify_regimes(
    analytics: Sequence[PointAnalytics],
    vol_bucket_by_idx: VolBucketLookup,
    has_manual_override_by_idx: OverrideLookup,
    options: RegimeOptions | None = None,
) -> list[RegimePoint]:
    """
    Classify each point of a series into a regime.

    Args:
        analytics: Output of compute_series_analytics.
        vol_bucket_by_idx: Volatility bucket for a point index.
        has_manual_override_by_idx: Whether a manual override exists for a point index.
        options: Slope window and thresholds. Out-of-range values are clamped.

    Returns:
        One RegimePoint per analytics entry, in the same order.
    """
    opts = (options or RegimeOptions()).clamped()
    regimes: list[RegimePoint] = []

    for idx, a in enumerate(analytics):
        if has_manual_override_by_idx(idx):
            regimes.append(_point(RegimeType.INTERVENTION, "Manual override recorded on this date."))
            continue

        pct = a.pct_delta
        if pct is not None and math.isfinite(pct) and abs(pct) >= opts.shock_jump_threshold_pct:
            regimes.append(_point(RegimeType.SHOCK, f"Large day-over-day move ({pct:.2f}%)."))
            continue

        slope = trailing_slope(analytics, idx, opts.slope_window)
        bucket = vol_bucket_by_idx(idx)

        if slope is not None and abs(slope) >= opts.drift_slope_abs_pct_per_day:
            regimes.append(
                _point(
                    RegimeType.DRIFT,
                    f"Persistent directional change (~{slope:.2f}%/day) "
                    f"with {_volatility_note(bucket)}.",
                )
            )
            continue

        if bucket is VolBucket.LOW:
            regimes.append(
                _point(
                    RegimeType.STABLE,
                    "Low volatility and no persistent directional change detected.",
                )
            )
        elif bucket is VolBucket.ELEVATED:
            regimes.append(
                _point(RegimeType.UNKNOWN, "Elevated volatility without a clear sustained drift signal.")
            )
        elif bucket is VolBucket.HIGH:
            regimes.append(
                _point(RegimeType.UNKNOWN, "High volatility without a clear sustained drift signal.")
            )
        else:
            regimes.append(_point(RegimeType.UNKNOWN, "Insufficient data to classify regime."))

    return regimes


def build_regime_segments(regimes: Sequence[RegimePoint]) -> list[RegimeSegment]:
    """
    Collapse per-point regimes into maximal contiguous segments.

    Args:
        regimes: Output of classify_regimes.

    Returns:
        Segments in index order; empty when ``regimes`` is empty.
    """
    if not regimes:
        return []

    segments: list[RegimeSegment] = []
    current = regimes[0]
    from_idx = 0

    for i in range(1, len(regimes)):
        if regimes[i].key is not current.key:
            segments.append(RegimeSegment(current.key, current.label, from_idx, i - 1))
            current = regimes[i]
            from_idx = i

    segments.append(RegimeSegment(current.key, current.label, from_idx, len(regimes) - 1))
    return segments
