"""
Series Analytics Module

Computes deterministic per-point analytics for a daily FX fixing series:
day-over-day change, percentage return, rolling volatility, jump flags and
flat-run lengths.

Notes:
    - pct_delta is computed against the immediately preceding mid.
    - vol_pct is the population standard deviation of pct_delta over the
      last ``vol_window`` returns.
    - The computation is pure; identical input always yields identical output.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Sequence

import numpy as np


class VolBucket(Enum):
    """Coarse volatility classification."""

    LOW = "low"
    ELEVATED = "elevated"
    HIGH = "high"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class SeriesPoint:
    """A single fixing: calendar date and mid-rate."""

    date: date
    mid: float


@dataclass(frozen=True)
class PointAnalytics:
    """
    Derived analytics for one series point.

    Attributes:
        prev_mid: Previous mid (None for the first point).
        delta: Absolute day-over-day change (None for the first point).
        pct_delta: Percentage day-over-day change, e.g. 1.25 means +1.25%.
            None for the first point or when the previous mid is zero.
        vol_pct: Rolling standard deviation of pct_delta (None until enough returns).
        is_jump: True when |pct_delta| >= the jump threshold.
        flat_run: Length of the flat run ending at this point (0 means not flat).
    """

    prev_mid: float | None
    delta: float | None
    pct_delta: float | None
    vol_pct: float | None
    is_jump: bool
    flat_run: int


@dataclass
class AnalyticsOptions:
    """
    Options for compute_series_analytics.

    Attributes:
        vol_window: Rolling window length in returns, not points (default: 7, range 2-60).
        jump_threshold_pct: Jump threshold in percentage points (default: 5).
        flat_epsilon: Values within this epsilon of the prior value count as flat (default: 0).
    """

    vol_window: int = 7
    jump_threshold_pct: float = 5.0
    flat_epsilon: float = 0.0

    def clamped(self) -> AnalyticsOptions:
        """Return a copy with every tunable forced into its valid range."""
        return AnalyticsOptions(
            vol_window=clamp_int(self.vol_window, 2, 60),
            jump_threshold_pct=max(0.0, float(self.jump_threshold_pct)),
            flat_epsilon=max(0.0, float(self.flat_epsilon)),
        )


@dataclass
class VolBucketThresholds:
    """Upper bounds (exclusive) for the low and elevated volatility buckets."""

    low_below: float = 0.25
    elevated_below: float = 0.75


def clamp_int(value: float, lo: int, hi: int) -> int:
    """
    Truncate toward zero, then clamp into [lo, hi].

    Infinities clamp to the nearest bound; NaN maps to ``lo``.
    """
    value = float(value)
    if math.isnan(value):
        return lo
    if math.isinf(value):
        return hi if value > 0 else lo
    return max(lo, min(hi, int(value)))


def _population_std(values: Sequence[float]) -> float:
    """Population standard deviation, summed left to right."""
    if len(values) == 0:
        return 0.0
    arr = np.asarray(values, dtype=float)
    # cumsum accumulates in order; np.sum and np.std use pairwise summation
    mean = np.cumsum(arr)[-1] / len(arr)
    variance = np.cumsum((arr - mean) * (arr - mean))[-1] / len(arr)
    return float(np.sqrt(variance))


def compute_series_analytics(
    points: Sequence[SeriesPoint],
    options: AnalyticsOptions | None = None,
) -> list[PointAnalytics]:
    """
    Compute per-point analytics for an ascending fixing series.

    Args:
        points: Series sorted ascending by date. The order is not checked.
        options: Window and threshold options. Out-of-range values are clamped.

    Returns:
        One PointAnalytics per input point, in the same order.
    """
    opts = (options or AnalyticsOptions()).clamped()

    out: list[PointAnalytics] = []
    returns: list[float] = []  # finite pct_delta history
    flat_run = 0

    for i, cur in enumerate(points):
        prev = points[i - 1] if i > 0 else None

        prev_mid = prev.mid if prev is not None else None
        delta = cur.mid - prev.mid if prev is not None else None
        pct_delta = (delta / prev.mid) * 100 if prev is not None and prev.mid != 0 else None

        if prev is not None and abs(cur.mid - prev.mid) <= opts.flat_epsilon:
            flat_run += 1
        else:
            flat_run = 0

        if pct_delta is not None and math.isfinite(pct_delta):
            returns.append(pct_delta)

        vol_pct: float | None = None
        if len(returns) >= opts.vol_window:
            vol_pct = _population_std(returns[-opts.vol_window:])

        is_jump = pct_delta is not None and abs(pct_delta) >= opts.jump_threshold_pct

        out.append(
            PointAnalytics(
                prev_mid=prev_mid,
                delta=delta,
                pct_delta=pct_delta,
                vol_pct=vol_pct,
                is_jump=is_jump,
                flat_run=flat_run,
            )
        )

    return out


def bucket_vol_pct(
    vol_pct: float | None,
    thresholds: VolBucketThresholds | None = None,
) -> VolBucket:
    """Bucket a rolling volatility value into low / elevated / high / unknown."""
    t = thresholds or VolBucketThresholds()
    if vol_pct is None or not math.isfinite(vol_pct):
        return VolBucket.UNKNOWN
    if vol_pct < t.low_below:
        return VolBucket.LOW
    if vol_pct < t.elevated_below:
        return VolBucket.ELEVATED
    return VolBucket.HIGH


def format_signed(value: float, decimals: int = 2) -> str:
    """Format a number with an explicit sign, using U+2212 for negatives."""
    sign = "+" if value > 0 else "−" if value < 0 else ""
    return f"{sign}{abs(value):.{decimals}f}"


def is_sorted_by_date(points: Sequence[SeriesPoint]) -> bool:
    """Check that points are in non-decreasing date order."""
    return all(points[i - 1].date <= points[i].date for i in range(1, len(points)))
