"""
Pipeline Module

Runs series analytics, regime classification and confidence scoring for one
currency pair over one history window, and packages the positionally
aligned results for chart overlays and commentary requests.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, Field, field_validator

from .analytics.series import (
    PointAnalytics,
    SeriesPoint,
    VolBucket,
    bucket_vol_pct,
    compute_series_analytics,
    format_signed,
    is_sorted_by_date,
)
from .config import PipelineConfig
from .confidence.scoring import ConfidenceResult, score_series_confidence
from .data.fixings import (
    CurrencyPair,
    ManualAnnotation,
    ManualFixingBook,
    build_effective_series,
    parse_pair,
    select_window,
)
from .regime.classifier import (
    RegimePoint,
    RegimeSegment,
    build_regime_segments,
    classify_regimes,
)

logger = logging.getLogger(__name__)

MAX_CONFIDENCE_REASONS = 8


class SeriesMode(str, Enum):
    """Which series the analytics run on."""

    OFFICIAL = "official"
    EFFECTIVE = "effective"
    BOTH = "both"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass
class PipelineResult:
    """
    Positionally aligned pipeline output for one series.

    Attributes:
        pair: Currency pair the series belongs to.
        mode: Series mode the analytics were computed on.
        points: Input series (effective series when mode is not OFFICIAL).
        official: Official series before overrides were applied.
        book: Manual annotations keyed by date.
        analytics: Per-point analytics.
        vol_buckets: Per-point volatility bucket.
        regimes: Per-point regime.
        segments: Contiguous regime runs.
        confidence: Per-point confidence verdict.
    """

    pair: CurrencyPair
    mode: SeriesMode
    points: list[SeriesPoint]
    official: list[SeriesPoint]
    book: ManualFixingBook
    analytics: list[PointAnalytics] = field(default_factory=list)
    vol_buckets: list[VolBucket] = field(default_factory=list)
    regimes: list[RegimePoint] = field(default_factory=list)
    segments: list[RegimeSegment] = field(default_factory=list)
    confidence: list[ConfidenceResult] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def index_of(self, d: date) -> int | None:
        """Index of the point on date ``d``, or None."""
        for idx, p in enumerate(self.points):
            if p.date == d:
                return idx
        return None

    def manual_label(self, idx: int) -> str:
        annotation = self.book.get(self.points[idx].date)
        return annotation.manual_label if annotation is not None else "None"

    def point_summary(self, idx: int) -> dict[str, Any]:
        """Scalar summary fields for one point."""
        p = self.points[idx]
        a = self.analytics[idx]
        regime = self.regimes[idx]
        conf = self.confidence[idx]
        return {
            "date": p.date.isoformat(),
            "mid": p.mid,
            "delta": a.delta,
            "pct_delta": a.pct_delta,
            "vol_pct": a.vol_pct,
            "vol_label": self.vol_buckets[idx].label,
            "is_jump": a.is_jump,
            "flat_run": a.flat_run,
            "regime": regime.key.value,
            "regime_label": regime.label,
            "regime_reason": regime.reason,
            "confidence": conf.level.value,
            "confidence_label": conf.label,
            "confidence_reasons": list(conf.reasons),
            "manual": self.manual_label(idx),
        }

    def to_records(self) -> list[dict[str, Any]]:
        return [self.point_summary(idx) for idx in range(len(self.points))]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per point; confidence reasons are joined with ' | '."""
        records = self.to_records()
        for r in records:
            r["confidence_reasons"] = " | ".join(r["confidence_reasons"])
        columns = [
            "date", "mid", "delta", "pct_delta", "vol_pct", "vol_label", "is_jump",
            "flat_run", "regime", "regime_label", "regime_reason", "confidence",
            "confidence_label", "confidence_reasons", "manual",
        ]
        return pd.DataFrame(records, columns=columns)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "pair": self.pair.code,
            "display_pair": self.pair.label,
            "mode": self.mode.value,
            "min_date": self.points[0].date.isoformat() if self.points else None,
            "max_date": self.points[-1].date.isoformat() if self.points else None,
            "points": self.to_records(),
            "segments": [
                {
                    "key": s.key.value,
                    "label": s.label,
                    "from_idx": s.from_idx,
                    "to_idx": s.to_idx,
                }
                for s in self.segments
            ],
            "manual_fixings": [
                {
                    "id": m.id,
                    "date": m.date.isoformat(),
                    "mid": m.mid,
                    "is_official": m.is_official,
                    "is_manual_override": m.is_manual_override,
                    "notes": m.notes,
                    "created_at": m.created_at.isoformat() if m.created_at else None,
                    "created_by": m.created_by,
                }
                for m in self.book.annotations()
            ],
        }

    def generate_report(self) -> str:
        """Generate a text report of the regime segments and latest point."""
        lines = [
            "=" * 60,
            f"FIXING ANALYTICS: {self.pair.label} ({self.mode.label})",
            "=" * 60,
        ]
        if self.is_empty:
            lines.append("No fixings in the selected window.")
            return "\n".join(lines)

        lines.extend([
            f"Period: {self.points[0].date.isoformat()} to {self.points[-1].date.isoformat()}",
            f"Points: {len(self.points)}",
            f"Manual fixings: {len(self.book)}",
            "",
            "REGIME SEGMENTS",
            "-" * 40,
        ])
        for s in self.segments:
            start = self.points[s.from_idx].date.isoformat()
            end = self.points[s.to_idx].date.isoformat()
            lines.append(f"{start} .. {end}  {s.label:<13} ({s.length} days)")

        last = self.point_summary(len(self.points) - 1)
        lines.extend([
            "",
            "LATEST POINT",
            "-" * 40,
            f"Date:        {last['date']}",
            f"Mid:         {last['mid']:,.4f}",
            f"Change:      {_fmt_signed(last['pct_delta'], '%')}",
            f"Volatility:  {_fmt_optional(last['vol_pct'], '%')} ({last['vol_label']})",
            f"Regime:      {last['regime_label']} - {last['regime_reason']}",
            f"Confidence:  {last['confidence_label']}",
        ])
        for reason in last["confidence_reasons"]:
            lines.append(f"  - {reason}")
        lines.append("=" * 60)
        return "\n".join(lines)


def _fmt_optional(value: float | None, suffix: str = "") -> str:
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{value:.2f}{suffix}"


def _fmt_signed(value: float | None, suffix: str = "") -> str:
    if value is None or not math.isfinite(value):
        return "n/a"
    return f"{format_signed(value)}{suffix}"


def run_pipeline(
    points: Sequence[SeriesPoint],
    annotations: Iterable[ManualAnnotation] | None = None,
    config: PipelineConfig | None = None,
    mode: SeriesMode = SeriesMode.OFFICIAL,
    pair: str | None = None,
) -> PipelineResult:
    """
    Run analytics, regime classification and confidence scoring.

    Args:
        points: Official series, ascending by date. Not re-sorted.
        annotations: Manual fixings for the same pair.
        config: Pipeline configuration. Defaults to PipelineConfig().
        mode: OFFICIAL analyses ``points`` as given; EFFECTIVE and BOTH
            analyse the series with manual overrides applied.
        pair: Pair code; defaults to the configured pair.

    Returns:
        PipelineResult with all per-point outputs aligned to the analysed series.
    """
    config = config or PipelineConfig()
    official = list(points)
    book = ManualFixingBook(annotations)

    if not is_sorted_by_date(official):
        logger.warning("Series is not sorted ascending by date; results follow input order")

    series = official if mode is SeriesMode.OFFICIAL else build_effective_series(official, book)

    analytics = compute_series_analytics(series, config.analytics.to_options())
    thresholds = config.vol_buckets.to_thresholds()
    vol_buckets = [bucket_vol_pct(a.vol_pct, thresholds) for a in analytics]

    def vol_bucket_by_idx(idx: int) -> VolBucket:
        return vol_buckets[idx]

    def has_fixing_by_idx(idx: int) -> bool:
        return book.has_fixing(series[idx].date)

    def has_override_by_idx(idx: int) -> bool:
        return book.is_override(series[idx].date)

    regimes = classify_regimes(
        analytics,
        vol_bucket_by_idx,
        has_override_by_idx,
        config.regime.to_options(),
    )
    confidence = score_series_confidence(
        analytics,
        regimes,
        vol_bucket_by_idx,
        has_fixing_by_idx,
        has_override_by_idx,
    )

    result = PipelineResult(
        pair=parse_pair(pair or config.pair),
        mode=mode,
        points=series,
        official=official,
        book=book,
        analytics=analytics,
        vol_buckets=vol_buckets,
        regimes=regimes,
        segments=build_regime_segments(regimes),
        confidence=confidence,
    )
    logger.debug(
        f"Pipeline for {result.pair.code}: {len(series)} points, "
        f"{len(book)} manual fixings, {len(result.segments)} regime segments"
    )
    return result


def run_window(
    points: Sequence[SeriesPoint],
    annotations: Iterable[ManualAnnotation] | None = None,
    config: PipelineConfig | None = None,
    mode: SeriesMode = SeriesMode.OFFICIAL,
    pair: str | None = None,
) -> PipelineResult:
    """Restrict the series to the configured window, then run the pipeline."""
    config = config or PipelineConfig()
    windowed = select_window(points, config.window)
    if windowed:
        min_date, max_date = windowed[0].date, windowed[-1].date
        annotations = [
            a for a in (annotations or ()) if min_date <= a.date <= max_date
        ]
    else:
        annotations = []
    return run_pipeline(windowed, annotations, config, mode=mode, pair=pair)


# ---------------------------------------------------------------------------
# Commentary request payload
# ---------------------------------------------------------------------------

def _round_or_none(value: Optional[float], digits: int) -> Optional[float]:
    """Round half up (ties toward +inf), unlike the built-in round."""
    if value is None or not math.isfinite(value):
        return None
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


class CommentaryRequest(BaseModel):
    """
    Summary payload for an external commentary service.

    The pipeline only builds this payload; it never calls the service.
    """
    kind: str = Field(default="point_summary", description="point_summary or official_vs_manual")
    pair_label: str = Field(default="—")
    date: str = Field(default="—")
    mid: float
    mode_label: str = Field(default="Both")

    delta: Optional[float] = None
    pct_delta: Optional[float] = None
    vol_pct: Optional[float] = None
    vol_label: Optional[str] = None

    regime_label: Optional[str] = None
    regime_reason: Optional[str] = None

    confidence_label: Optional[str] = None
    confidence_reasons: Optional[List[str]] = None

    manual_label: str = Field(default="None")

    official_mid: Optional[float] = None
    manual_mid: Optional[float] = None
    abs_diff: Optional[float] = None
    pct_diff: Optional[float] = None

    @field_validator("kind", mode="before")
    @classmethod
    def fallback_kind(cls, v: Any) -> str:
        return v if v in ("point_summary", "official_vs_manual") else "point_summary"

    @field_validator("mode_label", mode="before")
    @classmethod
    def fallback_mode(cls, v: Any) -> str:
        return v if v in ("Official", "Effective", "Both") else "Both"

    @field_validator("manual_label", mode="before")
    @classmethod
    def fallback_manual(cls, v: Any) -> str:
        return v if v in ("Manual override", "Manual fixing", "None") else "None"

    @field_validator("pair_label", "date", mode="before")
    @classmethod
    def clean_required_str(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return "—"

    @field_validator("vol_label", "regime_label", "regime_reason", "confidence_label", mode="before")
    @classmethod
    def clean_optional_str(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @field_validator(
        "delta", "pct_delta", "vol_pct", "official_mid", "manual_mid", "abs_diff", "pct_diff",
        mode="before",
    )
    @classmethod
    def finite_or_none(cls, v: Any) -> Optional[float]:
        try:
            n = float(v)
        except (TypeError, ValueError):
            return None
        return n if math.isfinite(n) else None

    @field_validator("confidence_reasons", mode="before")
    @classmethod
    def clamp_reasons(cls, v: Any) -> Optional[List[str]]:
        if not isinstance(v, (list, tuple)):
            return None
        out = [x.strip() for x in v if isinstance(x, str) and x.strip()]
        return out[:MAX_CONFIDENCE_REASONS] or None

    def stable_key(self) -> str:
        """Canonical cache key; mids rounded to 6 decimals, percentages to 2."""
        key = {
            "kind": self.kind,
            "pair": self.pair_label,
            "date": self.date,
            "mid": _round_or_none(self.mid, 6),
            "mode": self.mode_label,
            "vol_label": self.vol_label,
            "regime_label": self.regime_label,
            "confidence_label": self.confidence_label,
            "manual": self.manual_label,
            "pct_delta": _round_or_none(self.pct_delta, 2),
            "official_mid": _round_or_none(self.official_mid, 6),
            "manual_mid": _round_or_none(self.manual_mid, 6),
            "pct_diff": _round_or_none(self.pct_diff, 2),
        }
        return json.dumps(key, ensure_ascii=False)


def build_commentary_request(result: PipelineResult, idx: int) -> CommentaryRequest:
    """Build the point-summary payload for point ``idx`` of a pipeline result."""
    s = result.point_summary(idx)
    return CommentaryRequest(
        kind="point_summary",
        pair_label=result.pair.label,
        date=s["date"],
        mid=s["mid"],
        mode_label=result.mode.label,
        delta=s["delta"],
        pct_delta=s["pct_delta"],
        vol_pct=s["vol_pct"],
        vol_label=s["vol_label"],
        regime_label=s["regime_label"],
        regime_reason=s["regime_reason"],
        confidence_label=s["confidence_label"],
        confidence_reasons=s["confidence_reasons"],
        manual_label=s["manual"],
    )


def build_comparison_request(result: PipelineResult, idx: int) -> CommentaryRequest | None:
    """
    Build the official-vs-manual payload for point ``idx``.

    Returns None when no manual fixing exists on that date.
    """
    d = result.points[idx].date
    annotation = result.book.get(d)
    if annotation is None:
        return None

    official_mid = next((p.mid for p in result.official if p.date == d), None)
    request = build_commentary_request(result, idx)

    abs_diff = pct_diff = None
    if official_mid is not None:
        abs_diff = annotation.mid - official_mid
        if official_mid != 0:
            pct_diff = abs_diff / official_mid * 100

    return request.model_copy(
        update={
            "kind": "official_vs_manual",
            "official_mid": official_mid,
            "manual_mid": annotation.mid,
            "abs_diff": abs_diff,
            "pct_diff": pct_diff,
        }
    )
