"""
FX Fixing Engine

Deterministic analytics for a foreign-exchange fixing series:
- Day-over-day change, rolling volatility, jump and flat-run detection
- Priority-ordered regime classification with contiguous segments
- Explainable per-day confidence scoring
- Manual fixing / override handling and commentary request payloads
"""

from .analytics.series import (
    AnalyticsOptions,
    PointAnalytics,
    SeriesPoint,
    VolBucket,
    VolBucketThresholds,
    bucket_vol_pct,
    compute_series_analytics,
    format_signed,
)
from .regime.classifier import (
    RegimeOptions,
    RegimePoint,
    RegimeSegment,
    RegimeType,
    build_regime_segments,
    classify_regimes,
)
from .confidence.scoring import (
    ConfidenceInput,
    ConfidenceLevel,
    ConfidenceResult,
    score_confidence,
    score_series_confidence,
)
from .data.fixings import (
    CurrencyPair,
    ManualAnnotation,
    ManualFixingBook,
    WindowKey,
    build_effective_series,
    load_annotations,
    load_series,
    parse_pair,
    select_window,
)
from .config import PipelineConfig
from .pipeline import (
    CommentaryRequest,
    PipelineResult,
    SeriesMode,
    build_commentary_request,
    build_comparison_request,
    run_pipeline,
    run_window,
)

__version__ = "1.0.0"

__all__ = [
    # Analytics
    "AnalyticsOptions",
    "PointAnalytics",
    "SeriesPoint",
    "VolBucket",
    "VolBucketThresholds",
    "bucket_vol_pct",
    "compute_series_analytics",
    "format_signed",
    # Regime
    "RegimeOptions",
    "RegimePoint",
    "RegimeSegment",
    "RegimeType",
    "build_regime_segments",
    "classify_regimes",
    # Confidence
    "ConfidenceInput",
    "ConfidenceLevel",
    "ConfidenceResult",
    "score_confidence",
    "score_series_confidence",
    # Data
    "CurrencyPair",
    "ManualAnnotation",
    "ManualFixingBook",
    "WindowKey",
    "build_effective_series",
    "load_annotations",
    "load_series",
    "parse_pair",
    "select_window",
    # Pipeline
    "PipelineConfig",
    "CommentaryRequest",
    "PipelineResult",
    "SeriesMode",
    "build_commentary_request",
    "build_comparison_request",
    "run_pipeline",
    "run_window",
]
