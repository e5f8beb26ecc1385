"""Series analytics module."""

from .series import (
    AnalyticsOptions,
    PointAnalytics,
    SeriesPoint,
    VolBucket,
    VolBucketThresholds,
    bucket_vol_pct,
    compute_series_analytics,
    format_signed,
    is_sorted_by_date,
)

__all__ = [
    "AnalyticsOptions",
    "PointAnalytics",
    "SeriesPoint",
    "VolBucket",
    "VolBucketThresholds",
    "bucket_vol_pct",
    "compute_series_analytics",
    "format_signed",
    "is_sorted_by_date",
]
