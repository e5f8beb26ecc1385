"""
Fixings Data Module

Containers and loaders for official fixing history and manual annotations.

Provides:
- Currency pair parsing anchored on the SSP base currency
- History window selection (15d / 30d / 90d / 365d / all)
- A date-keyed book of manual fixings and overrides
- Effective series construction (manual overrides replace official mids)
- CSV / JSON loaders backed by pandas
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Sequence

import pandas as pd

from ..analytics.series import SeriesPoint

logger = logging.getLogger(__name__)

ANCHOR_CURRENCY = "SSP"

# Column aliases accepted by the loaders (database export names on the right).
SERIES_COLUMNS = {"as_of_date": "date", "rate_mid": "mid"}
ANNOTATION_COLUMNS = {
    "as_of_date": "date",
    "rate_mid": "mid",
    "created_email": "created_by",
}


@dataclass(frozen=True)
class CurrencyPair:
    """Currency pair stored with the anchor currency as base."""

    base: str
    quote: str

    @property
    def code(self) -> str:
        return f"{self.base}{self.quote}"

    @property
    def label(self) -> str:
        return f"{self.quote}/{self.base}"


def parse_pair(pair: str) -> CurrencyPair:
    """
    Parse a pair code such as "SSPUSD", "USD/SSP" or "usdssp".

    The anchor currency is always placed as base. Inputs with fewer than six
    letters fall back to USD/SSP.
    """
    clean = re.sub(r"[^A-Za-z]", "", pair or "").upper()
    if len(clean) < 6:
        return CurrencyPair(base=ANCHOR_CURRENCY, quote="USD")

    a, b = clean[:3], clean[3:6]
    if a == ANCHOR_CURRENCY:
        return CurrencyPair(base=ANCHOR_CURRENCY, quote=b)
    return CurrencyPair(base=ANCHOR_CURRENCY, quote=a)


class WindowKey(str, Enum):
    """History window selectable for a chart."""

    D15 = "15d"
    D30 = "30d"
    D90 = "90d"
    D365 = "365d"
    ALL = "all"

    @property
    def days(self) -> int | None:
        if self is WindowKey.ALL:
            return None
        return int(self.value[:-1])


def parse_window(raw: str | None) -> WindowKey:
    """Parse a window key, falling back to 90d for unknown values."""
    try:
        return WindowKey((raw or "").strip().lower())
    except ValueError:
        return WindowKey.D90


def _is_valid_mid(mid: Any) -> bool:
    if mid is None:
        return False
    try:
        return math.isfinite(float(mid))
    except (TypeError, ValueError):
        return False


def select_window(
    points: Sequence[SeriesPoint],
    window: WindowKey = WindowKey.D90,
) -> list[SeriesPoint]:
    """
    Restrict an ascending series to a trailing window.

    The window spans ``days`` calendar days ending at the latest point.
    Points with a missing or non-finite mid are dropped.
    """
    if not points:
        return []

    days = window.days
    min_date = points[0].date if days is None else points[-1].date - timedelta(days=days - 1)

    return [p for p in points if p.date >= min_date and _is_valid_mid(p.mid)]


@dataclass(frozen=True)
class ManualAnnotation:
    """
    Operator-entered fixing for a date.

    Attributes:
        date: Fixing date.
        mid: Manually entered mid-rate.
        is_official: Whether the operator marked it as official.
        is_manual_override: Whether it supersedes the official fixing.
        notes: Free-text notes.
        created_at: Creation timestamp.
        created_by: Creator identity (email).
        id: Record identifier.
    """

    date: date
    mid: float
    is_official: bool = False
    is_manual_override: bool = False
    notes: str | None = None
    created_at: datetime | None = None
    created_by: str | None = None
    id: str | None = None

    @property
    def manual_label(self) -> str:
        return "Manual override" if self.is_manual_override else "Manual fixing"


class ManualFixingBook:
    """
    Date-keyed lookup of manual annotations.

    When several annotations share a date, the last one added wins.

    Example:
        >>> book = ManualFixingBook(annotations)
        >>> book.is_override(date(2024, 3, 1))
        True
    """

    def __init__(self, annotations: Iterable[ManualAnnotation] | None = None) -> None:
        self._by_date: dict[date, ManualAnnotation] = {}
        for annotation in annotations or ():
            self.add(annotation)

    def __len__(self) -> int:
        return len(self._by_date)

    def __contains__(self, d: object) -> bool:
        return d in self._by_date

    def add(self, annotation: ManualAnnotation) -> None:
        if not _is_valid_mid(annotation.mid):
            logger.debug(f"Skipping manual fixing with invalid mid on {annotation.date}")
            return
        self._by_date[annotation.date] = annotation

    def get(self, d: date) -> ManualAnnotation | None:
        return self._by_date.get(d)

    def has_fixing(self, d: date) -> bool:
        return d in self._by_date

    def is_override(self, d: date) -> bool:
        annotation = self._by_date.get(d)
        return annotation is not None and annotation.is_manual_override

    def between(self, min_date: date, max_date: date) -> list[ManualAnnotation]:
        """Annotations within [min_date, max_date], ascending by date."""
        return [
            self._by_date[d]
            for d in sorted(self._by_date)
            if min_date <= d <= max_date
        ]

    def annotations(self) -> list[ManualAnnotation]:
        return [self._by_date[d] for d in sorted(self._by_date)]


def build_effective_series(
    official: Sequence[SeriesPoint],
    book: ManualFixingBook,
) -> list[SeriesPoint]:
    """Replace official mids with manual mids on override dates only."""
    effective: list[SeriesPoint] = []
    for p in official:
        annotation = book.get(p.date)
        if annotation is not None and annotation.is_manual_override:
            effective.append(SeriesPoint(date=p.date, mid=float(annotation.mid)))
        else:
            effective.append(p)
    return effective


# ---------------------------------------------------------------------------
# File loaders
# ---------------------------------------------------------------------------

def _read_frame(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix == ".json":
        return pd.read_json(path, orient="records")
    raise ValueError(f"Unsupported file type '{suffix}' for {path} (expected .csv or .json)")


def _require_columns(df: pd.DataFrame, required: list[str], path: str | Path) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns in {path}: {missing}")


def _optional_str(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y", "t")
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return False
    return bool(value)


def series_from_frame(df: pd.DataFrame) -> list[SeriesPoint]:
    """Convert a DataFrame with ``date`` and ``mid`` columns into sorted series points."""
    df = df.rename(columns=SERIES_COLUMNS)
    if df.empty:
        return []

    df = df.assign(
        date=pd.to_datetime(df["date"]).dt.date,
        mid=pd.to_numeric(df["mid"], errors="coerce"),
    )
    before = len(df)
    df = df[df["mid"].map(_is_valid_mid)].sort_values("date", kind="stable")
    if len(df) < before:
        logger.debug(f"Dropped {before - len(df)} rows with missing or non-finite mid")

    return [SeriesPoint(date=d, mid=float(m)) for d, m in zip(df["date"], df["mid"])]


def load_series(path: str | Path) -> list[SeriesPoint]:
    """
    Load a fixing series from CSV or JSON.

    Args:
        path: File with ``date`` and ``mid`` columns (``as_of_date`` and
            ``rate_mid`` are accepted as aliases).

    Returns:
        Series points sorted ascending by date.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file type is unsupported or columns are missing.
    """
    df = _read_frame(path).rename(columns=SERIES_COLUMNS)
    _require_columns(df, ["date", "mid"], path)
    points = series_from_frame(df)
    logger.info(f"Loaded {len(points)} fixings from {path}")
    return points


def annotations_from_frame(df: pd.DataFrame) -> list[ManualAnnotation]:
    """Convert a DataFrame of manual fixings into annotations."""
    df = df.rename(columns=ANNOTATION_COLUMNS)
    annotations: list[ManualAnnotation] = []

    for row in df.to_dict(orient="records"):
        mid = row.get("mid")
        if not _is_valid_mid(mid):
            continue
        created_at = pd.to_datetime(row.get("created_at"), errors="coerce", utc=True)
        annotations.append(
            ManualAnnotation(
                date=pd.to_datetime(row["date"]).date(),
                mid=float(mid),
                is_official=_as_bool(row.get("is_official")),
                is_manual_override=_as_bool(row.get("is_manual_override")),
                notes=_optional_str(row.get("notes")),
                created_at=None if pd.isna(created_at) else created_at.to_pydatetime(),
                created_by=_optional_str(row.get("created_by")),
                id=_optional_str(row.get("id")),
            )
        )

    return annotations


def load_annotations(path: str | Path) -> list[ManualAnnotation]:
    """
    Load manual fixings from CSV or JSON.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file type is unsupported or columns are missing.
    """
    df = _read_frame(path).rename(columns=ANNOTATION_COLUMNS)
    _require_columns(df, ["date", "mid"], path)
    annotations = annotations_from_frame(df)
    logger.info(f"Loaded {len(annotations)} manual fixings from {path}")
    return annotations
