"""
Pytest configuration and fixtures for FX fixing engine tests.

This module provides reusable fixtures for:
- Series point generation (flat, trending, shocked)
- Synthetic analytics sequences
- Manual fixing annotations
- Sample CSV / JSON input files
"""

import pytest
import pandas as pd
from datetime import date, datetime, timedelta
from typing import List, Optional

from fxengine.analytics.series import PointAnalytics, SeriesPoint
from fxengine.data.fixings import ManualAnnotation


# =============================================================================
# Helpers
# =============================================================================

START_DATE = date(2024, 1, 1)


def make_series(mids: List[float], start: date = START_DATE) -> List[SeriesPoint]:
    """Build a daily series starting at ``start`` from a list of mids."""
    return [SeriesPoint(date=start + timedelta(days=i), mid=m) for i, m in enumerate(mids)]


def make_analytics(
    pct_deltas: List[Optional[float]],
    vol_pct: Optional[float] = None,
) -> List[PointAnalytics]:
    """Build synthetic analytics carrying only the given pct_delta values."""
    return [
        PointAnalytics(
            prev_mid=None if pct is None else 100.0,
            delta=None if pct is None else pct,
            pct_delta=pct,
            vol_pct=vol_pct,
            is_jump=False,
            flat_run=0,
        )
        for pct in pct_deltas
    ]


def compound(start: float, pct_returns: List[float]) -> List[float]:
    """Compound percentage returns into a list of mids beginning at ``start``."""
    mids = [start]
    for r in pct_returns:
        mids.append(mids[-1] * (1 + r / 100))
    return mids


# =============================================================================
# Series Fixtures
# =============================================================================

@pytest.fixture
def flat_series() -> List[SeriesPoint]:
    """Thirty days of an unchanged fixing."""
    return make_series([100.0] * 30)


@pytest.fixture
def trending_series() -> List[SeriesPoint]:
    """Thirty days of a steady +0.5%/day depreciation."""
    return make_series(compound(100.0, [0.5] * 29))


@pytest.fixture
def shocked_series() -> List[SeriesPoint]:
    """Flat series with a +10% step on day 15."""
    mids = [100.0] * 15 + [110.0] * 15
    return make_series(mids)


@pytest.fixture
def year_series() -> List[SeriesPoint]:
    """Every calendar day of 2024 (366 points)."""
    return make_series([500.0 + i * 0.1 for i in range(366)])


# =============================================================================
# Manual Fixing Fixtures
# =============================================================================

@pytest.fixture
def override_annotation() -> ManualAnnotation:
    """Manual override on 2024-01-11 (index 10 of the series fixtures)."""
    return ManualAnnotation(
        date=date(2024, 1, 11),
        mid=120.0,
        is_official=True,
        is_manual_override=True,
        notes="Central bank auction result",
        created_at=datetime(2024, 1, 11, 9, 30),
        created_by="ops@example.com",
        id="m-1",
    )


@pytest.fixture
def fixing_annotation() -> ManualAnnotation:
    """Manual fixing without override on 2024-01-21 (index 20)."""
    return ManualAnnotation(
        date=date(2024, 1, 21),
        mid=101.5,
        is_official=False,
        is_manual_override=False,
        notes="Parallel market quote",
        created_by="ops@example.com",
        id="m-2",
    )


# =============================================================================
# File Fixtures
# =============================================================================

@pytest.fixture
def series_csv(tmp_path, flat_series):
    """CSV file of the flat series, written in descending order."""
    path = tmp_path / "fixings.csv"
    df = pd.DataFrame({
        "date": [p.date.isoformat() for p in reversed(flat_series)],
        "mid": [p.mid for p in reversed(flat_series)],
    })
    df.to_csv(path, index=False)
    return path


@pytest.fixture
def manual_csv(tmp_path):
    """CSV file with one override and one plain manual fixing."""
    path = tmp_path / "manual.csv"
    path.write_text(
        "id,as_of_date,rate_mid,is_official,is_manual_override,notes,created_at,created_email\n"
        "m-1,2024-01-11,120.0,true,true,Auction,2024-01-11T09:30:00Z,ops@example.com\n"
        "m-2,2024-01-21,101.5,false,false,,2024-01-21T10:00:00Z,ops@example.com\n"
    )
    return path
