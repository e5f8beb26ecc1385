"""
Tests for the confidence scoring module.

This module tests:
- Manual override always scoring low
- Low / medium / high rule boundaries
- Reason accumulation order
- Whole-series scoring
"""

import itertools

import pytest

from fxengine.analytics.series import VolBucket
from fxengine.confidence.scoring import (
    ConfidenceInput,
    ConfidenceLevel,
    score_confidence,
    score_series_confidence,
)
from fxengine.regime.classifier import RegimePoint, RegimeType

from conftest import make_analytics


def make_input(**overrides) -> ConfidenceInput:
    """A clean, high-confidence point unless overridden."""
    values = dict(
        idx=20,
        total=30,
        has_manual_fixing=False,
        has_manual_override=False,
        is_jump=False,
        vol_bucket=VolBucket.LOW,
        regime_key=RegimeType.STABLE,
        has_vol_history=True,
    )
    values.update(overrides)
    return ConfidenceInput(**values)


# =============================================================================
# Test High Confidence
# =============================================================================

class TestHighConfidence:
    """Tests for the clean-profile branch."""

    def test_clean_point_scores_high(self):
        result = score_confidence(make_input())

        assert result.level is ConfidenceLevel.HIGH
        assert result.label == "High"
        assert result.reasons == [
            "Stable analytics profile (no override, low volatility, no discontinuity)."
        ]

    def test_drift_regime_can_score_high(self):
        """Any known regime qualifies for high confidence."""
        result = score_confidence(make_input(regime_key=RegimeType.DRIFT))
        assert result.level is ConfidenceLevel.HIGH

    def test_boundary_index_seven_is_not_early(self):
        assert score_confidence(make_input(idx=7)).level is ConfidenceLevel.HIGH
        assert score_confidence(make_input(idx=6)).level is ConfidenceLevel.MEDIUM


# =============================================================================
# Test Manual Override
# =============================================================================

class TestManualOverride:
    """Tests for the override short-circuit."""

    @pytest.mark.parametrize(
        "vol_bucket,regime_key,is_jump",
        list(itertools.product(
            list(VolBucket),
            [RegimeType.STABLE, RegimeType.UNKNOWN, RegimeType.INTERVENTION],
            [False, True],
        )),
    )
    def test_override_always_low(self, vol_bucket, regime_key, is_jump):
        result = score_confidence(make_input(
            has_manual_override=True,
            vol_bucket=vol_bucket,
            regime_key=regime_key,
            is_jump=is_jump,
        ))
        assert result.level is ConfidenceLevel.LOW
        assert result.reasons[-1] == "Manual override recorded on this date."

    def test_override_returns_before_other_reasons(self):
        result = score_confidence(make_input(
            has_manual_override=True,
            has_manual_fixing=True,
            is_jump=True,
        ))
        assert result.reasons == ["Manual override recorded on this date."]

    def test_override_early_point_keeps_history_note(self):
        result = score_confidence(make_input(idx=2, has_manual_override=True))
        assert result.reasons == [
            "Limited trailing history for analytics.",
            "Manual override recorded on this date.",
        ]


# =============================================================================
# Test Low Confidence
# =============================================================================

class TestLowConfidence:
    """Tests for the low-confidence combinations."""

    def test_jump_with_high_vol(self):
        result = score_confidence(make_input(is_jump=True, vol_bucket=VolBucket.HIGH))

        assert result.level is ConfidenceLevel.LOW
        assert result.reasons == [
            "Large day-over-day move detected (discontinuity).",
            "High volatility.",
        ]

    def test_manual_fixing_with_high_vol(self):
        result = score_confidence(make_input(has_manual_fixing=True, vol_bucket=VolBucket.HIGH))
        assert result.level is ConfidenceLevel.LOW

    def test_jump_unknown_regime_elevated_vol(self):
        result = score_confidence(make_input(
            is_jump=True,
            regime_key=RegimeType.UNKNOWN,
            vol_bucket=VolBucket.ELEVATED,
        ))

        assert result.level is ConfidenceLevel.LOW
        assert "Regime classification uncertain." in result.reasons

    def test_jump_unknown_regime_low_vol_is_medium(self):
        """The third low rule requires elevated or high volatility."""
        result = score_confidence(make_input(
            is_jump=True,
            regime_key=RegimeType.UNKNOWN,
            vol_bucket=VolBucket.LOW,
        ))
        assert result.level is ConfidenceLevel.MEDIUM

    def test_jump_elevated_known_regime_is_medium(self):
        result = score_confidence(make_input(
            is_jump=True,
            regime_key=RegimeType.SHOCK,
            vol_bucket=VolBucket.ELEVATED,
        ))
        assert result.level is ConfidenceLevel.MEDIUM


# =============================================================================
# Test Medium Confidence
# =============================================================================

class TestMediumConfidence:
    """Tests for each single medium trigger."""

    @pytest.mark.parametrize("overrides,reason", [
        ({"has_manual_fixing": True}, "Manual fixing recorded on this date."),
        ({"vol_bucket": VolBucket.HIGH}, "High volatility."),
        ({"vol_bucket": VolBucket.ELEVATED}, "Elevated volatility."),
        ({"regime_key": RegimeType.UNKNOWN}, "Regime classification uncertain."),
        ({"is_jump": True}, "Large day-over-day move detected (discontinuity)."),
        ({"idx": 0}, "Limited trailing history for analytics."),
        ({"has_vol_history": False}, "Insufficient volatility history."),
    ])
    def test_single_trigger(self, overrides, reason):
        result = score_confidence(make_input(**overrides))

        assert result.level is ConfidenceLevel.MEDIUM
        assert result.label == "Medium"
        assert result.reasons == [reason]

    def test_reason_order(self):
        result = score_confidence(make_input(
            idx=1,
            has_manual_fixing=True,
            is_jump=True,
            has_vol_history=False,
            vol_bucket=VolBucket.UNKNOWN,
            regime_key=RegimeType.UNKNOWN,
        ))
        assert result.reasons == [
            "Limited trailing history for analytics.",
            "Manual fixing recorded on this date.",
            "Large day-over-day move detected (discontinuity).",
            "Insufficient volatility history.",
            "Regime classification uncertain.",
        ]


# =============================================================================
# Test Series Scoring
# =============================================================================

class TestSeriesScoring:
    """Tests for score_series_confidence."""

    def test_parallel_output(self):
        analytics = make_analytics([None] + [0.1] * 9, vol_pct=0.05)
        regimes = [RegimePoint(RegimeType.STABLE, "Stable", "") for _ in analytics]

        results = score_series_confidence(
            analytics,
            regimes,
            lambda idx: VolBucket.LOW,
            lambda idx: False,
            lambda idx: idx == 8,
        )

        assert len(results) == len(analytics)
        assert [r.level for r in results[:7]] == [ConfidenceLevel.MEDIUM] * 7
        assert results[7].level is ConfidenceLevel.HIGH
        assert results[8].level is ConfidenceLevel.LOW
        assert results[9].level is ConfidenceLevel.HIGH

    def test_missing_vol_history_from_analytics(self):
        analytics = make_analytics([None] + [0.1] * 9, vol_pct=None)
        regimes = [RegimePoint(RegimeType.STABLE, "Stable", "") for _ in analytics]

        results = score_series_confidence(
            analytics, regimes, lambda idx: VolBucket.LOW, lambda idx: False, lambda idx: False
        )
        assert "Insufficient volatility history." in results[9].reasons
        assert results[9].level is ConfidenceLevel.MEDIUM

    def test_empty(self):
        assert score_series_confidence([], [], lambda i: VolBucket.LOW, lambda i: False, lambda i: False) == []
