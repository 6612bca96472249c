"""Tests for the core data model.

Tests Counterparty construction and adjustment management, record
parsing with camelCase keys, the abstract Adjustment base and the
derived RWAResult properties.
"""

import pytest

from airb_calc.contracts.models import (
    AbsoluteAdjustment,
    AdditiveAdjustment,
    Adjustment,
    Counterparty,
    MultiplicativeAdjustment,
    RWAResult,
    TTCInputs,
)
from airb_calc.domain.enums import AdjustmentScope, AdjustmentStage, PDSource


def _result(rwa, original_rwa=None, k=0.05):
    return RWAResult(
        pd=0.01,
        pd_source=PDSource.PIT,
        ttc_pd=None,
        lgd=0.45,
        ead=1000.0,
        maturity=2.5,
        effective_maturity=2.5,
        base_correlation=0.19,
        avc_multiplier=1.0,
        correlation=0.19,
        maturity_adjustment=1.26,
        k=k,
        rwa=rwa,
        original_rwa=original_rwa,
    )


class TestCounterparty:
    """Tests for Counterparty defaults and adjustment management."""

    def test_defaults(self):
        cp = Counterparty("CP001")

        assert cp.name == ""
        assert cp.is_regulated is True
        assert cp.is_large_financial is False
        assert cp.ttc_pd is None
        assert not cp.use_cred_rating_pd

    def test_attach_and_remove(self):
        cp = Counterparty("CP001")
        adjustment = AdditiveAdjustment(delta=100.0)

        cp.attach_adjustment(adjustment)

        assert cp.has_adjustment(AdjustmentScope.COUNTERPARTY)
        assert not cp.has_adjustment(AdjustmentScope.PORTFOLIO)
        assert cp.remove_adjustment() is adjustment
        assert cp.rwa_adjustment is None

    def test_attach_replaces(self):
        cp = Counterparty("CP001")
        cp.attach_adjustment(AdditiveAdjustment(delta=1.0), AdjustmentScope.PORTFOLIO)
        cp.attach_adjustment(MultiplicativeAdjustment(multiplier=2.0), AdjustmentScope.PORTFOLIO)

        assert cp.get_adjustment(AdjustmentScope.PORTFOLIO) == MultiplicativeAdjustment(multiplier=2.0)

    def test_remove_absent(self):
        assert Counterparty("CP001").remove_adjustment(AdjustmentScope.PORTFOLIO) is None


class TestFromRecord:
    """Tests for Counterparty.from_record."""

    def test_camel_case_keys(self):
        cp = Counterparty.from_record(
            {
                "id": "CP001",
                "ttcPd": 0.012,
                "macroeconomicIndex": 0.4,
                "isFinancial": True,
                "isLargeFinancial": None,
                "assetSize": 2e11,
                "creditRating": "BBB",
                "useCredRatingPd": True,
            }
        )

        assert cp.counterparty_id == "CP001"
        assert cp.ttc_pd == 0.012
        assert cp.macroeconomic_index == 0.4
        assert cp.is_financial is True
        assert cp.is_large_financial is None
        assert cp.asset_size == 2e11
        assert cp.credit_rating == "BBB"
        assert cp.use_cred_rating_pd is True

    def test_snake_case_and_unknown_keys(self):
        cp = Counterparty.from_record({"counterparty_id": 42, "lgd": "0.4", "colour": "blue"})

        assert cp.counterparty_id == "42"
        assert cp.lgd == "0.4"

    def test_adjustments_parsed(self):
        cp = Counterparty.from_record(
            {
                "id": "CP001",
                "rwaAdjustment": {"type": "absolute", "adjustedRWA": 5000},
                "portfolioRwaAdjustment": {"type": "bespoke", "value": 1},
            }
        )

        assert cp.rwa_adjustment == AbsoluteAdjustment(target_rwa=5000.0)
        assert cp.portfolio_rwa_adjustment is None


class TestTTCInputs:
    """Tests for TTCInputs."""

    def test_positional(self):
        inputs = TTCInputs(0.02, 0.5, 0.02, 0.5)

        assert inputs.point_in_time_pd == 0.02
        assert inputs.cyclicality == 0.5

    def test_from_camel_case_record(self):
        """camelCase keys map onto the TTCInputs fields."""
        inputs = TTCInputs.from_record(
            {
                "pointInTimePd": 0.02,
                "macroeconomicIndex": 0.4,
                "longTermAverage": 0.03,
                "cyclicality": 0.6,
            }
        )

        assert inputs == TTCInputs(0.02, 0.4, 0.03, 0.6)

    def test_from_record_missing_key_is_none(self):
        """An absent input is None rather than a construction error."""
        inputs = TTCInputs.from_record({"point_in_time_pd": 0.02})

        assert inputs.point_in_time_pd == 0.02
        assert inputs.cyclicality is None


class TestAdjustmentBase:
    """Tests for the abstract Adjustment base class."""

    def test_base_not_instantiable(self):
        """Adjustment itself has no value or apply."""
        with pytest.raises(TypeError):
            Adjustment()

    def test_incomplete_variant_not_instantiable(self):
        """A variant missing apply cannot be constructed."""

        class ValueOnly(Adjustment):
            @property
            def value(self):
                return 1.0

        with pytest.raises(TypeError):
            ValueOnly()

    def test_variants_are_adjustments(self):
        """Each concrete variant is an Adjustment."""
        assert isinstance(MultiplicativeAdjustment(multiplier=1.1), Adjustment)
        assert isinstance(AdditiveAdjustment(delta=5.0), Adjustment)


class TestRWAResult:
    """Tests for RWAResult derived properties."""

    def test_unadjusted(self):
        result = _result(1000.0)

        assert result.base_rwa == 1000.0
        assert result.total_adjustment == 0.0
        assert result.adjustment_percentage == 0.0
        assert result.stage == AdjustmentStage.BASE

    def test_adjusted(self):
        result = _result(1100.0, original_rwa=1000.0)

        assert result.base_rwa == 1000.0
        assert result.total_adjustment == 100.0
        assert result.adjustment_percentage == pytest.approx(10.0)

    def test_zero_base(self):
        assert _result(50.0, original_rwa=0.0).adjustment_percentage == 0.0

    def test_risk_weight(self):
        assert _result(1000.0, k=0.08).risk_weight == pytest.approx(1.0)

    def test_to_dict(self):
        data = _result(1100.0, original_rwa=1000.0).to_dict()

        assert data["pd_source"] == "pit"
        assert data["stage"] == "base"
        assert data["original_rwa"] == 1000.0

    def test_frozen(self):
        with pytest.raises(AttributeError):
            _result(1.0).rwa = 2.0
