"""Unit tests for manual adjustment layering.

Tests cover:
- Transform of each adjustment variant
- Record parsing (type-specific keys, "value" fallback, invalid records)
- Layering order and original_rwa bookkeeping
- Skipping adjustments with non-finite values
- Vectorised layering over flattened columns
- Distribution of a portfolio override across counterparties
"""

from __future__ import annotations

import dataclasses
import math
from datetime import datetime, timezone

import polars as pl
import pytest

from airb_calc.contracts.models import (
    AbsoluteAdjustment,
    AdditiveAdjustment,
    Counterparty,
    MultiplicativeAdjustment,
    PercentageAdjustment,
    RWAResult,
    parse_adjustment,
)
from airb_calc.domain.enums import (
    AdjustmentScope,
    AdjustmentStage,
    AdjustmentType,
    DistributionMethod,
    PDSource,
)
from airb_calc.engine.adjustments import (
    PortfolioBaseline,
    adjustment_from_columns,
    adjustment_to_columns,
    apply_adjustment,
    distribute_portfolio_adjustment,
    layer_adjustments,
    layered_rwa_expr,
)


@pytest.fixture
def base_result() -> RWAResult:
    """A base result with RWA 1,000,000 on EAD 2,000,000."""
    return RWAResult(
        pd=0.01,
        pd_source=PDSource.TTC,
        ttc_pd=0.01,
        lgd=0.45,
        ead=2_000_000.0,
        maturity=2.5,
        effective_maturity=2.5,
        base_correlation=0.19,
        avc_multiplier=1.0,
        correlation=0.19,
        maturity_adjustment=1.26,
        k=0.04,
        rwa=1_000_000.0,
        original_rwa=1_000_000.0,
        rwa_density=0.5,
    )


# =============================================================================
# Variants
# =============================================================================


class TestAdjustmentVariants:
    """Tests for the per-variant transform."""

    def test_absolute(self) -> None:
        adjustment = AbsoluteAdjustment(target_rwa=750.0)
        assert adjustment.apply(1000.0) == 750.0
        assert adjustment.type == AdjustmentType.ABSOLUTE
        assert adjustment.value == 750.0

    def test_additive(self) -> None:
        assert AdditiveAdjustment(delta=-200.0).apply(1000.0) == 800.0

    def test_multiplicative(self) -> None:
        assert MultiplicativeAdjustment(multiplier=1.1).apply(1000.0) == pytest.approx(1100.0)

    def test_percentage(self) -> None:
        assert PercentageAdjustment(percentage=-15.0).apply(1000.0) == pytest.approx(850.0)

    def test_frozen(self) -> None:
        adjustment = AdditiveAdjustment(delta=1.0)
        with pytest.raises(AttributeError):
            adjustment.delta = 2.0  # type: ignore[misc]


# =============================================================================
# Parsing
# =============================================================================


class TestParseAdjustment:
    """Tests for parse_adjustment."""

    def test_absolute_prefers_adjusted_rwa(self) -> None:
        adjustment = parse_adjustment({"type": "absolute", "adjustedRWA": 500.0, "value": 1.0})
        assert adjustment == AbsoluteAdjustment(target_rwa=500.0)

    def test_additive_reads_adjustment(self) -> None:
        adjustment = parse_adjustment({"type": "additive", "adjustment": 250})
        assert isinstance(adjustment, AdditiveAdjustment)
        assert adjustment.delta == 250.0

    def test_multiplicative_reads_multiplier(self) -> None:
        adjustment = parse_adjustment({"type": "multiplicative", "multiplier": "1.2"})
        assert adjustment == MultiplicativeAdjustment(multiplier=1.2)

    def test_value_fallback(self) -> None:
        assert parse_adjustment({"type": "percentage", "value": 10}) == PercentageAdjustment(percentage=10.0)
        assert parse_adjustment({"type": "additive", "value": 5}) == AdditiveAdjustment(delta=5.0)

    def test_reason_and_timestamp(self) -> None:
        adjustment = parse_adjustment(
            {
                "type": "Percentage",
                "value": 5,
                "reason": "Sector outlook",
                "timestamp": "2024-06-30T12:00:00Z",
            }
        )
        assert adjustment is not None
        assert adjustment.reason == "Sector outlook"
        assert adjustment.timestamp == datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "record",
        [
            {"type": "bespoke", "value": 1.0},
            {"value": 1.0},
            {"type": "additive", "value": "n/a"},
            {"type": "multiplicative"},
            {"type": "absolute", "value": float("nan")},
        ],
    )
    def test_invalid_records_are_absent(self, record: dict) -> None:
        assert parse_adjustment(record) is None

    def test_passes_through_instances(self) -> None:
        adjustment = AdditiveAdjustment(delta=3.0)
        assert parse_adjustment(adjustment) is adjustment
        assert parse_adjustment(None) is None


# =============================================================================
# Layering
# =============================================================================


class TestLayering:
    """Tests for layer_adjustments."""

    def test_no_adjustments(self, base_result: RWAResult) -> None:
        result = layer_adjustments(base_result)
        assert result.rwa == 1_000_000.0
        assert result.original_rwa is None
        assert result.stage == AdjustmentStage.BASE
        assert not result.has_adjustment
        assert not result.has_portfolio_adjustment

    def test_counterparty_only(self, base_result: RWAResult) -> None:
        result = layer_adjustments(base_result, PercentageAdjustment(percentage=10.0))
        assert result.rwa == pytest.approx(1_100_000.0)
        assert result.original_rwa == 1_000_000.0
        assert result.has_adjustment
        assert not result.has_portfolio_adjustment
        assert result.stage == AdjustmentStage.COUNTERPARTY_ADJUSTED
        assert result.rwa_density == pytest.approx(0.55)

    def test_portfolio_only(self, base_result: RWAResult) -> None:
        result = layer_adjustments(base_result, None, AdditiveAdjustment(delta=-100_000.0))
        assert result.rwa == 900_000.0
        assert result.original_rwa == 1_000_000.0
        assert not result.has_adjustment
        assert result.has_portfolio_adjustment
        assert result.stage == AdjustmentStage.PORTFOLIO_ADJUSTED

    def test_portfolio_applies_to_counterparty_output(self, base_result: RWAResult) -> None:
        """Stages compose: portfolio stage sees the counterparty-adjusted value."""
        result = layer_adjustments(
            base_result,
            MultiplicativeAdjustment(multiplier=1.2),
            PercentageAdjustment(percentage=-10.0),
        )
        assert result.rwa == pytest.approx(1_000_000.0 * 1.2 * 0.9)
        assert result.original_rwa == 1_000_000.0
        assert result.has_adjustment and result.has_portfolio_adjustment
        assert result.stage == AdjustmentStage.PORTFOLIO_ADJUSTED

    def test_absolute_then_additive(self, base_result: RWAResult) -> None:
        result = layer_adjustments(
            base_result,
            AbsoluteAdjustment(target_rwa=500_000.0),
            AdditiveAdjustment(delta=25_000.0),
        )
        assert result.rwa == 525_000.0
        assert result.total_adjustment == -475_000.0

    def test_non_finite_value_skips_stage(self, base_result: RWAResult) -> None:
        result = layer_adjustments(base_result, AdditiveAdjustment(delta=math.inf))
        assert result.rwa == 1_000_000.0
        assert result.stage == AdjustmentStage.BASE
        assert apply_adjustment(1.0, MultiplicativeAdjustment(multiplier=math.nan)) is None

    def test_zero_ead_density(self, base_result: RWAResult) -> None:
        result = layer_adjustments(dataclasses.replace(base_result, ead=0.0), AdditiveAdjustment(delta=1.0))
        assert result.rwa_density == 0.0

    def test_base_result_unchanged(self, base_result: RWAResult) -> None:
        layer_adjustments(base_result, AdditiveAdjustment(delta=1.0))
        assert base_result.rwa == 1_000_000.0


# =============================================================================
# Columns
# =============================================================================


class TestColumns:
    """Tests for flattened (type, value) adjustment columns."""

    def test_round_trip(self) -> None:
        adjustment = MultiplicativeAdjustment(multiplier=0.9)
        assert adjustment_to_columns(adjustment) == ("multiplicative", 0.9)
        assert adjustment_from_columns("multiplicative", 0.9) == adjustment

    def test_absent(self) -> None:
        assert adjustment_to_columns(None) == (None, None)
        assert adjustment_from_columns(None, 1.0) is None
        assert adjustment_from_columns("unknown", 1.0) is None

    def test_layered_expr_matches_scalar(self, base_result: RWAResult) -> None:
        cases = [
            (None, None, None, None),
            ("absolute", 400.0, None, None),
            ("additive", 50.0, "percentage", 10.0),
            (None, None, "multiplicative", 2.0),
            ("bogus", 3.0, "additive", float("nan")),
        ]
        df = pl.DataFrame(
            {
                "base_rwa": [1000.0] * len(cases),
                "cp_adjustment_type": [c[0] for c in cases],
                "cp_adjustment_value": [c[1] for c in cases],
                "pf_adjustment_type": [c[2] for c in cases],
                "pf_adjustment_value": [c[3] for c in cases],
            },
            schema={
                "base_rwa": pl.Float64,
                "cp_adjustment_type": pl.String,
                "cp_adjustment_value": pl.Float64,
                "pf_adjustment_type": pl.String,
                "pf_adjustment_value": pl.Float64,
            },
        )
        result = df.select(layered_rwa_expr().alias("rwa"))["rwa"].to_list()

        for (cp_type, cp_value, pf_type, pf_value), rwa in zip(cases, result):
            expected = layer_adjustments(
                RWAResult(**{**base_result.__dict__, "rwa": 1000.0, "original_rwa": 1000.0}),
                adjustment_from_columns(cp_type, cp_value),
                adjustment_from_columns(pf_type, pf_value),
            ).rwa
            assert rwa == pytest.approx(expected)


# =============================================================================
# Portfolio distribution
# =============================================================================


@pytest.fixture
def baselines() -> list[PortfolioBaseline]:
    return [
        PortfolioBaseline("CP001", rwa=600.0, ead=1000.0),
        PortfolioBaseline("CP002", rwa=300.0, ead=1000.0),
        PortfolioBaseline("CP003", rwa=100.0, ead=500.0),
    ]


class TestDistribution:
    """Tests for distribute_portfolio_adjustment."""

    def test_percentage_replicated(self, baselines: list[PortfolioBaseline]) -> None:
        override = PercentageAdjustment(percentage=10.0, reason="Model risk")
        plan = distribute_portfolio_adjustment(baselines, override)
        assert all(adj == override for adj in plan.adjustments.values())
        assert plan.adjusted_total == pytest.approx(1100.0)
        assert plan.percentage_change == pytest.approx(10.0)

    def test_additive_proportional(self, baselines: list[PortfolioBaseline]) -> None:
        plan = distribute_portfolio_adjustment(baselines, AdditiveAdjustment(delta=100.0))
        deltas = {cid: adj.value for cid, adj in plan.adjustments.items()}
        assert deltas == pytest.approx({"CP001": 60.0, "CP002": 30.0, "CP003": 10.0})
        assert plan.absolute_change == pytest.approx(100.0)

    def test_additive_equal(self, baselines: list[PortfolioBaseline]) -> None:
        plan = distribute_portfolio_adjustment(
            baselines, AdditiveAdjustment(delta=90.0), DistributionMethod.EQUAL
        )
        assert [adj.value for adj in plan.adjustments.values()] == pytest.approx([30.0, 30.0, 30.0])

    def test_additive_risk_weighted(self, baselines: list[PortfolioBaseline]) -> None:
        """Densities 0.6, 0.3, 0.2 weight the split."""
        plan = distribute_portfolio_adjustment(
            baselines, AdditiveAdjustment(delta=110.0), DistributionMethod.RISK_WEIGHTED
        )
        assert [adj.value for adj in plan.adjustments.values()] == pytest.approx([60.0, 30.0, 20.0])

    def test_absolute_reaches_target(self, baselines: list[PortfolioBaseline]) -> None:
        plan = distribute_portfolio_adjustment(baselines, AbsoluteAdjustment(target_rwa=800.0))
        assert all(isinstance(adj, AdditiveAdjustment) for adj in plan.adjustments.values())
        assert plan.baseline_total == 1000.0
        assert plan.adjusted_total == pytest.approx(800.0)
        assert plan.percentage_change == pytest.approx(-20.0)

    def test_zero_baseline_gives_zero_deltas(self) -> None:
        plan = distribute_portfolio_adjustment(
            [PortfolioBaseline("CP001", rwa=0.0, ead=0.0)], AdditiveAdjustment(delta=50.0)
        )
        assert plan.adjustments["CP001"].value == 0.0
        assert plan.percentage_change == 0.0

    def test_empty_selection(self) -> None:
        plan = distribute_portfolio_adjustment([], AdditiveAdjustment(delta=50.0))
        assert plan.adjustments == {}
        assert plan.absolute_change == 0.0

    def test_attach(self, baselines: list[PortfolioBaseline]) -> None:
        counterparties = [Counterparty("CP001"), Counterparty("CP003"), Counterparty("CP999")]
        plan = distribute_portfolio_adjustment(baselines, MultiplicativeAdjustment(multiplier=1.05))
        assert plan.attach(counterparties) == 2
        assert counterparties[0].has_adjustment(AdjustmentScope.PORTFOLIO)
        assert not counterparties[0].has_adjustment(AdjustmentScope.COUNTERPARTY)
        assert counterparties[2].portfolio_rwa_adjustment is None
