"""Unit tests for PortfolioAggregator.

Tests cover:
- Portfolio totals (counts, EAD, base RWA, final RWA, net adjustment)
- Adjustment percentage and RWA density, including zero denominators
- Industry and region breakdowns with the "Unknown" group
- Summaries built from scalar results
"""

from __future__ import annotations

import polars as pl
import pytest

from airb_calc.contracts.models import Counterparty, PercentageAdjustment
from airb_calc.data.schemas import GROUP_SUMMARY_SCHEMA, PORTFOLIO_SUMMARY_SCHEMA
from airb_calc.engine.aggregator import (
    UNKNOWN_GROUP,
    PortfolioAggregator,
    PortfolioSummary,
    create_portfolio_aggregator,
)
from airb_calc.engine.calculator import calculate_rwa


@pytest.fixture
def aggregator() -> PortfolioAggregator:
    return create_portfolio_aggregator()


@pytest.fixture
def results() -> pl.DataFrame:
    """Calculated results with two industries and one missing region."""
    return pl.DataFrame(
        {
            "counterparty_id": ["CP001", "CP002", "CP003", "CP004"],
            "industry": ["Energy", "Energy", "Retail", None],
            "region": ["Europe", "Asia", "Europe", None],
            "ead": [1000.0, 2000.0, 500.0, 500.0],
            "base_rwa": [800.0, 1000.0, 400.0, 200.0],
            "rwa": [880.0, 1000.0, 300.0, 200.0],
            "has_adjustment": [True, False, False, False],
            "has_portfolio_adjustment": [False, False, True, False],
        }
    )


# =============================================================================
# Totals
# =============================================================================


class TestTotals:
    """Tests for portfolio-level totals."""

    def test_totals(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        summary = aggregator.summarise(results)
        assert summary.counterparty_count == 4
        assert summary.total_ead == 4000.0
        assert summary.total_base_rwa == 2400.0
        assert summary.total_rwa == 2380.0
        assert summary.total_adjustment == pytest.approx(-20.0)
        assert summary.rwa_density == pytest.approx(2380.0 / 4000.0)

    def test_adjustment_counts(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        totals = aggregator.summarise(results).totals
        assert totals["adjusted_count"][0] == 1
        assert totals["portfolio_adjusted_count"][0] == 1

    def test_adjustment_percentage(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        totals = aggregator.summarise(results).totals
        assert totals["adjustment_percentage"][0] == pytest.approx(-20.0 / 2400.0 * 100.0)

    def test_schema(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        summary = aggregator.summarise(results.lazy())
        assert summary.totals.schema == pl.Schema(PORTFOLIO_SUMMARY_SCHEMA)
        assert summary.by_industry.schema == pl.Schema(GROUP_SUMMARY_SCHEMA)

    def test_empty_portfolio(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        summary = aggregator.summarise(results.clear())
        assert summary.counterparty_count == 0
        assert summary.total_rwa == 0.0
        assert summary.rwa_density == 0.0
        assert summary.totals["adjustment_percentage"][0] == 0.0
        assert summary.by_industry.height == 0


# =============================================================================
# Group summaries
# =============================================================================


class TestGroupSummaries:
    """Tests for industry and region breakdowns."""

    def test_by_industry(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        by_industry = aggregator.summarise(results).by_industry
        assert by_industry["group"].to_list() == ["Energy", "Retail", UNKNOWN_GROUP]
        assert by_industry["total_rwa"].to_list() == [1880.0, 300.0, 200.0]
        assert by_industry["counterparty_count"].to_list() == [2, 1, 1]

    def test_group_derived_columns(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        retail = aggregator.summarise(results).by_industry.filter(pl.col("group") == "Retail")
        assert retail["total_adjustment"][0] == -100.0
        assert retail["adjustment_percentage"][0] == pytest.approx(-25.0)
        assert retail["rwa_density"][0] == pytest.approx(0.6)

    def test_by_region(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        by_region = aggregator.summarise(results).by_region
        assert by_region["group"].to_list() == ["Europe", "Asia", UNKNOWN_GROUP]
        assert by_region["total_ead"].to_list() == [1500.0, 2000.0, 500.0]

    def test_group_columns_absent(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        summary = aggregator.summarise(results.drop("industry", "region"))
        assert summary.by_industry["group"].to_list() == [UNKNOWN_GROUP]
        assert summary.by_region["counterparty_count"].to_list() == [4]

    def test_to_dict(self, aggregator: PortfolioAggregator, results: pl.DataFrame) -> None:
        data = aggregator.summarise(results).to_dict()
        assert data["counterparty_count"] == 4
        assert data["by_industry"][0]["group"] == "Energy"
        assert len(data["by_region"]) == 3


# =============================================================================
# Scalar results
# =============================================================================


class TestSummariseResults:
    """Tests for summaries built from RWAResult objects."""

    def test_matches_results(self, aggregator: PortfolioAggregator) -> None:
        counterparties = [
            Counterparty("CP001", pd=0.01, lgd=0.45, ead=1_000_000.0, maturity=2.5,
                         industry="Energy", region="Europe"),
            Counterparty("CP002", pd=0.02, lgd=0.45, ead=500_000.0, maturity=1.0,
                         industry="Retail",
                         rwa_adjustment=PercentageAdjustment(percentage=-10.0)),
        ]
        scalar = [calculate_rwa(cp) for cp in counterparties]

        summary = aggregator.summarise_results(counterparties, scalar)

        assert isinstance(summary, PortfolioSummary)
        assert summary.total_rwa == pytest.approx(sum(r.rwa for r in scalar))
        assert summary.total_base_rwa == pytest.approx(sum(r.base_rwa for r in scalar))
        assert summary.totals["adjusted_count"][0] == 1
        assert summary.by_region["group"].to_list() == ["Europe", UNKNOWN_GROUP]

    def test_length_mismatch(self, aggregator: PortfolioAggregator) -> None:
        with pytest.raises(ValueError):
            aggregator.summarise_results([Counterparty("CP001")], [])
