"""
Portfolio aggregation for A-IRB RWA results.

Summarises a results frame (RWA_RESULT_SCHEMA) into:
- Portfolio totals: counts, EAD, base RWA, final RWA, net adjustment,
  adjustment percentage and RWA density
- Group summaries by industry and by region

Pipeline position:
    RWACalculator.calculate_portfolio -> PortfolioAggregator -> RWAService

Counterparties without an industry or region are grouped under "Unknown".
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import polars as pl

from airb_calc.data.schemas import GROUP_SUMMARY_SCHEMA, PORTFOLIO_SUMMARY_SCHEMA

if TYPE_CHECKING:
    from airb_calc.contracts.models import Counterparty, RWAResult

logger = logging.getLogger(__name__)

UNKNOWN_GROUP = "Unknown"


# =============================================================================
# Summary Container
# =============================================================================


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Aggregated view of a calculated portfolio.

    Attributes:
        totals: One-row frame with PORTFOLIO_SUMMARY_SCHEMA columns
        by_industry: GROUP_SUMMARY_SCHEMA frame, one row per industry
        by_region: GROUP_SUMMARY_SCHEMA frame, one row per region
    """

    totals: pl.DataFrame
    by_industry: pl.DataFrame
    by_region: pl.DataFrame

    @property
    def counterparty_count(self) -> int:
        return int(self.totals["counterparty_count"][0])

    @property
    def total_ead(self) -> float:
        return float(self.totals["total_ead"][0])

    @property
    def total_base_rwa(self) -> float:
        return float(self.totals["total_base_rwa"][0])

    @property
    def total_rwa(self) -> float:
        return float(self.totals["total_rwa"][0])

    @property
    def total_adjustment(self) -> float:
        return float(self.totals["total_adjustment"][0])

    @property
    def rwa_density(self) -> float:
        return float(self.totals["rwa_density"][0])

    def to_dict(self) -> dict:
        """Convert totals and group summaries to plain Python structures."""
        return {
            **self.totals.row(0, named=True),
            "by_industry": self.by_industry.to_dicts(),
            "by_region": self.by_region.to_dicts(),
        }


# =============================================================================
# Portfolio Aggregator
# =============================================================================


class PortfolioAggregator:
    """
    Aggregate counterparty RWA results into portfolio summaries.

    Usage:
        aggregator = PortfolioAggregator()
        summary = aggregator.summarise(result.frame)
        summary.total_rwa
        summary.by_industry
    """

    def summarise(self, results: pl.LazyFrame | pl.DataFrame) -> PortfolioSummary:
        """
        Summarise a results frame.

        Args:
            results: Frame with at least counterparty_id, ead, base_rwa,
                rwa, has_adjustment and has_portfolio_adjustment columns

        Returns:
            PortfolioSummary with totals and industry/region breakdowns
        """
        lf = self._prepare(results.lazy())

        totals, by_industry, by_region = pl.collect_all(
            [
                self._generate_totals(lf),
                self._generate_group_summary(lf, "industry"),
                self._generate_group_summary(lf, "region"),
            ]
        )

        summary = PortfolioSummary(
            totals=totals,
            by_industry=by_industry,
            by_region=by_region,
        )
        logger.info(
            "Portfolio summary: %d counterparties, RWA %.2f (base %.2f), EAD %.2f",
            summary.counterparty_count,
            summary.total_rwa,
            summary.total_base_rwa,
            summary.total_ead,
        )
        return summary

    def summarise_results(
        self,
        counterparties: Sequence[Counterparty],
        results: Sequence[RWAResult],
    ) -> PortfolioSummary:
        """
        Summarise scalar results alongside the counterparties they came from.

        Args:
            counterparties: Counterparties, in the same order as results
            results: RWAResult per counterparty

        Returns:
            PortfolioSummary identical in shape to summarise()
        """
        frame = pl.DataFrame(
            [
                {
                    "counterparty_id": cp.counterparty_id,
                    "industry": cp.industry,
                    "region": cp.region,
                    "ead": result.ead,
                    "base_rwa": result.base_rwa,
                    "rwa": result.rwa,
                    "has_adjustment": result.has_adjustment,
                    "has_portfolio_adjustment": result.has_portfolio_adjustment,
                }
                for cp, result in zip(counterparties, results, strict=True)
            ],
            schema={
                "counterparty_id": pl.String,
                "industry": pl.String,
                "region": pl.String,
                "ead": pl.Float64,
                "base_rwa": pl.Float64,
                "rwa": pl.Float64,
                "has_adjustment": pl.Boolean,
                "has_portfolio_adjustment": pl.Boolean,
            },
        )
        return self.summarise(frame)

    # =========================================================================
    # Private Methods
    # =========================================================================

    def _prepare(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        """Add absent grouping columns and normalise missing group values."""
        schema = lf.collect_schema()
        return lf.with_columns(
            [
                (
                    pl.col(name).cast(pl.String).fill_null(UNKNOWN_GROUP)
                    if name in schema.names()
                    else pl.lit(UNKNOWN_GROUP)
                ).alias(name)
                for name in ("industry", "region")
            ]
        )

    @staticmethod
    def _total_exprs() -> list[pl.Expr]:
        return [
            pl.len().cast(pl.UInt32).alias("counterparty_count"),
            pl.col("ead").sum().alias("total_ead"),
            pl.col("base_rwa").sum().alias("total_base_rwa"),
            pl.col("rwa").sum().alias("total_rwa"),
        ]

    @staticmethod
    def _derived_exprs() -> list[pl.Expr]:
        adjustment = pl.col("total_rwa") - pl.col("total_base_rwa")
        return [
            adjustment.alias("total_adjustment"),
            pl.when(pl.col("total_base_rwa") > 0)
            .then(adjustment / pl.col("total_base_rwa") * 100.0)
            .otherwise(pl.lit(0.0))
            .alias("adjustment_percentage"),
            pl.when(pl.col("total_ead") > 0)
            .then(pl.col("total_rwa") / pl.col("total_ead"))
            .otherwise(pl.lit(0.0))
            .alias("rwa_density"),
        ]

    def _generate_totals(self, lf: pl.LazyFrame) -> pl.LazyFrame:
        """
        Generate portfolio totals.

        Aggregates:
        - Counterparty, adjusted and portfolio-adjusted counts
        - Total EAD, base RWA and final RWA
        - Net adjustment, adjustment percentage and RWA density
        """
        return (
            lf.select(
                self._total_exprs()
                + [
                    pl.col("has_adjustment").sum().cast(pl.UInt32).alias("adjusted_count"),
                    pl.col("has_portfolio_adjustment")
                    .sum()
                    .cast(pl.UInt32)
                    .alias("portfolio_adjusted_count"),
                ]
            )
            .with_columns(
                [pl.col(name).fill_null(0.0) for name in ("total_ead", "total_base_rwa", "total_rwa")]
            )
            .with_columns(self._derived_exprs())
            .select(list(PORTFOLIO_SUMMARY_SCHEMA))
        )

    def _generate_group_summary(self, lf: pl.LazyFrame, group_col: str) -> pl.LazyFrame:
        """Generate totals per value of group_col, largest RWA first."""
        return (
            lf.group_by(group_col)
            .agg(self._total_exprs())
            .with_columns(self._derived_exprs())
            .rename({group_col: "group"})
            .select(list(GROUP_SUMMARY_SCHEMA))
            .sort(["total_rwa", "group"], descending=[True, False])
        )


def create_portfolio_aggregator() -> PortfolioAggregator:
    """
    Create a PortfolioAggregator instance.

    Returns:
        PortfolioAggregator ready for use
    """
    return PortfolioAggregator()
