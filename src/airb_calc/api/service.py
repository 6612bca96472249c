"""
A-IRB RWA Calculator API Service.

RWAService provides a clean facade for RWA calculations:
- calculate: Final RWA of one counterparty with optional adjustments
- calculate_ttc_pd: Through-the-cycle PD from its four drivers
- calculate_portfolio: Vectorized RWA and summaries for a portfolio
- get_credit_ratings: Rating table for rating selectors
- get_default_config: Default parameter values for display

This is the main entry point for presentation layers. Domain errors never
escape the service; they are returned as APIErrors.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import polars as pl

from airb_calc.api.errors import convert_errors, convert_to_api_error, create_adjustment_error
from airb_calc.api.models import (
    APIError,
    CalculationRequest,
    CalculationResponse,
    PerformanceMetrics,
    PortfolioResponse,
    SummaryStatistics,
)
from airb_calc.contracts.config import CalculationConfig
from airb_calc.contracts.errors import DomainError, InputValidationError
from airb_calc.contracts.models import Counterparty, TTCInputs, parse_adjustment
from airb_calc.data.tables.credit_ratings import get_credit_rating_table
from airb_calc.domain.enums import AdjustmentScope
from airb_calc.engine.aggregator import PortfolioAggregator, PortfolioSummary
from airb_calc.engine.calculator import RWACalculator, counterparties_to_frame
from airb_calc.engine.ttc import calculate_ttc_pd, refresh_ttc_pd

if TYPE_CHECKING:
    from airb_calc.contracts.models import Adjustment

logger = logging.getLogger(__name__)


# =============================================================================
# RWA Service
# =============================================================================


class RWAService:
    """
    High-level service for A-IRB RWA calculations.

    Wraps RWACalculator and PortfolioAggregator with a clean API surface
    suitable for UI integration.

    Usage:
        from airb_calc.api import RWAService, CalculationRequest

        service = RWAService()
        response = service.calculate(
            CalculationRequest(
                counterparty={"id": "CP001", "pd": 0.01, "lgd": 0.45,
                              "ead": 1_000_000, "maturity": 2.5},
                counterparty_adjustment={"type": "percentage", "value": 10},
            )
        )

        if response.success:
            print(f"RWA: {response.result.rwa:,.0f}")
    """

    def __init__(self, config: CalculationConfig | None = None) -> None:
        """Initialize RWAService with a calculation configuration."""
        self.config = config if config is not None else CalculationConfig.default()
        self._calculator = RWACalculator(self.config)
        self._aggregator = PortfolioAggregator()

    # =========================================================================
    # Single Counterparty
    # =========================================================================

    def calculate(self, request: CalculationRequest) -> CalculationResponse:
        """
        Calculate the final RWA of one counterparty.

        Args:
            request: CalculationRequest with the counterparty and any
                adjustments to apply

        Returns:
            CalculationResponse; success=False with no result if the
            calculation is rejected
        """
        errors: list[APIError] = []
        counterparty = self._build_counterparty(request, errors)

        if request.refresh_ttc:
            refresh_ttc_pd(counterparty, self.config)

        try:
            result, warnings = self._calculator.calculate_with_warnings(counterparty)
        except (DomainError, InputValidationError) as exc:
            error = exc.error.with_counterparty(counterparty.counterparty_id)
            logger.warning("Calculation rejected: %s", error)
            return CalculationResponse(
                success=False,
                errors=errors + [convert_to_api_error(error)],
            )

        return CalculationResponse(
            success=True,
            result=result,
            errors=errors + convert_errors(warnings),
        )

    def calculate_ttc_pd(
        self,
        inputs: TTCInputs | Mapping[str, float],
    ) -> float:
        """
        Through-the-cycle PD from its drivers.

        Args:
            inputs: TTCInputs, or a mapping keyed by its field names or by
                pointInTimePd / macroeconomicIndex / longTermAverage / cyclicality

        Returns:
            TTC PD clamped to the configured floor and cap

        Raises:
            InputValidationError: If an input is missing, NaN or infinite
        """
        if not isinstance(inputs, TTCInputs):
            inputs = TTCInputs.from_record(inputs)
        return calculate_ttc_pd(inputs, self.config.ttc)

    # =========================================================================
    # Portfolio
    # =========================================================================

    def calculate_portfolio(
        self,
        portfolio: pl.LazyFrame | pl.DataFrame | Sequence[Counterparty],
    ) -> PortfolioResponse:
        """
        Calculate RWA for a whole portfolio and summarise it.

        Rejected counterparties are excluded from the results and the
        summary, and reported as critical errors.

        Args:
            portfolio: Portfolio frame (PORTFOLIO_SCHEMA columns) or counterparties

        Returns:
            PortfolioResponse with results, summaries, errors and timings
        """
        started_at = datetime.now()

        if not isinstance(portfolio, (pl.LazyFrame, pl.DataFrame)):
            portfolio = counterparties_to_frame(list(portfolio))

        calculated = self._calculator.calculate_portfolio(portfolio)
        results = calculated.frame.collect(engine=self.config.collect_engine)
        summary = self._aggregator.summarise(results)
        errors = convert_errors(calculated.errors)

        completed_at = datetime.now()
        schema_failure = any(e.category == "Schema Validation" for e in errors)

        return PortfolioResponse(
            success=not schema_failure,
            summary=_summary_statistics(summary),
            results=results,
            summary_by_industry=summary.by_industry,
            summary_by_region=summary.by_region,
            errors=errors,
            performance=PerformanceMetrics(
                started_at=started_at,
                completed_at=completed_at,
                duration_seconds=(completed_at - started_at).total_seconds(),
                counterparty_count=results.height,
            ),
        )

    # =========================================================================
    # Reference Data
    # =========================================================================

    def get_credit_ratings(self) -> list[dict[str, Any]]:
        """
        Rating grades with PD and description, best to worst.

        Returns:
            List of rating descriptors
        """
        return (
            get_credit_rating_table()
            .sort("rank")
            .select(
                pl.col("credit_rating").alias("rating"),
                pl.col("credit_rating_pd").alias("pd"),
                pl.col("description"),
            )
            .to_dicts()
        )

    def get_default_config(self) -> dict:
        """
        Get the configuration values in use.

        Returns:
            Dictionary of configuration values as strings
        """
        irb = self.config.irb
        ttc = self.config.ttc
        defaults = self.config.validation.defaults
        return {
            "validation_mode": self.config.validation.mode.value,
            "confidence_level": str(irb.confidence_level),
            "rwa_multiplier": str(irb.rwa_multiplier),
            "maturity_floor": str(irb.maturity_floor),
            "maturity_cap": str(irb.maturity_cap),
            "avc_multiplier": str(irb.avc_multiplier),
            "large_financial_asset_threshold": str(irb.large_financial_asset_threshold),
            "ttc": {
                "neutral_index": str(ttc.neutral_index),
                "cycle_sensitivity": str(ttc.cycle_sensitivity),
                "pit_weight": str(ttc.pit_weight),
                "long_term_weight": str(ttc.long_term_weight),
                "pd_floor": str(ttc.pd_floor),
                "pd_cap": str(ttc.pd_cap),
            },
            "defaults": {
                "pd": str(defaults.pd),
                "lgd": str(defaults.lgd),
                "maturity": str(defaults.maturity),
                "ead": str(defaults.ead),
            },
        }

    # =========================================================================
    # Private Methods
    # =========================================================================

    def _build_counterparty(
        self,
        request: CalculationRequest,
        errors: list[APIError],
    ) -> Counterparty:
        """Copy the requested counterparty and attach the request adjustments."""
        if isinstance(request.counterparty, Counterparty):
            counterparty = dataclasses.replace(request.counterparty)
        else:
            counterparty = Counterparty.from_record(request.counterparty)

        for field_name, raw, scope in (
            ("counterparty_adjustment", request.counterparty_adjustment, AdjustmentScope.COUNTERPARTY),
            ("portfolio_adjustment", request.portfolio_adjustment, AdjustmentScope.PORTFOLIO),
        ):
            if raw is None:
                continue
            adjustment: Adjustment | None = parse_adjustment(raw)
            if adjustment is None:
                errors.append(create_adjustment_error(field_name, raw))
                continue
            counterparty.attach_adjustment(adjustment, scope)

        return counterparty


def _summary_statistics(summary: PortfolioSummary) -> SummaryStatistics:
    totals = summary.totals.row(0, named=True)
    return SummaryStatistics(
        counterparty_count=int(totals["counterparty_count"]),
        adjusted_count=int(totals["adjusted_count"]),
        portfolio_adjusted_count=int(totals["portfolio_adjusted_count"]),
        total_ead=Decimal(str(totals["total_ead"])),
        total_base_rwa=Decimal(str(totals["total_base_rwa"])),
        total_rwa=Decimal(str(totals["total_rwa"])),
        total_adjustment=Decimal(str(totals["total_adjustment"])),
        adjustment_percentage=Decimal(str(totals["adjustment_percentage"])),
        rwa_density=Decimal(str(totals["rwa_density"])),
    )


# =============================================================================
# Convenience Functions
# =============================================================================


def create_service(config: CalculationConfig | None = None) -> RWAService:
    """
    Factory function to create RWAService instance.

    Args:
        config: Calculation configuration (default configuration if None)

    Returns:
        Configured RWAService
    """
    return RWAService(config)


def quick_calculate(
    counterparty: Counterparty | Mapping[str, Any],
    config: CalculationConfig | None = None,
) -> CalculationResponse:
    """
    Calculate one counterparty with minimal configuration.

    Args:
        counterparty: Counterparty or loose counterparty record
        config: Calculation configuration (default configuration if None)

    Returns:
        CalculationResponse with the result or the rejection reason

    Example:
        response = quick_calculate({"id": "CP001", "pd": 0.01, "lgd": 0.45,
                                    "ead": 1_000_000, "maturity": 2.5})
        print(f"RWA: {response.result.rwa:,.0f}")
    """
    return RWAService(config).calculate(CalculationRequest(counterparty=counterparty))
