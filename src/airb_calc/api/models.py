"""
API request and response models for the A-IRB RWA calculator.

RWAService uses these models for clean interface contracts:
- CalculationRequest: One counterparty plus optional adjustment records
- CalculationResponse: Result of a single-counterparty calculation
- PortfolioResponse: Results frame, summary and errors for a portfolio

All models are frozen dataclasses following existing project patterns.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    import polars as pl

    from airb_calc.contracts.models import Adjustment, Counterparty, RWAResult


# =============================================================================
# Request Models
# =============================================================================


@dataclass(frozen=True)
class CalculationRequest:
    """
    Request model for a single-counterparty RWA calculation.

    The counterparty is never modified by the service; a copy is
    calculated.

    Attributes:
        counterparty: Counterparty, or a loose record (snake_case or camelCase keys)
        counterparty_adjustment: Adjustment or adjustment record replacing the
            counterparty-scope adjustment (kept as is if None)
        portfolio_adjustment: Adjustment or adjustment record replacing the
            portfolio-scope adjustment (kept as is if None)
        refresh_ttc: Recompute the TTC PD from the PD-affecting fields first
    """

    counterparty: Counterparty | Mapping[str, Any]
    counterparty_adjustment: Adjustment | Mapping[str, Any] | None = None
    portfolio_adjustment: Adjustment | Mapping[str, Any] | None = None
    refresh_ttc: bool = False


# =============================================================================
# Response Models - Summary Statistics
# =============================================================================


@dataclass(frozen=True)
class SummaryStatistics:
    """
    Aggregated portfolio statistics.

    Attributes:
        counterparty_count: Number of counterparties in the results
        adjusted_count: Counterparties with a counterparty adjustment applied
        portfolio_adjusted_count: Counterparties with a portfolio adjustment applied
        total_ead: Total Exposure at Default
        total_base_rwa: Total model RWA before adjustments
        total_rwa: Total final RWA
        total_adjustment: total_rwa - total_base_rwa
        adjustment_percentage: total_adjustment as a percentage of total_base_rwa
        rwa_density: total_rwa / total_ead
    """

    counterparty_count: int
    total_ead: Decimal
    total_base_rwa: Decimal
    total_rwa: Decimal
    adjusted_count: int = 0
    portfolio_adjusted_count: int = 0
    total_adjustment: Decimal = field(default_factory=lambda: Decimal("0"))
    adjustment_percentage: Decimal = field(default_factory=lambda: Decimal("0"))
    rwa_density: Decimal = field(default_factory=lambda: Decimal("0"))


# =============================================================================
# Response Models - Errors
# =============================================================================


@dataclass(frozen=True)
class APIError:
    """
    User-friendly error representation for API responses.

    Converts internal CalculationError to a format suitable
    for UI display and logging.

    Attributes:
        code: Error code (e.g., "IRB001")
        message: User-friendly error message
        severity: Error severity ("warning", "error", "critical")
        category: Error category for grouping
        details: Additional context (counterparty_reference, field_name, etc.)
    """

    code: str
    message: str
    severity: Literal["warning", "error", "critical"]
    category: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"[{self.code}] {self.severity.upper()}: {self.message}"


# =============================================================================
# Response Models - Performance
# =============================================================================


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Performance metrics for a portfolio run.

    Attributes:
        started_at: Calculation start timestamp
        completed_at: Calculation end timestamp
        duration_seconds: Total calculation time in seconds
        counterparty_count: Number of counterparties processed
    """

    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    counterparty_count: int

    @property
    def counterparties_per_second(self) -> float:
        """Calculate processing throughput."""
        if self.duration_seconds > 0:
            return self.counterparty_count / self.duration_seconds
        return 0.0


# =============================================================================
# Response Models - Main Responses
# =============================================================================


class _ErrorCounts:
    errors: list[APIError]

    @property
    def has_warnings(self) -> bool:
        """Check if there are any warnings."""
        return any(e.severity == "warning" for e in self.errors)

    @property
    def has_errors(self) -> bool:
        """Check if there are any errors (not warnings)."""
        return any(e.severity in ("error", "critical") for e in self.errors)

    @property
    def warning_count(self) -> int:
        """Count of warnings."""
        return sum(1 for e in self.errors if e.severity == "warning")

    @property
    def error_count(self) -> int:
        """Count of errors (not warnings)."""
        return sum(1 for e in self.errors if e.severity in ("error", "critical"))


@dataclass(frozen=True)
class CalculationResponse(_ErrorCounts):
    """
    Response model for a single-counterparty calculation.

    A rejected calculation carries no partial result.

    Attributes:
        success: Whether the calculation produced a result
        result: RWAResult, or None if rejected
        errors: Rejection reason or data-quality warnings
    """

    success: bool
    result: RWAResult | None = None
    errors: list[APIError] = field(default_factory=list)


@dataclass(frozen=True)
class PortfolioResponse(_ErrorCounts):
    """
    Response model for a portfolio calculation.

    Attributes:
        success: Whether the portfolio was calculated without critical errors
        summary: Aggregated summary statistics
        results: Materialized DataFrame with one row per accepted counterparty
        summary_by_industry: Breakdown by industry
        summary_by_region: Breakdown by region
        errors: Rejections and warnings encountered
        performance: Performance metrics for the run
    """

    success: bool
    summary: SummaryStatistics
    results: pl.DataFrame
    summary_by_industry: pl.DataFrame | None = None
    summary_by_region: pl.DataFrame | None = None
    errors: list[APIError] = field(default_factory=list)
    performance: PerformanceMetrics | None = None

    @property
    def rejected_counterparties(self) -> list[str]:
        """Counterparties excluded from the results."""
        return [
            e.details["counterparty_reference"]
            for e in self.errors
            if e.severity == "critical" and "counterparty_reference" in e.details
        ]
