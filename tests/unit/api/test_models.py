"""Unit tests for the API models module.

Tests cover:
- Request and response model immutability
- Error counting on responses
- PerformanceMetrics throughput
- Rejected counterparties on PortfolioResponse
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import polars as pl
import pytest

from airb_calc.api.errors import create_api_error
from airb_calc.api.models import (
    CalculationRequest,
    CalculationResponse,
    PerformanceMetrics,
    PortfolioResponse,
    SummaryStatistics,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def summary() -> SummaryStatistics:
    return SummaryStatistics(
        counterparty_count=2,
        total_ead=Decimal("1500000"),
        total_base_rwa=Decimal("1200000"),
        total_rwa=Decimal("1100000"),
    )


@pytest.fixture
def mixed_errors() -> list:
    return [
        create_api_error("IRB005", "LGD defaulted", severity="warning",
                         counterparty_reference="CP001"),
        create_api_error("IRB001", "PD out of range", severity="critical",
                         counterparty_reference="CP002"),
        create_api_error("SCH002", "Type mismatch", severity="critical",
                         category="Schema Validation"),
    ]


# =============================================================================
# Request Tests
# =============================================================================


class TestCalculationRequest:
    """Tests for CalculationRequest."""

    def test_defaults(self) -> None:
        request = CalculationRequest(counterparty={"id": "CP001"})

        assert request.counterparty_adjustment is None
        assert request.portfolio_adjustment is None
        assert request.refresh_ttc is False

    def test_frozen(self) -> None:
        request = CalculationRequest(counterparty={"id": "CP001"})

        with pytest.raises(AttributeError):
            request.refresh_ttc = True  # type: ignore[misc]


# =============================================================================
# Response Tests
# =============================================================================


class TestSummaryStatistics:
    """Tests for SummaryStatistics defaults."""

    def test_defaults(self, summary: SummaryStatistics) -> None:
        assert summary.adjusted_count == 0
        assert summary.total_adjustment == Decimal("0")
        assert summary.rwa_density == Decimal("0")


class TestCalculationResponse:
    """Tests for CalculationResponse error counting."""

    def test_no_errors(self) -> None:
        response = CalculationResponse(success=True)

        assert not response.has_warnings
        assert not response.has_errors
        assert response.warning_count == 0

    def test_counts(self, mixed_errors: list) -> None:
        response = CalculationResponse(success=False, errors=mixed_errors)

        assert response.has_warnings
        assert response.has_errors
        assert response.warning_count == 1
        assert response.error_count == 2


class TestPortfolioResponse:
    """Tests for PortfolioResponse."""

    def test_rejected_counterparties(self, summary: SummaryStatistics, mixed_errors: list) -> None:
        response = PortfolioResponse(
            success=False,
            summary=summary,
            results=pl.DataFrame(),
            errors=mixed_errors,
        )

        assert response.rejected_counterparties == ["CP002"]
        assert response.summary_by_industry is None


class TestPerformanceMetrics:
    """Tests for PerformanceMetrics."""

    def test_throughput(self) -> None:
        started = datetime(2024, 1, 1, 12, 0, 0)
        metrics = PerformanceMetrics(
            started_at=started,
            completed_at=started + timedelta(seconds=2),
            duration_seconds=2.0,
            counterparty_count=1000,
        )

        assert metrics.counterparties_per_second == 500.0

    def test_zero_duration(self) -> None:
        now = datetime(2024, 1, 1)
        metrics = PerformanceMetrics(
            started_at=now,
            completed_at=now,
            duration_seconds=0.0,
            counterparty_count=10,
        )

        assert metrics.counterparties_per_second == 0.0
