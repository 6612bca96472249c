"""Unit tests for the API errors module.

Tests cover:
- convert_to_api_error function
- convert_errors function
- create_api_error factory function
- Error message overrides
- create_adjustment_error
"""

from __future__ import annotations

import pytest

from airb_calc.api.errors import (
    CATEGORY_DISPLAY_NAMES,
    ERROR_MESSAGE_OVERRIDES,
    convert_errors,
    convert_to_api_error,
    create_adjustment_error,
    create_api_error,
)
from airb_calc.api.models import APIError
from airb_calc.contracts.errors import CalculationError, pd_domain_error
from airb_calc.domain.enums import ErrorCategory, ErrorSeverity


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sample_calculation_error() -> CalculationError:
    """Create a sample CalculationError for testing."""
    return CalculationError(
        code="IRB005",
        message="Field 'lgd' is missing or non-numeric",
        severity=ErrorSeverity.WARNING,
        category=ErrorCategory.DATA_QUALITY,
        counterparty_reference="CP001",
        field_name="lgd",
    )


@pytest.fixture
def unmapped_calculation_error() -> CalculationError:
    """Create a CalculationError whose code has no message override."""
    return CalculationError(
        code="CFG001",
        message="Custom configuration problem",
        severity=ErrorSeverity.ERROR,
        category=ErrorCategory.CONFIGURATION,
    )


# =============================================================================
# convert_to_api_error Tests
# =============================================================================


class TestConvertToApiError:
    """Tests for convert_to_api_error function."""

    def test_converts_basic_fields(self, sample_calculation_error: CalculationError) -> None:
        api_error = convert_to_api_error(sample_calculation_error)

        assert isinstance(api_error, APIError)
        assert api_error.code == "IRB005"
        assert api_error.severity == "warning"
        assert api_error.category == "Data Quality"

    def test_uses_message_override(self, sample_calculation_error: CalculationError) -> None:
        api_error = convert_to_api_error(sample_calculation_error)

        assert api_error.message.startswith(ERROR_MESSAGE_OVERRIDES["IRB005"])
        assert "Counterparty: CP001" in api_error.message
        assert "Field: lgd" in api_error.message

    def test_falls_back_to_original_message(
        self, unmapped_calculation_error: CalculationError
    ) -> None:
        api_error = convert_to_api_error(unmapped_calculation_error)

        assert api_error.message == "Custom configuration problem"
        assert api_error.category == "Configuration"
        assert api_error.details == {}

    def test_domain_error_details(self) -> None:
        api_error = convert_to_api_error(pd_domain_error(1.0, counterparty_reference="CP007"))

        assert api_error.severity == "critical"
        assert api_error.category == "Calculation"
        assert api_error.details["regulatory_reference"] == "CRE31.4"
        assert api_error.details["counterparty_reference"] == "CP007"
        assert api_error.details["expected_value"] == "0 < pd < 1"
        assert "Expected 0 < pd < 1, got 1.0" in api_error.message

    def test_every_category_has_display_name(self) -> None:
        assert set(CATEGORY_DISPLAY_NAMES) == {c.value for c in ErrorCategory}


# =============================================================================
# convert_errors Tests
# =============================================================================


class TestConvertErrors:
    """Tests for convert_errors function."""

    def test_converts_list(
        self,
        sample_calculation_error: CalculationError,
        unmapped_calculation_error: CalculationError,
    ) -> None:
        api_errors = convert_errors([sample_calculation_error, unmapped_calculation_error])

        assert [e.code for e in api_errors] == ["IRB005", "CFG001"]

    def test_empty_list(self) -> None:
        assert convert_errors([]) == []


# =============================================================================
# Factory Tests
# =============================================================================


class TestCreateApiError:
    """Tests for create_api_error factory function."""

    def test_defaults(self) -> None:
        api_error = create_api_error("X001", "Something failed")

        assert api_error.severity == "error"
        assert api_error.category == "Calculation"
        assert api_error.details == {}

    def test_filters_none_details(self) -> None:
        api_error = create_api_error(
            "X001",
            "Something failed",
            counterparty_reference="CP001",
            field_name=None,
        )

        assert api_error.details == {"counterparty_reference": "CP001"}

    def test_str(self) -> None:
        api_error = create_api_error("X001", "Something failed", severity="warning")

        assert str(api_error) == "[X001] WARNING: Something failed"


class TestCreateAdjustmentError:
    """Tests for create_adjustment_error."""

    def test_adjustment_warning(self) -> None:
        api_error = create_adjustment_error("portfolio_adjustment", {"type": "bespoke"})

        assert api_error.code == "ADJ001"
        assert api_error.severity == "warning"
        assert api_error.category == "Adjustment"
        assert api_error.details["field_name"] == "portfolio_adjustment"
        assert "bespoke" in api_error.details["actual_value"]
        assert "portfolio_adjustment" in api_error.message
