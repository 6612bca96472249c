"""
Error conversion utilities for the A-IRB RWA calculator API.

convert_to_api_error: Converts internal CalculationError to user-friendly APIError
convert_errors: Batch conversion of error lists
create_api_error: Factory function for creating APIError instances

Provides user-friendly error messages and categorization for UI display.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from airb_calc.api.models import APIError

if TYPE_CHECKING:
    from airb_calc.contracts.errors import CalculationError


# =============================================================================
# User-Friendly Error Messages
# =============================================================================


ERROR_MESSAGE_OVERRIDES: dict[str, str] = {
    "DQ001": "Required field is missing from the input data",
    "DQ003": "Credit rating not found in the rating table",
    "SCH001": "Required column is missing from the portfolio",
    "SCH002": "Column has incorrect data type",
    "IRB001": "PD value is outside the valid range (0% - 100%, exclusive)",
    "IRB003": "Maturity value is missing or invalid",
    "IRB004": "Required PD value is missing",
    "IRB005": "Required LGD value is missing",
    "IRB006": "Asset correlation is outside the valid range [0, 1)",
    "IRB007": "PD is too small for the maturity adjustment formula",
    "ADJ001": "Adjustment value is invalid; adjustment ignored",
    "ADJ002": "Adjustment type is not recognised; adjustment ignored",
}


CATEGORY_DISPLAY_NAMES: dict[str, str] = {
    "data_quality": "Data Quality",
    "schema_validation": "Schema Validation",
    "configuration": "Configuration",
    "calculation": "Calculation",
    "adjustment": "Adjustment",
}


# =============================================================================
# Conversion Functions
# =============================================================================


def convert_to_api_error(error: CalculationError) -> APIError:
    """
    Convert internal CalculationError to user-friendly APIError.

    Args:
        error: Internal CalculationError from the calculator

    Returns:
        APIError with user-friendly message and details
    """
    category = error.category.value

    return APIError(
        code=error.code,
        message=_get_user_friendly_message(error),
        severity=error.severity.value,
        category=CATEGORY_DISPLAY_NAMES.get(category, category),
        details=_build_error_details(error),
    )


def convert_errors(errors: list[CalculationError]) -> list[APIError]:
    """
    Convert a list of CalculationErrors to APIErrors.

    Args:
        errors: List of internal CalculationError instances

    Returns:
        List of user-friendly APIError instances
    """
    return [convert_to_api_error(error) for error in errors]


def create_api_error(
    code: str,
    message: str,
    severity: str = "error",
    category: str = "Calculation",
    **details: str | None,
) -> APIError:
    """
    Factory function to create APIError with optional details.

    Args:
        code: Error code
        message: Error message
        severity: Error severity (warning, error, critical)
        category: Error category
        **details: Additional context (counterparty_reference, field_name, etc.)

    Returns:
        APIError instance
    """
    filtered_details = {k: v for k, v in details.items() if v is not None}
    return APIError(
        code=code,
        message=message,
        severity=severity,
        category=category,
        details=filtered_details,
    )


# =============================================================================
# Helper Functions
# =============================================================================


def _get_user_friendly_message(error: CalculationError) -> str:
    """
    Get user-friendly message for an error.

    Uses override if available, otherwise falls back to original message.
    """
    base_message = ERROR_MESSAGE_OVERRIDES.get(error.code, error.message)

    context_parts = []
    if error.counterparty_reference:
        context_parts.append(f"Counterparty: {error.counterparty_reference}")
    if error.field_name:
        context_parts.append(f"Field: {error.field_name}")
    if error.actual_value and error.expected_value:
        context_parts.append(f"Expected {error.expected_value}, got {error.actual_value}")

    if context_parts:
        return f"{base_message} ({', '.join(context_parts)})"
    return base_message


def _build_error_details(error: CalculationError) -> dict:
    """
    Build details dictionary from error attributes.

    Only includes non-None values to keep details clean.
    """
    details = {}

    if error.counterparty_reference:
        details["counterparty_reference"] = error.counterparty_reference
    if error.regulatory_reference:
        details["regulatory_reference"] = error.regulatory_reference
    if error.field_name:
        details["field_name"] = error.field_name
    if error.expected_value:
        details["expected_value"] = error.expected_value
    if error.actual_value:
        details["actual_value"] = error.actual_value

    return details


def create_adjustment_error(field_name: str, raw: object) -> APIError:
    """
    Create a warning for a request adjustment that could not be parsed.

    Args:
        field_name: Request field holding the adjustment
        raw: The unparseable adjustment record

    Returns:
        APIError warning; the adjustment is ignored
    """
    return create_api_error(
        "ADJ001",
        f"{ERROR_MESSAGE_OVERRIDES['ADJ001']} (Field: {field_name})",
        severity="warning",
        category=CATEGORY_DISPLAY_NAMES["adjustment"],
        field_name=field_name,
        actual_value=repr(raw),
    )
