"""
Input validation for the A-IRB RWA calculator.

Scalar helpers resolve loosely typed counterparty fields under a
ValidationPolicy; LazyFrame helpers check portfolio schemas without
materialising data and add validation flag columns.

Key functions:
- coerce_number: Convert external values to a finite float or None
- resolve_numeric: Apply the validation policy to one numeric field
- require_probability / require_correlation: Formula domain guards
- validate_schema / validate_schema_to_errors: Check LazyFrame schemas
- apply_input_defaults: Fill missing portfolio inputs (lenient mode)
- validate_pd_range: Flag PDs outside the open interval (0, 1)
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import TYPE_CHECKING

import polars as pl

from airb_calc.contracts.errors import (
    ERROR_MISSING_COLUMN,
    ERROR_TYPE_MISMATCH,
    CalculationError,
    DomainError,
    InputValidationError,
    correlation_domain_error,
    missing_input_error,
    pd_domain_error,
)
from airb_calc.domain.enums import ErrorCategory, ErrorSeverity

if TYPE_CHECKING:
    from airb_calc.contracts.config import ValidationPolicy

logger = logging.getLogger(__name__)


# =============================================================================
# SCALAR VALIDATORS
# =============================================================================


def coerce_number(value: object) -> float | None:
    """
    Convert an external value to a finite float.

    Accepts ints, floats, Decimals and numeric strings. Booleans, NaN,
    infinities and anything unparseable count as missing.

    Returns:
        The float value, or None if missing or non-numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def resolve_numeric(
    value: object,
    field_name: str,
    code: str,
    default: Decimal | float,
    policy: ValidationPolicy,
    counterparty_reference: str | None = None,
) -> tuple[float, CalculationError | None]:
    """
    Resolve one numeric input under the validation policy.

    Args:
        value: Raw field value
        field_name: Field name for error reporting
        code: Error code recorded when the value is missing
        default: Value substituted under lenient validation
        policy: Validation policy
        counterparty_reference: Counterparty for error reporting

    Returns:
        Tuple of (resolved value, warning or None)

    Raises:
        InputValidationError: If the value is missing and the policy is strict
    """
    number = coerce_number(value)
    if number is not None:
        return number, None

    if policy.is_strict:
        raise InputValidationError(
            missing_input_error(
                code,
                field_name,
                value,
                counterparty_reference=counterparty_reference,
                severity=ErrorSeverity.CRITICAL,
            )
        )

    fallback = float(default)
    logger.warning(
        "Counterparty %s: %s is missing or non-numeric (%r); using default %s",
        counterparty_reference,
        field_name,
        value,
        fallback,
    )
    return fallback, missing_input_error(
        code,
        field_name,
        value,
        default=fallback,
        counterparty_reference=counterparty_reference,
    )


def require_probability(
    value: float,
    field_name: str = "pd",
    counterparty_reference: str | None = None,
) -> float:
    """
    Check that a probability lies strictly inside (0, 1).

    Raises:
        DomainError: If value <= 0, value >= 1 or value is NaN
    """
    if not (0.0 < value < 1.0):
        raise DomainError(pd_domain_error(value, field_name, counterparty_reference))
    return value


def require_correlation(
    value: float,
    counterparty_reference: str | None = None,
) -> float:
    """
    Check that a correlation lies in [0, 1).

    Raises:
        DomainError: If value < 0, value >= 1 or value is NaN
    """
    if not (0.0 <= value < 1.0):
        raise DomainError(correlation_domain_error(value, counterparty_reference))
    return value


# =============================================================================
# SCHEMA VALIDATORS
# =============================================================================


def validate_schema(
    lf: pl.LazyFrame,
    expected_schema: dict[str, pl.DataType],
    context: str = "",
) -> list[str]:
    """
    Validate LazyFrame schema against expected schema.

    Checks that all expected columns exist with compatible types.
    Does NOT materialize the LazyFrame.

    Args:
        lf: LazyFrame to validate
        expected_schema: Dict mapping column names to expected Polars types
        context: Context string for error messages (e.g., "counterparties")

    Returns:
        List of validation error messages (empty if valid)
    """
    return [error.message for error in validate_schema_to_errors(lf, expected_schema, context)]


def _types_compatible(actual: pl.DataType, expected: pl.DataType) -> bool:
    """
    Check if actual type is compatible with expected type.

    Integer columns are accepted where floats are expected, and
    Null columns (all-missing) are accepted anywhere.
    """
    if actual == expected or actual == pl.Null:
        return True

    numeric_types = {
        pl.Int8, pl.Int16, pl.Int32, pl.Int64,
        pl.UInt8, pl.UInt16, pl.UInt32, pl.UInt64,
        pl.Float32, pl.Float64,
    }
    if actual in numeric_types and expected in numeric_types:
        return True

    string_types = {pl.Utf8, pl.String, pl.Categorical}
    return actual in string_types and expected in string_types


def validate_schema_to_errors(
    lf: pl.LazyFrame,
    expected_schema: dict[str, pl.DataType],
    context: str = "",
) -> list[CalculationError]:
    """
    Validate schema and return CalculationError objects.

    Args:
        lf: LazyFrame to validate
        expected_schema: Dict mapping column names to expected Polars types
        context: Context string for error messages

    Returns:
        List of CalculationError objects for any schema issues
    """
    errors: list[CalculationError] = []
    actual_schema = lf.collect_schema()
    context_prefix = f"[{context}] " if context else ""

    for col_name, expected_type in expected_schema.items():
        if col_name not in actual_schema:
            errors.append(
                CalculationError(
                    code=ERROR_MISSING_COLUMN,
                    message=f"{context_prefix}Missing column: '{col_name}'",
                    severity=ErrorSeverity.CRITICAL,
                    category=ErrorCategory.SCHEMA_VALIDATION,
                    field_name=col_name,
                    expected_value=str(expected_type),
                )
            )
        else:
            actual_type = actual_schema[col_name]
            if not _types_compatible(actual_type, expected_type):
                errors.append(
                    CalculationError(
                        code=ERROR_TYPE_MISMATCH,
                        message=(
                            f"{context_prefix}Type mismatch for '{col_name}': "
                            f"expected {expected_type}, got {actual_type}"
                        ),
                        severity=ErrorSeverity.CRITICAL,
                        category=ErrorCategory.SCHEMA_VALIDATION,
                        field_name=col_name,
                        expected_value=str(expected_type),
                        actual_value=str(actual_type),
                    )
                )

    return errors


# =============================================================================
# FRAME VALIDATORS
# =============================================================================


def ensure_columns(
    lf: pl.LazyFrame,
    defaults: dict[str, pl.Expr],
) -> pl.LazyFrame:
    """
    Add optional columns that are absent from the frame.

    Args:
        lf: Input LazyFrame
        defaults: Column name to expression producing the default column

    Returns:
        LazyFrame with every column of defaults present
    """
    present = set(lf.collect_schema().names())
    missing = [expr.alias(name) for name, expr in defaults.items() if name not in present]
    return lf.with_columns(missing) if missing else lf


def apply_input_defaults(
    lf: pl.LazyFrame,
    policy: ValidationPolicy,
    columns: tuple[str, ...] = ("lgd", "ead", "maturity"),
) -> pl.LazyFrame:
    """
    Fill missing or non-finite numeric inputs with the policy defaults.

    Adds a boolean _defaulted_{col} flag per column so that the caller can
    report one warning per substitution. Under strict validation nothing
    is filled; the flags identify the rows to reject.

    Args:
        lf: LazyFrame with the numeric input columns
        policy: Validation policy
        columns: Columns to resolve

    Returns:
        LazyFrame with filled columns and _defaulted_* flags
    """
    defaults = {
        "pd": policy.defaults.pd,
        "lgd": policy.defaults.lgd,
        "ead": policy.defaults.ead,
        "maturity": policy.defaults.maturity,
    }

    flags = [
        (pl.col(col).is_null() | ~pl.col(col).cast(pl.Float64).is_finite())
        .fill_null(True)
        .alias(f"_defaulted_{col}")
        for col in columns
    ]
    lf = lf.with_columns(flags)

    if policy.is_strict:
        return lf

    return lf.with_columns(
        [
            pl.when(pl.col(f"_defaulted_{col}"))
            .then(pl.lit(float(defaults[col])))
            .otherwise(pl.col(col).cast(pl.Float64))
            .alias(col)
            for col in columns
        ]
    )


def validate_pd_range(
    lf: pl.LazyFrame,
    pd_column: str = "pd_used",
) -> pl.LazyFrame:
    """
    Add validation expression for the open PD interval (0, 1).

    Args:
        lf: LazyFrame to validate
        pd_column: Name of PD column

    Returns:
        LazyFrame with _valid_pd column added
    """
    return lf.with_columns(
        ((pl.col(pd_column) > 0.0) & (pl.col(pd_column) < 1.0))
        .fill_null(False)
        .alias("_valid_pd")
    )


def validate_correlation_range(
    lf: pl.LazyFrame,
    correlation_column: str = "correlation",
) -> pl.LazyFrame:
    """
    Add validation expression for the correlation interval [0, 1).

    Args:
        lf: LazyFrame to validate
        correlation_column: Name of correlation column

    Returns:
        LazyFrame with _valid_correlation column added
    """
    return lf.with_columns(
        ((pl.col(correlation_column) >= 0.0) & (pl.col(correlation_column) < 1.0))
        .fill_null(False)
        .alias("_valid_correlation")
    )
