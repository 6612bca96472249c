"""
Error handling contracts for the A-IRB RWA calculator.

Provides structured error representation:
- CalculationError: Immutable error details with regulatory references
- LazyFrameResult: Combines LazyFrame output with accumulated errors
- DomainError: Raised when a formula input leaves its mathematical domain
- InputValidationError: Raised for incomplete records under strict validation

Domain errors are raised rather than propagated as NaN, since NaN silently
corrupts every downstream value. The portfolio path converts them into
accumulated CalculationErrors so that one bad counterparty does not stop
the rest of the portfolio.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from airb_calc.domain.enums import ErrorCategory, ErrorSeverity

if TYPE_CHECKING:
    import polars as pl


@dataclass(frozen=True)
class CalculationError:
    """
    Immutable representation of a calculation error or warning.

    Attributes:
        code: Unique error code (e.g., "IRB001", "ADJ001")
              Format: {COMPONENT}{NUMBER} where COMPONENT is 2-5 chars
        message: Human-readable description of the issue
        severity: Error severity level (WARNING, ERROR, CRITICAL)
        category: Error category for filtering (DATA_QUALITY, CALCULATION, etc.)
        counterparty_reference: Optional reference to affected counterparty
        regulatory_reference: Optional regulatory paragraph (e.g., "CRE31.5")
        field_name: Optional name of the problematic field
        expected_value: Optional description of expected value/format
        actual_value: Optional actual value that caused the error
    """

    code: str
    message: str
    severity: ErrorSeverity
    category: ErrorCategory
    counterparty_reference: str | None = None
    regulatory_reference: str | None = None
    field_name: str | None = None
    expected_value: str | None = None
    actual_value: str | None = None

    def __str__(self) -> str:
        """Human-readable error representation."""
        parts = [f"[{self.code}] {self.severity.value.upper()}: {self.message}"]

        if self.counterparty_reference:
            parts.append(f"Counterparty: {self.counterparty_reference}")
        if self.regulatory_reference:
            parts.append(f"Ref: {self.regulatory_reference}")

        return " | ".join(parts)

    def with_counterparty(self, counterparty_reference: str | None) -> CalculationError:
        """Return a copy tagged with the affected counterparty."""
        return CalculationError(
            code=self.code,
            message=self.message,
            severity=self.severity,
            category=self.category,
            counterparty_reference=counterparty_reference,
            regulatory_reference=self.regulatory_reference,
            field_name=self.field_name,
            expected_value=self.expected_value,
            actual_value=self.actual_value,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "counterparty_reference": self.counterparty_reference,
            "regulatory_reference": self.regulatory_reference,
            "field_name": self.field_name,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
        }


class DomainError(ValueError):
    """
    A formula input outside its mathematical domain.

    Raised for PD <= 0 or >= 1 (inverse normal, ln) and correlation
    outside [0, 1) (K formula). The computation for the counterparty is
    rejected; no partial result is produced.
    """

    def __init__(self, error: CalculationError) -> None:
        super().__init__(str(error))
        self.error = error


class InputValidationError(ValueError):
    """A missing or non-numeric input under strict validation."""

    def __init__(self, error: CalculationError) -> None:
        super().__init__(str(error))
        self.error = error


@dataclass
class LazyFrameResult:
    """
    Result container combining a LazyFrame with accumulated errors.

    Implements the Result pattern for LazyFrame operations, allowing
    errors to be collected without throwing exceptions. Rows rejected
    with a CRITICAL error are not present in the frame.

    Attributes:
        frame: The resulting LazyFrame
        errors: List of errors/warnings encountered during processing
    """

    frame: pl.LazyFrame
    errors: list[CalculationError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if any errors (not warnings) occurred."""
        return any(
            e.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
            for e in self.errors
        )

    @property
    def has_critical_errors(self) -> bool:
        """Check if any critical errors occurred."""
        return any(e.severity == ErrorSeverity.CRITICAL for e in self.errors)

    @property
    def warnings(self) -> list[CalculationError]:
        """Get only warning-level issues."""
        return [e for e in self.errors if e.severity == ErrorSeverity.WARNING]

    @property
    def critical_errors(self) -> list[CalculationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == ErrorSeverity.CRITICAL]

    @property
    def rejected_counterparties(self) -> list[str]:
        """References of counterparties whose computation was rejected."""
        return [
            e.counterparty_reference
            for e in self.critical_errors
            if e.counterparty_reference is not None
        ]

    def errors_by_category(self, category: ErrorCategory) -> list[CalculationError]:
        """Filter errors by category."""
        return [e for e in self.errors if e.category == category]

    def errors_by_counterparty(self, counterparty_reference: str) -> list[CalculationError]:
        """Get all errors for a specific counterparty."""
        return [
            e for e in self.errors if e.counterparty_reference == counterparty_reference
        ]

    def add_error(self, error: CalculationError) -> None:
        """Add an error to the result."""
        self.errors.append(error)

    def add_errors(self, errors: list[CalculationError]) -> None:
        """Add multiple errors to the result."""
        self.errors.extend(errors)


# =============================================================================
# ERROR CODE CONSTANTS
# =============================================================================

# Data quality error codes
ERROR_MISSING_FIELD = "DQ001"
ERROR_UNKNOWN_RATING = "DQ003"

# Schema error codes
ERROR_MISSING_COLUMN = "SCH001"
ERROR_TYPE_MISMATCH = "SCH002"

# IRB error codes
ERROR_PD_OUT_OF_RANGE = "IRB001"
ERROR_MATURITY_INVALID = "IRB003"
ERROR_MISSING_PD = "IRB004"
ERROR_MISSING_LGD = "IRB005"
ERROR_CORRELATION_OUT_OF_RANGE = "IRB006"
ERROR_MATURITY_ADJUSTMENT_INVALID = "IRB007"

# Adjustment error codes
ERROR_INVALID_ADJUSTMENT = "ADJ001"
ERROR_UNKNOWN_ADJUSTMENT_TYPE = "ADJ002"


# =============================================================================
# ERROR FACTORY FUNCTIONS
# =============================================================================


def pd_domain_error(
    pd: object,
    field_name: str = "pd",
    counterparty_reference: str | None = None,
) -> CalculationError:
    """Create a PD-outside-(0,1) domain error."""
    return CalculationError(
        code=ERROR_PD_OUT_OF_RANGE,
        message=f"Probability {pd!r} is outside the open interval (0, 1)",
        severity=ErrorSeverity.CRITICAL,
        category=ErrorCategory.CALCULATION,
        counterparty_reference=counterparty_reference,
        regulatory_reference="CRE31.4",
        field_name=field_name,
        expected_value="0 < pd < 1",
        actual_value=repr(pd),
    )


def correlation_domain_error(
    correlation: object,
    counterparty_reference: str | None = None,
) -> CalculationError:
    """Create a correlation-outside-[0,1) domain error."""
    return CalculationError(
        code=ERROR_CORRELATION_OUT_OF_RANGE,
        message=f"Correlation {correlation!r} is outside [0, 1)",
        severity=ErrorSeverity.CRITICAL,
        category=ErrorCategory.CALCULATION,
        counterparty_reference=counterparty_reference,
        regulatory_reference="CRE31.5",
        field_name="correlation",
        expected_value="0 <= correlation < 1",
        actual_value=repr(correlation),
    )


def maturity_adjustment_domain_error(
    pd: object,
    denominator: float,
    counterparty_reference: str | None = None,
) -> CalculationError:
    """Create an error for a PD whose maturity adjustment denominator is not positive."""
    return CalculationError(
        code=ERROR_MATURITY_ADJUSTMENT_INVALID,
        message=(
            f"Maturity adjustment undefined for PD {pd!r}: "
            f"1 - 1.5 × b = {denominator:.6g} is not positive"
        ),
        severity=ErrorSeverity.CRITICAL,
        category=ErrorCategory.CALCULATION,
        counterparty_reference=counterparty_reference,
        regulatory_reference="CRE31.7",
        field_name="pd",
        expected_value="1 - 1.5 × b > 0",
        actual_value=repr(pd),
    )


def missing_input_error(
    code: str,
    field_name: str,
    actual_value: object,
    default: object | None = None,
    counterparty_reference: str | None = None,
    severity: ErrorSeverity = ErrorSeverity.WARNING,
) -> CalculationError:
    """
    Create a missing/non-numeric input error.

    With a default the error documents the substitution (WARNING);
    without one it is the rejection raised under strict validation.
    """
    if default is not None:
        message = f"Field '{field_name}' is missing or non-numeric; defaulted to {default}"
    else:
        message = f"Field '{field_name}' is missing or non-numeric"
    return CalculationError(
        code=code,
        message=message,
        severity=severity,
        category=ErrorCategory.DATA_QUALITY,
        counterparty_reference=counterparty_reference,
        field_name=field_name,
        expected_value="finite number",
        actual_value=repr(actual_value),
    )


def unknown_rating_warning(
    rating: str,
    default_pd: float,
    counterparty_reference: str | None = None,
) -> CalculationError:
    """Create a warning for a rating missing from the rating table."""
    return CalculationError(
        code=ERROR_UNKNOWN_RATING,
        message=f"Rating {rating!r} not found in rating table; PD defaulted to {default_pd}",
        severity=ErrorSeverity.WARNING,
        category=ErrorCategory.DATA_QUALITY,
        counterparty_reference=counterparty_reference,
        field_name="credit_rating",
        actual_value=repr(rating),
    )


def adjustment_warning(
    code: str,
    message: str,
    counterparty_reference: str | None = None,
    actual_value: str | None = None,
) -> CalculationError:
    """Create an adjustment-related warning (adjustment treated as absent)."""
    return CalculationError(
        code=code,
        message=message,
        severity=ErrorSeverity.WARNING,
        category=ErrorCategory.ADJUSTMENT,
        counterparty_reference=counterparty_reference,
        actual_value=actual_value,
    )
