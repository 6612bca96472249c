"""
Contracts module for the A-IRB RWA calculator.

Provides configuration, data transfer objects, error types and validation
utilities shared by the engine and the API facade.

Submodules:
- config: CalculationConfig and related configuration classes
- errors: CalculationError, DomainError and LazyFrameResult
- models: Counterparty, adjustment variants, TTCInputs and RWAResult
- validation: Input coercion, default resolution and schema validation
"""

# Configuration contracts
from airb_calc.contracts.config import (
    CalculationConfig,
    InputDefaults,
    IRBParameters,
    TTCParameters,
    ValidationPolicy,
)

# Error handling contracts
from airb_calc.contracts.errors import (
    ERROR_CORRELATION_OUT_OF_RANGE,
    ERROR_INVALID_ADJUSTMENT,
    ERROR_MATURITY_ADJUSTMENT_INVALID,
    ERROR_MATURITY_INVALID,
    ERROR_MISSING_COLUMN,
    ERROR_MISSING_FIELD,
    ERROR_MISSING_LGD,
    ERROR_MISSING_PD,
    ERROR_PD_OUT_OF_RANGE,
    ERROR_TYPE_MISMATCH,
    ERROR_UNKNOWN_ADJUSTMENT_TYPE,
    ERROR_UNKNOWN_RATING,
    CalculationError,
    DomainError,
    InputValidationError,
    LazyFrameResult,
)

# Data model contracts
from airb_calc.contracts.models import (
    AbsoluteAdjustment,
    AdditiveAdjustment,
    Adjustment,
    Counterparty,
    MultiplicativeAdjustment,
    PercentageAdjustment,
    RWAResult,
    TTCInputs,
    make_adjustment,
    parse_adjustment,
)

# Validation utilities
from airb_calc.contracts.validation import (
    coerce_number,
    validate_schema,
    validate_schema_to_errors,
)

__all__ = [
    # Config
    "CalculationConfig",
    "InputDefaults",
    "IRBParameters",
    "TTCParameters",
    "ValidationPolicy",
    # Errors
    "ERROR_CORRELATION_OUT_OF_RANGE",
    "ERROR_INVALID_ADJUSTMENT",
    "ERROR_MATURITY_ADJUSTMENT_INVALID",
    "ERROR_MATURITY_INVALID",
    "ERROR_MISSING_COLUMN",
    "ERROR_MISSING_FIELD",
    "ERROR_MISSING_LGD",
    "ERROR_MISSING_PD",
    "ERROR_PD_OUT_OF_RANGE",
    "ERROR_TYPE_MISMATCH",
    "ERROR_UNKNOWN_ADJUSTMENT_TYPE",
    "ERROR_UNKNOWN_RATING",
    "CalculationError",
    "DomainError",
    "InputValidationError",
    "LazyFrameResult",
    # Models
    "AbsoluteAdjustment",
    "AdditiveAdjustment",
    "Adjustment",
    "Counterparty",
    "MultiplicativeAdjustment",
    "PercentageAdjustment",
    "RWAResult",
    "TTCInputs",
    "make_adjustment",
    "parse_adjustment",
    # Validation
    "coerce_number",
    "validate_schema",
    "validate_schema_to_errors",
]
