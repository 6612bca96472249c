"""
Domain enums for the A-IRB RWA calculator.

Defines core enumerations used throughout the calculation pipeline:
- AdjustmentType: Kind of manual RWA override (absolute, additive, ...)
- AdjustmentScope: Counterparty-level vs portfolio-level override
- AdjustmentStage: Stages of the adjustment layering state machine
- DistributionMethod: How a portfolio override is spread across counterparties
- PDSource: Which PD fed the capital formula
- ValidationMode: Lenient defaulting vs strict rejection of bad inputs
- ErrorSeverity / ErrorCategory: Classification of calculation errors
"""

from enum import Enum


class AdjustmentType(Enum):
    """
    Manual RWA adjustment kinds.

    Each kind transforms the RWA value entering its stage:
        ABSOLUTE: replace with a target RWA
        ADDITIVE: add a delta
        MULTIPLICATIVE: scale by a multiplier
        PERCENTAGE: scale by (1 + percentage / 100)
    """

    ABSOLUTE = "absolute"
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"
    PERCENTAGE = "percentage"


class AdjustmentScope(Enum):
    """
    Scope at which an adjustment was made.

    Counterparty adjustments are always applied before portfolio adjustments.
    """

    COUNTERPARTY = "counterparty"
    PORTFOLIO = "portfolio"


class AdjustmentStage(Enum):
    """
    Stages of the adjustment layering engine.

    BASE -> COUNTERPARTY_ADJUSTED -> PORTFOLIO_ADJUSTED, each transition optional.
    """

    BASE = "base"
    COUNTERPARTY_ADJUSTED = "counterparty_adjusted"
    PORTFOLIO_ADJUSTED = "portfolio_adjusted"


class DistributionMethod(Enum):
    """
    Distribution of a portfolio-level additive override across counterparties.
    """

    # Share in proportion to baseline RWA
    PROPORTIONAL = "proportional"

    # Same amount for every selected counterparty
    EQUAL = "equal"

    # Share in proportion to RWA density (RWA / EAD)
    RISK_WEIGHTED = "risk_weighted"


class PDSource(Enum):
    """
    Origin of the PD used in the capital formula.
    """

    # External credit rating mapped through the rating table
    RATING = "rating"

    # Through-the-cycle PD
    TTC = "ttc"

    # Point-in-time PD (fallback when no TTC PD is available)
    PIT = "pit"

    # Configured default (lenient validation only)
    DEFAULT = "default"


class ValidationMode(Enum):
    """
    Treatment of missing or non-numeric inputs.

    LENIENT: substitute documented defaults and record a warning
    STRICT: reject the counterparty
    """

    LENIENT = "lenient"
    STRICT = "strict"


class ErrorSeverity(Enum):
    """
    Severity levels for calculation errors.

    Used to classify issues encountered during RWA calculation.
    """

    # Informational warning - calculation proceeds
    WARNING = "warning"

    # Error that may affect result accuracy
    ERROR = "error"

    # Critical error - the computation for the counterparty is rejected
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """
    Categories for calculation errors.

    Enables filtering and analysis of error types.
    """

    # Missing or invalid input data
    DATA_QUALITY = "data_quality"

    # Schema validation failures
    SCHEMA_VALIDATION = "schema_validation"

    # Configuration issues
    CONFIGURATION = "configuration"

    # Formula domain violations (PD outside (0,1), correlation >= 1)
    CALCULATION = "calculation"

    # Manual adjustment issues
    ADJUSTMENT = "adjustment"
