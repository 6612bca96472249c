"""Domain model components for the A-IRB RWA calculator."""

from airb_calc.domain.enums import (
    AdjustmentScope,
    AdjustmentStage,
    AdjustmentType,
    DistributionMethod,
    ErrorCategory,
    ErrorSeverity,
    PDSource,
    ValidationMode,
)

__all__ = [
    "AdjustmentScope",
    "AdjustmentStage",
    "AdjustmentType",
    "DistributionMethod",
    "ErrorCategory",
    "ErrorSeverity",
    "PDSource",
    "ValidationMode",
]
