"""
Configuration contracts for the A-IRB RWA calculator.

Provides immutable configuration dataclasses:
- IRBParameters: Basel IRB constants (confidence level, maturity bounds, AVC)
- TTCParameters: Through-the-cycle PD blending parameters
- InputDefaults: Values substituted for missing inputs under lenient validation
- ValidationPolicy: Lenient defaulting vs strict rejection
- CalculationConfig: Master configuration with factory methods

Factory methods .default() and .strict() provide self-documenting
configuration for the two supported validation regimes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from airb_calc.domain.enums import ValidationMode

# Type alias for Polars collection engine
PolarsEngine = Literal["auto", "in-memory", "streaming", "gpu"]


@dataclass(frozen=True)
class IRBParameters:
    """
    Basel IRB risk-weight function constants.

    Corporate correlation (CRE31.5):
        R = 0.12 × f(PD) + 0.24 × (1 - f(PD)), f(PD) = (1 - e^(-50·PD)) / (1 - e^(-50))

    AVC multiplier (CRE31.6): 1.25 for large or unregulated financial institutions.

    All values expressed as decimals.
    """

    confidence_level: Decimal = Decimal("0.999")
    rwa_multiplier: Decimal = Decimal("12.5")  # 1 / 8% capital ratio
    maturity_floor: Decimal = Decimal("1.0")
    maturity_cap: Decimal = Decimal("5.0")
    avc_multiplier: Decimal = Decimal("1.25")
    correlation_min: Decimal = Decimal("0.12")
    correlation_max: Decimal = Decimal("0.24")
    correlation_decay: Decimal = Decimal("50")
    # Total assets at or above which a financial institution counts as large
    large_financial_asset_threshold: Decimal = Decimal("100000000000")

    @classmethod
    def basel(cls) -> IRBParameters:
        """Standard Basel A-IRB corporate parameters."""
        return cls()


@dataclass(frozen=True)
class TTCParameters:
    """
    Parameters for normalising a point-in-time PD to a through-the-cycle PD.

    economic_deviation = neutral_index - macroeconomic_index
    adjustment = 1 + economic_deviation × cyclicality × cycle_sensitivity
    ttc_pd = clamp(pit_pd × adjustment × pit_weight + long_term_average × long_term_weight,
                   pd_floor, pd_cap)
    """

    neutral_index: Decimal = Decimal("0.5")
    cycle_sensitivity: Decimal = Decimal("2")
    pit_weight: Decimal = Decimal("0.7")
    long_term_weight: Decimal = Decimal("0.3")
    pd_floor: Decimal = Decimal("0.0001")
    pd_cap: Decimal = Decimal("1")

    # Defaults for counterparties with no cycle data
    default_macroeconomic_index: Decimal = Decimal("0.5")
    default_long_term_average: Decimal = Decimal("0.02")
    default_cyclicality: Decimal = Decimal("0.5")


@dataclass(frozen=True)
class InputDefaults:
    """
    Values substituted for missing or non-numeric inputs (lenient mode only).
    """

    pd: Decimal = Decimal("0.01")
    lgd: Decimal = Decimal("0.45")
    maturity: Decimal = Decimal("2.5")
    ead: Decimal = Decimal("0")

    # PD used when a rating is not found in the rating table
    unknown_rating_pd: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class ValidationPolicy:
    """
    Policy for incomplete counterparty records.

    LENIENT keeps the pipeline producing results by substituting defaults,
    recording one warning per substitution. STRICT raises instead.
    Domain errors (PD outside (0,1), correlation >= 1) are raised under
    both modes.
    """

    mode: ValidationMode = ValidationMode.LENIENT
    defaults: InputDefaults = field(default_factory=InputDefaults)

    @property
    def is_strict(self) -> bool:
        """Check if missing inputs are rejected."""
        return self.mode == ValidationMode.STRICT

    @classmethod
    def lenient(cls) -> ValidationPolicy:
        """Substitute defaults for missing inputs."""
        return cls(mode=ValidationMode.LENIENT, defaults=InputDefaults())

    @classmethod
    def strict(cls) -> ValidationPolicy:
        """Reject counterparties with missing inputs."""
        return cls(mode=ValidationMode.STRICT, defaults=InputDefaults())


@dataclass(frozen=True)
class CalculationConfig:
    """
    Master configuration for RWA calculations.

    Immutable configuration container bundling formula constants,
    TTC parameters and the validation policy. Use factory methods
    .default() and .strict() to create correctly configured instances.

    Attributes:
        irb: IRB formula constants
        ttc: TTC PD normalisation parameters
        validation: Treatment of missing inputs
        collect_engine: Polars engine for .collect() in the portfolio path
    """

    irb: IRBParameters = field(default_factory=IRBParameters.basel)
    ttc: TTCParameters = field(default_factory=TTCParameters)
    validation: ValidationPolicy = field(default_factory=ValidationPolicy.lenient)
    collect_engine: PolarsEngine = "auto"

    @property
    def is_strict(self) -> bool:
        """Check if the validation policy rejects incomplete records."""
        return self.validation.is_strict

    @classmethod
    def default(cls, collect_engine: PolarsEngine = "auto") -> CalculationConfig:
        """
        Create the default analytical configuration.

        - Basel A-IRB corporate constants (99.9% confidence, maturity in [1, 5])
        - AVC multiplier 1.25
        - Lenient validation (LGD 45%, PD 1%, maturity 2.5y, EAD 0 defaults)
        """
        return cls(
            irb=IRBParameters.basel(),
            ttc=TTCParameters(),
            validation=ValidationPolicy.lenient(),
            collect_engine=collect_engine,
        )

    @classmethod
    def strict(cls, collect_engine: PolarsEngine = "auto") -> CalculationConfig:
        """
        Create a configuration that rejects incomplete records.

        Same formula constants as .default(), but missing or non-numeric
        PD/LGD/EAD/maturity raise InputValidationError.
        """
        return cls(
            irb=IRBParameters.basel(),
            ttc=TTCParameters(),
            validation=ValidationPolicy.strict(),
            collect_engine=collect_engine,
        )
