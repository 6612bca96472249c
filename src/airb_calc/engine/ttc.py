"""
Through-the-cycle (TTC) PD normalisation.

Blends a point-in-time PD, scaled for the state of the economic cycle,
with a long-term average default rate:

    economic_deviation = 0.5 - macroeconomic_index
    adjustment = 1 + economic_deviation × cyclicality × 2
    ttc_pd = clamp(pit_pd × adjustment × 0.7 + long_term_average × 0.3, 0.0001, 1)

A weak economy (index below 0.5) raises the cycle adjustment, a strong one
lowers it. Weights, neutral point and bounds come from TTCParameters.

TTC PD is derived state on the Counterparty: callers refresh it through
refresh_ttc_pd() or update_risk_parameters() whenever PD, macroeconomic
index, long-term average or cyclicality change. calculate_rwa never
recomputes it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import polars as pl

from airb_calc.contracts.config import CalculationConfig, TTCParameters
from airb_calc.contracts.errors import (
    ERROR_MISSING_FIELD,
    ERROR_MISSING_PD,
    InputValidationError,
    missing_input_error,
)
from airb_calc.contracts.models import TTCInputs
from airb_calc.contracts.validation import coerce_number
from airb_calc.domain.enums import ErrorSeverity

if TYPE_CHECKING:
    from airb_calc.contracts.models import Counterparty

logger = logging.getLogger(__name__)


# =============================================================================
# INDUSTRY CYCLE PROFILES
# =============================================================================

HIGH_CYCLICALITY_INDUSTRIES = ("Banking", "Real Estate", "Construction", "Automotive")
LOW_CYCLICALITY_INDUSTRIES = ("Healthcare", "Utilities", "Consumer Staples")
MODERATE_CYCLICALITY_INDUSTRIES = ("Technology", "Telecommunications")

FINANCIAL_INDUSTRIES = ("Banking", "Financial Services", "Insurance")
STABLE_INDUSTRIES = ("Healthcare", "Utilities")
TRADITIONAL_INDUSTRIES = ("Retail", "Manufacturing")
TECHNOLOGY_INDUSTRIES = ("Technology", "Telecommunications")

# Current economic conditions, slightly above neutral
CURRENT_MACROECONOMIC_INDEX = 0.6

# Fields whose change invalidates the stored TTC PD
TTC_DRIVER_FIELDS = frozenset({"pd", "macroeconomic_index", "long_term_average", "cyclicality"})


def industry_cyclicality(industry: str | None) -> float:
    """Sensitivity of an industry's default rates to the economic cycle."""
    if industry in HIGH_CYCLICALITY_INDUSTRIES:
        return 0.8
    if industry in LOW_CYCLICALITY_INDUSTRIES:
        return 0.3
    if industry in MODERATE_CYCLICALITY_INDUSTRIES:
        return 0.6
    return 0.5


def industry_long_term_average(industry: str | None) -> float:
    """Long-term average default rate of an industry."""
    if industry in FINANCIAL_INDUSTRIES:
        return 0.015
    if industry in STABLE_INDUSTRIES:
        return 0.01
    if industry in TRADITIONAL_INDUSTRIES:
        return 0.025
    if industry in TECHNOLOGY_INDUSTRIES:
        return 0.03
    return 0.02


# =============================================================================
# TTC PD
# =============================================================================


_TTC_INPUT_CODES = (
    ("point_in_time_pd", ERROR_MISSING_PD),
    ("macroeconomic_index", ERROR_MISSING_FIELD),
    ("long_term_average", ERROR_MISSING_FIELD),
    ("cyclicality", ERROR_MISSING_FIELD),
)


def _finite_inputs(inputs: TTCInputs) -> tuple[float, float, float, float]:
    values = []
    for field_name, code in _TTC_INPUT_CODES:
        raw = getattr(inputs, field_name)
        number = coerce_number(raw)
        if number is None:
            raise InputValidationError(
                missing_input_error(code, field_name, raw, severity=ErrorSeverity.CRITICAL)
            )
        values.append(number)
    return tuple(values)


def calculate_ttc_pd(inputs: TTCInputs, params: TTCParameters | None = None) -> float:
    """
    Normalise a point-in-time PD to a through-the-cycle PD.

    Args:
        inputs: PIT PD, macroeconomic index, long-term average and cyclicality
        params: TTC parameters (defaults if None)

    Returns:
        TTC PD clamped to [pd_floor, pd_cap]

    Raises:
        InputValidationError: If an input is NaN, infinite or non-numeric

    Example:
        calculate_ttc_pd(TTCInputs(0.02, 0.5, 0.02, 0.5))  # ≈ 0.02, neutral economy
    """
    pit_pd, macro, lta, cyc = _finite_inputs(inputs)
    p = params if params is not None else TTCParameters()

    economic_deviation = float(p.neutral_index) - macro
    adjustment = 1.0 + economic_deviation * cyc * float(p.cycle_sensitivity)
    adjusted_pd = pit_pd * adjustment

    ttc_pd = (
        adjusted_pd * float(p.pit_weight)
        + lta * float(p.long_term_weight)
    )
    return min(max(ttc_pd, float(p.pd_floor)), float(p.pd_cap))


def ttc_pd_expr(
    pd: str = "pd",
    macroeconomic_index: str = "macroeconomic_index",
    long_term_average: str = "long_term_average",
    cyclicality: str = "cyclicality",
    params: TTCParameters | None = None,
) -> pl.Expr:
    """
    Pure Polars expression for the TTC PD.

    Null cycle inputs take the configured defaults; a null PD yields null.
    """
    p = params if params is not None else TTCParameters()

    macro = pl.col(macroeconomic_index).fill_null(float(p.default_macroeconomic_index))
    lta = pl.col(long_term_average).fill_null(float(p.default_long_term_average))
    cyc = pl.col(cyclicality).fill_null(float(p.default_cyclicality))

    adjustment = 1.0 + (float(p.neutral_index) - macro) * cyc * float(p.cycle_sensitivity)
    ttc_pd = (
        pl.col(pd) * adjustment * float(p.pit_weight)
        + lta * float(p.long_term_weight)
    )
    return ttc_pd.clip(float(p.pd_floor), float(p.pd_cap))


def ttc_inputs_for(
    counterparty: Counterparty,
    params: TTCParameters | None = None,
) -> TTCInputs | None:
    """
    Collect a counterparty's TTC inputs, defaulting missing cycle data.

    Returns:
        TTCInputs, or None if the counterparty has no numeric PD
    """
    p = params if params is not None else TTCParameters()

    pit_pd = coerce_number(counterparty.pd)
    if pit_pd is None:
        return None

    macro = coerce_number(counterparty.macroeconomic_index)
    lta = coerce_number(counterparty.long_term_average)
    cyc = coerce_number(counterparty.cyclicality)

    return TTCInputs(
        point_in_time_pd=pit_pd,
        macroeconomic_index=float(p.default_macroeconomic_index) if macro is None else macro,
        long_term_average=float(p.default_long_term_average) if lta is None else lta,
        cyclicality=float(p.default_cyclicality) if cyc is None else cyc,
    )


def refresh_ttc_pd(
    counterparty: Counterparty,
    config: CalculationConfig | None = None,
) -> float | None:
    """
    Recompute and store a counterparty's TTC PD from its PD-affecting fields.

    Returns:
        The new TTC PD, or None if the counterparty has no numeric PD
    """
    config = config if config is not None else CalculationConfig.default()

    inputs = ttc_inputs_for(counterparty, config.ttc)
    counterparty.ttc_pd = calculate_ttc_pd(inputs, config.ttc) if inputs is not None else None

    logger.debug(
        "Counterparty %s: TTC PD refreshed to %s",
        counterparty.counterparty_id,
        counterparty.ttc_pd,
    )
    return counterparty.ttc_pd


def update_risk_parameters(
    counterparty: Counterparty,
    config: CalculationConfig | None = None,
    **changes: Any,
) -> Counterparty:
    """
    Change risk parameters on a counterparty, keeping TTC PD consistent.

    The TTC PD is recomputed whenever pd, macroeconomic_index,
    long_term_average or cyclicality change.

    Args:
        counterparty: Counterparty to update in place
        config: Calculation configuration (defaults if None)
        **changes: Field name to new value

    Returns:
        The updated counterparty

    Raises:
        ValueError: If ttc_pd is edited directly or a field does not exist
    """
    if "ttc_pd" in changes:
        raise ValueError(
            "ttc_pd is derived from pd, macroeconomic_index, long_term_average "
            "and cyclicality; change those instead"
        )

    unknown = [name for name in changes if name not in type(counterparty).__dataclass_fields__]
    if unknown:
        raise ValueError(f"Unknown counterparty fields: {', '.join(sorted(unknown))}")

    for name, value in changes.items():
        setattr(counterparty, name, value)

    if TTC_DRIVER_FIELDS.intersection(changes):
        refresh_ttc_pd(counterparty, config)

    return counterparty


def generate_ttc_inputs(counterparty: Counterparty) -> TTCInputs | None:
    """
    Industry-driven TTC inputs for a counterparty without cycle data.

    Cyclicality and long-term average come from the industry profile;
    the macroeconomic index reflects current conditions.

    Returns:
        TTCInputs, or None if the counterparty has no numeric PD
    """
    pit_pd = coerce_number(counterparty.pd)
    if pit_pd is None:
        return None

    return TTCInputs(
        point_in_time_pd=pit_pd,
        macroeconomic_index=CURRENT_MACROECONOMIC_INDEX,
        long_term_average=industry_long_term_average(counterparty.industry),
        cyclicality=industry_cyclicality(counterparty.industry),
    )
