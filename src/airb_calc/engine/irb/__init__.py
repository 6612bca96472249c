"""A-IRB corporate risk-weight formulas.

Provides scalar functions and pure Polars expressions for:
- Asset correlation and the AVC multiplier
- Maturity adjustment
- Capital requirement (K) and Vasicek conditional default probability

References:
- CRE31.5-31.7: Corporate risk-weight function
"""

from airb_calc.engine.irb.formulas import (
    avc_multiplier_expr,
    base_correlation_expr,
    calculate_avc_multiplier,
    calculate_base_correlation,
    calculate_capital_requirement,
    calculate_conditional_default_probability,
    calculate_correlation,
    calculate_effective_maturity,
    calculate_maturity_adjustment,
    capital_requirement_expr,
    effective_maturity_expr,
    maturity_adjustment_denominator,
    maturity_adjustment_denominator_expr,
    maturity_adjustment_expr,
    resolve_large_financial,
)

__all__ = [
    "avc_multiplier_expr",
    "base_correlation_expr",
    "calculate_avc_multiplier",
    "calculate_base_correlation",
    "calculate_capital_requirement",
    "calculate_conditional_default_probability",
    "calculate_correlation",
    "calculate_effective_maturity",
    "calculate_maturity_adjustment",
    "capital_requirement_expr",
    "effective_maturity_expr",
    "maturity_adjustment_denominator",
    "maturity_adjustment_denominator_expr",
    "maturity_adjustment_expr",
    "resolve_large_financial",
]
