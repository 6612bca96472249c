"""
A-IRB corporate risk-weight formulas.

Implements asset correlation, the AVC multiplier, the maturity adjustment
and the capital requirement (K) for the Basel A-IRB corporate approach.

Key formulas:
- Correlation R = 0.12 × f(PD) + 0.24 × (1 - f(PD)), f(PD) = (1 - e^(-50·PD)) / (1 - e^(-50))
- AVC: R × 1.25 for large or unregulated financial institutions
- Maturity adjustment MA = (1 + (M - 2.5) × b) / (1 - 1.5 × b), b = (0.11852 - 0.05478 × ln(PD))²
- Capital requirement K = LGD × N[(G(PD) + √R × G(0.999)) / √(1 - R)] × MA
- RWA = K × 12.5 × EAD

Implementation architecture:
- Scalar functions: Per-counterparty calculations with domain checks
- Vectorized expressions: Pure Polars expressions for portfolio processing,
  sharing constants with the scalar functions

References:
- CRE31.5: Correlation
- CRE31.6: Asset value correlation multiplier
- CRE31.7: Maturity adjustment
"""

from __future__ import annotations

import math

import polars as pl

from airb_calc.contracts.config import IRBParameters
from airb_calc.contracts.errors import (
    DomainError,
    maturity_adjustment_domain_error,
    pd_domain_error,
)
from airb_calc.contracts.validation import require_correlation
from airb_calc.engine.stats import (
    normal_cdf,
    normal_cdf_expr,
    normal_inverse,
    normal_inverse_expr,
)


# =============================================================================
# CONSTANTS
# =============================================================================

# Maturity adjustment smoothing coefficients
MA_INTERCEPT = 0.11852
MA_SLOPE = 0.05478
MA_REFERENCE_MATURITY = 2.5


def _params(params: IRBParameters | None) -> IRBParameters:
    return params if params is not None else IRBParameters.basel()


def _as_expr(column: str | pl.Expr) -> pl.Expr:
    return pl.col(column) if isinstance(column, str) else column


# =============================================================================
# SCALAR CALCULATIONS
# =============================================================================


def calculate_base_correlation(pd: float, params: IRBParameters | None = None) -> float:
    """
    PD-dependent asset correlation before the AVC multiplier.

    Bounded in [0.12, 0.24] and strictly decreasing in PD.

    Args:
        pd: Probability of default
        params: IRB parameters (Basel defaults if None)

    Returns:
        Base asset correlation
    """
    p = _params(params)
    decay = float(p.correlation_decay)
    weight = (1.0 - math.exp(-decay * pd)) / (1.0 - math.exp(-decay))
    return float(p.correlation_min) * weight + float(p.correlation_max) * (1.0 - weight)


def resolve_large_financial(
    is_large_financial: bool | None,
    asset_size: float | None = None,
    params: IRBParameters | None = None,
) -> bool:
    """
    Resolve the large-financial flag.

    An explicit flag wins; when it is None the flag is derived from total
    assets against the large-financial threshold.
    """
    if is_large_financial is not None:
        return bool(is_large_financial)
    if asset_size is None:
        return False
    return asset_size >= float(_params(params).large_financial_asset_threshold)


def calculate_avc_multiplier(
    is_financial: bool,
    is_large_financial: bool,
    is_regulated: bool,
    params: IRBParameters | None = None,
) -> float:
    """
    Asset value correlation multiplier.

    Applies to financial institutions that are large or unregulated.

    Returns:
        1.25 (configurable) if is_financial and (is_large_financial or
        not is_regulated), otherwise 1.0
    """
    if is_financial and (is_large_financial or not is_regulated):
        return float(_params(params).avc_multiplier)
    return 1.0


def calculate_correlation(
    pd: float,
    is_financial: bool = False,
    is_large_financial: bool = False,
    is_regulated: bool = True,
    params: IRBParameters | None = None,
) -> float:
    """Asset correlation including the AVC multiplier."""
    return calculate_base_correlation(pd, params) * calculate_avc_multiplier(
        is_financial, is_large_financial, is_regulated, params
    )


def calculate_effective_maturity(maturity: float, params: IRBParameters | None = None) -> float:
    """Clamp maturity to [maturity_floor, maturity_cap]."""
    p = _params(params)
    return min(max(maturity, float(p.maturity_floor)), float(p.maturity_cap))


def maturity_adjustment_denominator(pd: float) -> float:
    """1 - 1.5 × b for a PD > 0; positive only for PD above roughly 2.9e-6."""
    b = (MA_INTERCEPT - MA_SLOPE * math.log(pd)) ** 2
    return 1.0 - 1.5 * b


def calculate_maturity_adjustment(
    pd: float,
    maturity: float,
    params: IRBParameters | None = None,
) -> float:
    """
    Maturity adjustment factor.

    b = (0.11852 - 0.05478 × ln(PD))²
    MA = (1 + (M - 2.5) × b) / (1 - 1.5 × b)

    M is clamped to [1, 5]; PD is used unclamped.

    Raises:
        DomainError: If pd <= 0 (ln undefined) or 1 - 1.5 × b <= 0
    """
    if not pd > 0.0:
        raise DomainError(pd_domain_error(pd))

    denominator = maturity_adjustment_denominator(pd)
    if not denominator > 0.0:
        raise DomainError(maturity_adjustment_domain_error(pd, denominator))

    m = calculate_effective_maturity(maturity, params)
    b = (MA_INTERCEPT - MA_SLOPE * math.log(pd)) ** 2
    return (1.0 + (m - MA_REFERENCE_MATURITY) * b) / denominator


def calculate_conditional_default_probability(
    pd: float,
    correlation: float,
    systematic_factor: float,
) -> float:
    """
    Vasicek conditional default probability given a systematic factor Z.

    N((G(PD) - √R × Z) / √(1 - R))

    Raises:
        DomainError: If pd is outside (0, 1) or correlation outside [0, 1)
    """
    require_correlation(correlation)
    g_pd = normal_inverse(pd)
    return normal_cdf(
        (g_pd - math.sqrt(correlation) * systematic_factor) / math.sqrt(1.0 - correlation)
    )


def calculate_capital_requirement(
    pd: float,
    lgd: float,
    correlation: float,
    maturity_adjustment: float,
    params: IRBParameters | None = None,
) -> float:
    """
    Capital requirement K.

    K = LGD × N[(G(PD) + √R × G(0.999)) / √(1 - R)] × MA

    Args:
        pd: Probability of default, strictly inside (0, 1)
        lgd: Loss given default
        correlation: Asset correlation in [0, 1)
        maturity_adjustment: Maturity adjustment factor
        params: IRB parameters (Basel defaults if None)

    Returns:
        Capital requirement as a fraction of EAD

    Raises:
        DomainError: If pd is outside (0, 1) or correlation outside [0, 1)
    """
    require_correlation(correlation)
    g_pd = normal_inverse(pd)
    g_confidence = normal_inverse(float(_params(params).confidence_level))
    conditional_pd = normal_cdf(
        (g_pd + math.sqrt(correlation) * g_confidence) / math.sqrt(1.0 - correlation)
    )
    return lgd * conditional_pd * maturity_adjustment


# =============================================================================
# PURE POLARS EXPRESSION FUNCTIONS
# =============================================================================


def base_correlation_expr(
    pd: str | pl.Expr = "pd_used",
    params: IRBParameters | None = None,
) -> pl.Expr:
    """Pure Polars expression for the PD-dependent base correlation."""
    p = _params(params)
    decay = float(p.correlation_decay)
    weight = (1.0 - (-decay * _as_expr(pd)).exp()) / (1.0 - math.exp(-decay))
    return float(p.correlation_min) * weight + float(p.correlation_max) * (1.0 - weight)


def avc_multiplier_expr(
    is_financial: str | pl.Expr = "is_financial",
    is_large_financial: str | pl.Expr = "is_large_financial",
    is_regulated: str | pl.Expr = "is_regulated",
    params: IRBParameters | None = None,
) -> pl.Expr:
    """
    Pure Polars expression for the AVC multiplier.

    Null flags count as False, except is_regulated which counts as True.
    """
    requires_avc = _as_expr(is_financial).fill_null(False) & (
        _as_expr(is_large_financial).fill_null(False)
        | ~_as_expr(is_regulated).fill_null(True)
    )
    return (
        pl.when(requires_avc)
        .then(pl.lit(float(_params(params).avc_multiplier)))
        .otherwise(pl.lit(1.0))
    )


def effective_maturity_expr(
    maturity: str | pl.Expr = "maturity",
    params: IRBParameters | None = None,
) -> pl.Expr:
    """Pure Polars expression clamping maturity to [floor, cap]."""
    p = _params(params)
    return _as_expr(maturity).clip(float(p.maturity_floor), float(p.maturity_cap))


def maturity_adjustment_expr(
    pd: str | pl.Expr = "pd_used",
    maturity: str | pl.Expr = "maturity",
    params: IRBParameters | None = None,
) -> pl.Expr:
    """
    Pure Polars expression for the maturity adjustment.

    b = (0.11852 - 0.05478 × ln(PD))²
    MA = (1 + (M - 2.5) × b) / (1 - 1.5 × b)
    """
    m = effective_maturity_expr(maturity, params)
    b = (MA_INTERCEPT - MA_SLOPE * _as_expr(pd).log()) ** 2
    return (1.0 + (m - MA_REFERENCE_MATURITY) * b) / (1.0 - 1.5 * b)


def maturity_adjustment_denominator_expr(pd: str | pl.Expr = "pd_used") -> pl.Expr:
    """Pure Polars expression for 1 - 1.5 × b; rows where it is <= 0 must be rejected."""
    b = (MA_INTERCEPT - MA_SLOPE * _as_expr(pd).log()) ** 2
    return 1.0 - 1.5 * b


def capital_requirement_expr(
    pd: str | pl.Expr = "pd_used",
    lgd: str | pl.Expr = "lgd",
    correlation: str | pl.Expr = "correlation",
    maturity_adjustment: str | pl.Expr = "maturity_adjustment",
    params: IRBParameters | None = None,
) -> pl.Expr:
    """
    Pure Polars expression for the capital requirement K.

    K = LGD × N[(G(PD) + √R × G(0.999)) / √(1 - R)] × MA

    Rows with PD outside (0, 1) or correlation outside [0, 1) must be
    rejected before evaluation.
    """
    r = _as_expr(correlation)
    g_pd = normal_inverse_expr(_as_expr(pd))
    g_confidence = normal_inverse(float(_params(params).confidence_level))
    conditional_pd = normal_cdf_expr((g_pd + r.sqrt() * g_confidence) / (1.0 - r).sqrt())
    return _as_expr(lgd) * conditional_pd * _as_expr(maturity_adjustment)
