"""Standard normal distribution approximations for the IRB formulas.

Provides normal_cdf() and normal_inverse() as scalar functions and as pure
Polars expressions, sharing coefficients and polynomial evaluation so that
the scalar and vectorized paths agree.

- normal_cdf: Abramowitz & Stegun 26.2.17, |error| < 7.5e-8
- normal_inverse: Wichura AS241 rational approximations, central region
  |p - 0.5| <= 0.42, tail regions on r = sqrt(-ln(min(p, 1 - p)))

Usage:
    from airb_calc.engine.stats import normal_cdf, normal_inverse_expr

    normal_cdf(1.96)  # 0.97500...
    df.with_columns(normal_inverse_expr(pl.col("pd")).alias("g_pd"))
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypeVar

import polars as pl

from airb_calc.contracts.validation import require_probability

_Number = TypeVar("_Number", float, pl.Expr)


# =============================================================================
# COEFFICIENTS
# =============================================================================

# 1 / sqrt(2π)
_INV_SQRT_2PI = 0.3989422804014327

# Abramowitz & Stegun 26.2.17
_AS_P = 0.2316419
_AS_B = (0.319381530, -0.356563782, 1.781477937, -1.821255978, 1.330274429)

# Wichura AS241 (PPND16), ascending powers
_CENTRAL_SPLIT = 0.42
_TAIL_SPLIT = 5.0
_CENTRAL_CONST = 0.180625
_TAIL_SHIFT_NEAR = 1.6
_TAIL_SHIFT_FAR = 5.0

_A = (
    3.3871328727963666080e0,
    1.3314166789178437745e2,
    1.9715909503065514427e3,
    1.3731693765509461125e4,
    4.5921953931549871457e4,
    6.7265770927008700853e4,
    3.3430575583588128105e4,
    2.5090809287301226727e3,
)
_B = (
    1.0,
    4.2313330701600911252e1,
    6.8718700749205790830e2,
    5.3941960214247511077e3,
    2.1213794301586595867e4,
    3.9307895800092710610e4,
    2.8729085735721942674e4,
    5.2264952788528545610e3,
)
_C = (
    1.42343711074968357734e0,
    4.63033784615654529590e0,
    5.76949722146069140550e0,
    3.64784832476320460504e0,
    1.27045825245236838258e0,
    2.41780725177450611770e-1,
    2.27238449892691845833e-2,
    7.74545014278341407640e-4,
)
_D = (
    1.0,
    2.05319162663775882187e0,
    1.67638483018380384940e0,
    6.89767334985100004550e-1,
    1.48103976427480074590e-1,
    1.51986665636164571966e-2,
    5.47593808499534494600e-4,
    1.05075007164441684324e-9,
)
_E = (
    6.65790464350110377720e0,
    5.46378491116411436990e0,
    1.78482653991729133580e0,
    2.96560571828504891230e-1,
    2.65321895265761230930e-2,
    1.24266094738807843860e-3,
    2.71155556874348757815e-5,
    2.01033439929228813265e-7,
)
_F = (
    1.0,
    5.99832206555887937690e-1,
    1.36929880922735805310e-1,
    1.48753612908506148525e-2,
    7.86869131145613259100e-4,
    1.84631831751005468180e-5,
    1.42151175831644588870e-7,
    2.04426310338993978564e-15,
)


def _horner(x: _Number, coefficients: Sequence[float]) -> _Number:
    """Evaluate a polynomial with ascending coefficients at x (float or Expr)."""
    result = coefficients[-1]
    for coefficient in reversed(coefficients[:-1]):
        result = result * x + coefficient
    return result


def _cdf_tail_series(t: _Number) -> _Number:
    """t × (b1 + b2·t + ... + b5·t⁴), the A&S 26.2.17 polynomial."""
    return t * _horner(t, _AS_B)


# =============================================================================
# SCALAR FUNCTIONS
# =============================================================================


def normal_cdf(x: float) -> float:
    """Standard normal CDF (cumulative distribution function).

    Computes P(X <= x) for the standard normal distribution. For x >= 0,
    N(x) = 1 - φ(x)·t·poly(t) with t = 1 / (1 + 0.2316419·x); negative
    arguments use the mirror N(x) = 1 - N(-x).

    Args:
        x: Real argument

    Returns:
        Probability in [0, 1]
    """
    z = abs(x)
    t = 1.0 / (1.0 + _AS_P * z)
    upper_tail = _INV_SQRT_2PI * math.exp(-0.5 * z * z) * _cdf_tail_series(t)
    return 1.0 - upper_tail if x >= 0 else upper_tail


def normal_inverse(p: float) -> float:
    """Inverse standard normal CDF (quantile function).

    Computes the z such that N(z) = p.

    Args:
        p: Probability strictly inside (0, 1)

    Returns:
        Finite z-score

    Raises:
        DomainError: If p <= 0, p >= 1 or p is NaN
    """
    require_probability(p, field_name="p")

    q = p - 0.5
    if abs(q) <= _CENTRAL_SPLIT:
        r = _CENTRAL_CONST - q * q
        return q * _horner(r, _A) / _horner(r, _B)

    r = math.sqrt(-math.log(min(p, 1.0 - p)))
    if r <= _TAIL_SPLIT:
        r -= _TAIL_SHIFT_NEAR
        value = _horner(r, _C) / _horner(r, _D)
    else:
        r -= _TAIL_SHIFT_FAR
        value = _horner(r, _E) / _horner(r, _F)
    return -value if q < 0 else value


# =============================================================================
# POLARS EXPRESSIONS
# =============================================================================


def normal_cdf_expr(expr: pl.Expr) -> pl.Expr:
    """Standard normal CDF as a Polars expression.

    Same approximation as normal_cdf().

    Example:
        df.with_columns(normal_cdf_expr(pl.col("z_score")).alias("probability"))
    """
    z = expr.abs()
    t = 1.0 / (1.0 + _AS_P * z)
    upper_tail = _INV_SQRT_2PI * (-0.5 * z * z).exp() * _cdf_tail_series(t)
    return pl.when(expr >= 0).then(1.0 - upper_tail).otherwise(upper_tail)


def normal_inverse_expr(expr: pl.Expr) -> pl.Expr:
    """Inverse standard normal CDF as a Polars expression.

    Same approximation as normal_inverse(). The caller guarantees the
    domain: rows outside (0, 1) must be rejected before evaluation.

    Example:
        df.with_columns(normal_inverse_expr(pl.col("pd")).alias("g_pd"))
    """
    q = expr - 0.5

    r_central = _CENTRAL_CONST - q * q
    central = q * _horner(r_central, _A) / _horner(r_central, _B)

    r_tail = (-pl.min_horizontal(expr, 1.0 - expr).log()).sqrt()
    r_near = r_tail - _TAIL_SHIFT_NEAR
    r_far = r_tail - _TAIL_SHIFT_FAR
    tail = (
        pl.when(r_tail <= _TAIL_SPLIT)
        .then(_horner(r_near, _C) / _horner(r_near, _D))
        .otherwise(_horner(r_far, _E) / _horner(r_far, _F))
    )

    return (
        pl.when(q.abs() <= _CENTRAL_SPLIT)
        .then(central)
        .when(q < 0)
        .then(-tail)
        .otherwise(tail)
    )
