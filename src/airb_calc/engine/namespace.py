"""
Polars LazyFrame and Expr namespaces for A-IRB portfolio calculations.

Provides fluent API for vectorized RWA calculations via registered namespaces:
- `lf.airb.apply_all(config)` - Full portfolio pipeline
- `lf.airb.select_pd(config)` - PD source selection
- `pl.col("pd").airb.normal_inverse()` - Column-level statistics

Every step is a pure Polars expression, enabling full lazy evaluation and
query optimization. Rows are independent; invalid rows are flagged
(_defaulted_*, _valid_pd, _valid_maturity_adjustment, _valid_correlation,
_unknown_rating) rather than dropped, so that the caller can report one
error per rejected row.

Usage:
    import polars as pl
    from airb_calc.contracts.config import CalculationConfig
    import airb_calc.engine.namespace  # Register namespace

    config = CalculationConfig.default()
    result = (lf
        .airb.prepare_columns(config)
        .airb.select_pd(config)
        .airb.resolve_inputs(config)
        .airb.apply_formulas(config)
        .airb.apply_adjustments()
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl

from airb_calc.contracts.validation import (
    apply_input_defaults,
    ensure_columns,
    validate_correlation_range,
    validate_pd_range,
)
from airb_calc.data.schemas import OPTIONAL_PORTFOLIO_SCHEMA, RWA_RESULT_SCHEMA
from airb_calc.domain.enums import AdjustmentStage, PDSource
from airb_calc.engine.adjustments import layered_rwa_expr, stage_active_expr
from airb_calc.engine.irb.formulas import (
    avc_multiplier_expr,
    base_correlation_expr,
    capital_requirement_expr,
    effective_maturity_expr,
    maturity_adjustment_denominator_expr,
    maturity_adjustment_expr,
)
from airb_calc.engine.ratings import rating_pd_expr
from airb_calc.engine.stats import normal_cdf_expr, normal_inverse_expr
from airb_calc.engine.ttc import ttc_pd_expr

if TYPE_CHECKING:
    from airb_calc.contracts.config import CalculationConfig, IRBParameters, TTCParameters


_FLOAT_COLUMNS = [
    name for name, dtype in OPTIONAL_PORTFOLIO_SCHEMA.items() if dtype == pl.Float64
] + ["pd", "lgd", "ead", "maturity"]

_FLAG_DEFAULTS = {
    "is_financial": False,
    "is_regulated": True,
    "use_cred_rating_pd": False,
}


def _finite(column: str) -> pl.Expr:
    return pl.col(column).is_finite().fill_null(False)


# =============================================================================
# LAZYFRAME NAMESPACE
# =============================================================================


@pl.api.register_lazyframe_namespace("airb")
class AIRBLazyFrame:
    """
    A-IRB calculation namespace for Polars LazyFrames.

    Provides fluent API for portfolio RWA calculations.

    Example:
        result = (counterparties
            .airb.prepare_columns(config)
            .airb.select_pd(config)
            .airb.resolve_inputs(config)
            .airb.apply_formulas(config)
            .airb.apply_adjustments()
            .airb.select_results()
        )
    """

    def __init__(self, lf: pl.LazyFrame) -> None:
        self._lf = lf

    # =========================================================================
    # SETUP METHODS
    # =========================================================================

    def prepare_columns(self, config: CalculationConfig) -> pl.LazyFrame:
        """
        Ensure all optional columns exist with consistent types.

        - Adds absent optional columns (null, or neutral flag values)
        - Casts numeric inputs to Float64 and adjustment types to lowercase
        - Fills null flags (is_financial False, is_regulated True)
        - Derives a null is_large_financial from asset_size

        Args:
            config: Calculation configuration

        Returns:
            LazyFrame with every portfolio column present
        """
        lf = ensure_columns(
            self._lf,
            {
                name: (
                    pl.lit(_FLAG_DEFAULTS[name], dtype=pl.Boolean)
                    if name in _FLAG_DEFAULTS
                    else pl.lit(None, dtype=dtype)
                )
                for name, dtype in OPTIONAL_PORTFOLIO_SCHEMA.items()
            },
        )

        threshold = float(config.irb.large_financial_asset_threshold)

        lf = lf.with_columns(
            [pl.col("counterparty_id").cast(pl.String)]
            + [pl.col(name).cast(pl.Float64, strict=False) for name in _FLOAT_COLUMNS]
            + [
                pl.col(name).cast(pl.String).str.strip_chars().str.to_lowercase()
                for name in ("cp_adjustment_type", "pf_adjustment_type")
            ]
            + [
                pl.col(name).cast(pl.Boolean).fill_null(default)
                for name, default in _FLAG_DEFAULTS.items()
            ]
        )

        return lf.with_columns(
            pl.col("is_large_financial")
            .cast(pl.Boolean)
            .fill_null(pl.col("asset_size") >= threshold)
            .fill_null(False)
            .alias("is_large_financial")
        )

    def refresh_ttc_pd(self, params: TTCParameters | None = None) -> pl.LazyFrame:
        """
        Recompute ttc_pd from pd and the cycle inputs for every row.

        Args:
            params: TTC parameters (defaults if None)

        Returns:
            LazyFrame with ttc_pd replaced
        """
        return self._lf.with_columns(ttc_pd_expr(params=params).alias("ttc_pd"))

    # =========================================================================
    # INPUT RESOLUTION
    # =========================================================================

    def select_pd(self, config: CalculationConfig) -> pl.LazyFrame:
        """
        Select the PD fed to the formulas.

        Priority: rating PD (if use_cred_rating_pd) > TTC PD > PIT PD >
        configured default (lenient validation only).

        Adds columns:
        - pd_used: Selected PD (null under strict validation if none usable)
        - pd_source: rating, ttc, pit or default
        - _defaulted_pd: No usable PD was found
        - _unknown_rating: Rating PD came from an unknown rating grade

        Args:
            config: Calculation configuration

        Returns:
            LazyFrame with PD selection columns
        """
        policy = config.validation
        unknown_rating_pd = float(policy.defaults.unknown_rating_pd)

        lf = self._lf.with_columns(
            rating_pd_expr("credit_rating").alias("_table_rating_pd"),
        )

        lf = lf.with_columns(
            (
                pl.col("use_cred_rating_pd")
                & ~_finite("credit_rating_pd")
                & pl.col("credit_rating").is_not_null()
                & pl.col("_table_rating_pd").is_null()
            ).alias("_unknown_rating"),
            pl.when(_finite("credit_rating_pd"))
            .then(pl.col("credit_rating_pd"))
            .when(pl.col("credit_rating").is_not_null())
            .then(pl.col("_table_rating_pd").fill_null(unknown_rating_pd))
            .otherwise(pl.lit(None, dtype=pl.Float64))
            .alias("_rating_pd"),
        )

        use_rating = pl.col("use_cred_rating_pd") & pl.col("_rating_pd").is_not_null()
        default_pd = None if policy.is_strict else float(policy.defaults.pd)

        lf = lf.with_columns(
            pl.when(use_rating)
            .then(pl.col("_rating_pd"))
            .when(_finite("ttc_pd"))
            .then(pl.col("ttc_pd"))
            .when(_finite("pd"))
            .then(pl.col("pd"))
            .otherwise(pl.lit(default_pd, dtype=pl.Float64))
            .alias("pd_used"),
            pl.when(use_rating)
            .then(pl.lit(PDSource.RATING.value))
            .when(_finite("ttc_pd"))
            .then(pl.lit(PDSource.TTC.value))
            .when(_finite("pd"))
            .then(pl.lit(PDSource.PIT.value))
            .otherwise(pl.lit(PDSource.DEFAULT.value))
            .alias("pd_source"),
            (~use_rating & ~_finite("ttc_pd") & ~_finite("pd")).alias("_defaulted_pd"),
        )

        return lf.drop("_table_rating_pd", "_rating_pd")

    def resolve_inputs(self, config: CalculationConfig) -> pl.LazyFrame:
        """
        Resolve missing LGD, EAD and maturity under the validation policy.

        Lenient validation fills the defaults; strict validation leaves the
        values null. Both add _defaulted_lgd, _defaulted_ead and
        _defaulted_maturity flags.

        Args:
            config: Calculation configuration

        Returns:
            LazyFrame with resolved inputs and flags
        """
        return apply_input_defaults(self._lf, config.validation)

    # =========================================================================
    # FORMULAS
    # =========================================================================

    def apply_formulas(self, config: CalculationConfig) -> pl.LazyFrame:
        """
        Apply correlation, maturity adjustment, K and base RWA.

        Adds columns: base_correlation, avc_multiplier, correlation,
        effective_maturity, maturity_adjustment, k, base_rwa, _valid_pd,
        _valid_maturity_adjustment, _valid_correlation

        Rows flagged invalid carry meaningless formula values and must be
        rejected by the caller.

        Args:
            config: Calculation configuration

        Returns:
            LazyFrame with formula columns
        """
        irb = config.irb

        lf = self._lf.with_columns(
            base_correlation_expr("pd_used", irb).alias("base_correlation"),
            avc_multiplier_expr(params=irb).alias("avc_multiplier"),
            effective_maturity_expr("maturity", irb).alias("effective_maturity"),
            maturity_adjustment_expr("pd_used", "maturity", irb).alias("maturity_adjustment"),
        )
        lf = lf.with_columns(
            (pl.col("base_correlation") * pl.col("avc_multiplier")).alias("correlation"),
        )
        lf = validate_correlation_range(validate_pd_range(lf, "pd_used"), "correlation")
        lf = lf.with_columns(
            (maturity_adjustment_denominator_expr("pd_used") > 0.0)
            .fill_null(False)
            .alias("_valid_maturity_adjustment"),
        )

        lf = lf.with_columns(
            capital_requirement_expr(params=irb).alias("k"),
        )
        return lf.with_columns(
            (pl.col("k") * float(irb.rwa_multiplier) * pl.col("ead")).alias("base_rwa"),
        )

    def apply_adjustments(self) -> pl.LazyFrame:
        """
        Layer counterparty then portfolio adjustments onto base RWA.

        Adds columns: rwa, original_rwa (null unless a stage ran),
        has_adjustment, has_portfolio_adjustment, stage, rwa_density

        Returns:
            LazyFrame with adjustment columns
        """
        cp_active = stage_active_expr("cp_adjustment_type", "cp_adjustment_value")
        pf_active = stage_active_expr("pf_adjustment_type", "pf_adjustment_value")

        lf = self._lf.with_columns(
            layered_rwa_expr().alias("rwa"),
            pl.when(cp_active | pf_active)
            .then(pl.col("base_rwa"))
            .otherwise(pl.lit(None, dtype=pl.Float64))
            .alias("original_rwa"),
            cp_active.alias("has_adjustment"),
            pf_active.alias("has_portfolio_adjustment"),
            pl.when(pf_active)
            .then(pl.lit(AdjustmentStage.PORTFOLIO_ADJUSTED.value))
            .when(cp_active)
            .then(pl.lit(AdjustmentStage.COUNTERPARTY_ADJUSTED.value))
            .otherwise(pl.lit(AdjustmentStage.BASE.value))
            .alias("stage"),
        )

        return lf.with_columns(
            pl.when(pl.col("ead") > 0)
            .then(pl.col("rwa") / pl.col("ead"))
            .otherwise(pl.lit(0.0))
            .alias("rwa_density"),
        )

    # =========================================================================
    # CONVENIENCE METHODS
    # =========================================================================

    def apply_all(self, config: CalculationConfig) -> pl.LazyFrame:
        """
        Run the full portfolio pipeline up to adjustment layering.

        Validation flag columns are kept; see select_results().

        Args:
            config: Calculation configuration

        Returns:
            LazyFrame with all calculation columns
        """
        return (self._lf
            .airb.prepare_columns(config)
            .airb.select_pd(config)
            .airb.resolve_inputs(config)
            .airb.apply_formulas(config)
            .airb.apply_adjustments()
        )

    def select_results(self) -> pl.LazyFrame:
        """
        Select the result columns in RWA_RESULT_SCHEMA order.

        Returns:
            LazyFrame with result columns only
        """
        return self._lf.select(
            [pl.col(name).cast(dtype) for name, dtype in RWA_RESULT_SCHEMA.items()]
        )


# =============================================================================
# EXPRESSION NAMESPACE
# =============================================================================


@pl.api.register_expr_namespace("airb")
class AIRBExpr:
    """
    A-IRB namespace for Polars Expressions.

    Provides column-level operations for A-IRB calculations.

    Example:
        df.with_columns(
            pl.col("pd").airb.normal_inverse().alias("g_pd"),
            pl.col("maturity").airb.clip_maturity().alias("effective_maturity"),
        )
    """

    def __init__(self, expr: pl.Expr) -> None:
        self._expr = expr

    def normal_cdf(self) -> pl.Expr:
        """Standard normal CDF of the expression."""
        return normal_cdf_expr(self._expr)

    def normal_inverse(self) -> pl.Expr:
        """Inverse standard normal CDF of the expression (values in (0, 1))."""
        return normal_inverse_expr(self._expr)

    def base_correlation(self, params: IRBParameters | None = None) -> pl.Expr:
        """PD-dependent base correlation of a PD expression."""
        return base_correlation_expr(self._expr, params)

    def clip_maturity(self, params: IRBParameters | None = None) -> pl.Expr:
        """Clamp a maturity expression to [floor, cap]."""
        return effective_maturity_expr(self._expr, params)
