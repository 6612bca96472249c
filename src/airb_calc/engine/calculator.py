"""
A-IRB RWA calculator.

Computes RWA for one counterparty or a whole portfolio and layers manual
adjustments on top of the model output.

Pipeline:
    PD source selection -> correlation / maturity adjustment / K
        -> base RWA -> adjustment layering -> RWAResult

Key responsibilities:
- Select the PD (rating > TTC > PIT > default)
- Resolve missing inputs under the ValidationPolicy
- Reject PDs outside (0, 1), correlations outside [0, 1) and PDs too
  small for the maturity adjustment
- Calculate RWA = K × 12.5 × EAD
- Layer counterparty then portfolio adjustments

The scalar path (calculate_rwa) raises on domain errors; the portfolio
path (RWACalculator.calculate_portfolio) converts them into one
CalculationError per rejected counterparty.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import polars as pl

from airb_calc.contracts.config import CalculationConfig
from airb_calc.contracts.errors import (
    ERROR_INVALID_ADJUSTMENT,
    ERROR_MATURITY_INVALID,
    ERROR_MISSING_FIELD,
    ERROR_MISSING_LGD,
    ERROR_MISSING_PD,
    ERROR_UNKNOWN_ADJUSTMENT_TYPE,
    CalculationError,
    DomainError,
    InputValidationError,
    LazyFrameResult,
    adjustment_warning,
    correlation_domain_error,
    maturity_adjustment_domain_error,
    missing_input_error,
    pd_domain_error,
    unknown_rating_warning,
)
from airb_calc.contracts.models import RWAResult, parse_adjustment
from airb_calc.contracts.validation import (
    coerce_number,
    require_correlation,
    require_probability,
    resolve_numeric,
    validate_schema_to_errors,
)
from airb_calc.data.schemas import (
    PORTFOLIO_SCHEMA,
    REQUIRED_PORTFOLIO_SCHEMA,
    RWA_RESULT_SCHEMA,
)
from airb_calc.domain.enums import AdjustmentStage, ErrorSeverity, PDSource
from airb_calc.engine.adjustments import (
    ADJUSTMENT_TYPE_VALUES,
    PortfolioBaseline,
    adjustment_to_columns,
    layer_adjustments,
)
from airb_calc.engine.irb.formulas import (
    calculate_avc_multiplier,
    calculate_base_correlation,
    calculate_capital_requirement,
    calculate_effective_maturity,
    calculate_maturity_adjustment,
    maturity_adjustment_denominator,
    resolve_large_financial,
)
from airb_calc.engine.ratings import lookup_rating

# Import namespace to ensure it's registered
import airb_calc.engine.namespace  # noqa: F401

if TYPE_CHECKING:
    from airb_calc.contracts.models import Counterparty

logger = logging.getLogger(__name__)


# =============================================================================
# PD SELECTION
# =============================================================================


def _select_pd(
    counterparty: Counterparty,
    config: CalculationConfig,
    errors: list[CalculationError],
) -> tuple[float, PDSource]:
    reference = counterparty.counterparty_id

    if counterparty.use_cred_rating_pd:
        rating_pd = coerce_number(counterparty.credit_rating_pd)
        if rating_pd is None and counterparty.credit_rating:
            rating_pd, warning = lookup_rating(
                counterparty.credit_rating,
                counterparty_reference=reference,
                default_pd=float(config.validation.defaults.unknown_rating_pd),
            )
            if warning is not None:
                errors.append(warning)
        if rating_pd is not None:
            return rating_pd, PDSource.RATING

    ttc_pd = coerce_number(counterparty.ttc_pd)
    if ttc_pd is not None:
        return ttc_pd, PDSource.TTC

    pit_pd = coerce_number(counterparty.pd)
    if pit_pd is not None:
        return pit_pd, PDSource.PIT

    default_pd, warning = resolve_numeric(
        counterparty.pd,
        "pd",
        ERROR_MISSING_PD,
        config.validation.defaults.pd,
        config.validation,
        counterparty_reference=reference,
    )
    if warning is not None:
        errors.append(warning)
    return default_pd, PDSource.DEFAULT


def select_pd(
    counterparty: Counterparty,
    config: CalculationConfig | None = None,
) -> tuple[float, PDSource]:
    """
    Select the PD fed to the capital formula.

    Priority: rating PD (when use_cred_rating_pd is set and a rating PD
    exists) > TTC PD > PIT PD > configured default (lenient validation).

    Returns:
        Tuple of (PD, source)

    Raises:
        InputValidationError: If no PD is usable under strict validation
    """
    config = config if config is not None else CalculationConfig.default()
    return _select_pd(counterparty, config, [])


# =============================================================================
# SCALAR CALCULATION
# =============================================================================


def _base_result(
    counterparty: Counterparty,
    config: CalculationConfig,
    errors: list[CalculationError],
) -> RWAResult:
    irb = config.irb
    policy = config.validation
    defaults = policy.defaults
    reference = counterparty.counterparty_id

    pd, pd_source = _select_pd(counterparty, config, errors)

    resolved: dict[str, float] = {}
    for field_name, code, default in (
        ("lgd", ERROR_MISSING_LGD, defaults.lgd),
        ("ead", ERROR_MISSING_FIELD, defaults.ead),
        ("maturity", ERROR_MATURITY_INVALID, defaults.maturity),
    ):
        resolved[field_name], warning = resolve_numeric(
            getattr(counterparty, field_name),
            field_name,
            code,
            default,
            policy,
            counterparty_reference=reference,
        )
        if warning is not None:
            errors.append(warning)

    lgd, ead, maturity = resolved["lgd"], resolved["ead"], resolved["maturity"]

    require_probability(pd, "pd", reference)

    is_large_financial = resolve_large_financial(
        counterparty.is_large_financial,
        coerce_number(counterparty.asset_size),
        irb,
    )
    base_correlation = calculate_base_correlation(pd, irb)
    avc_multiplier = calculate_avc_multiplier(
        counterparty.is_financial,
        is_large_financial,
        counterparty.is_regulated,
        irb,
    )
    correlation = require_correlation(base_correlation * avc_multiplier, reference)

    maturity_adjustment = calculate_maturity_adjustment(pd, maturity, irb)
    k = calculate_capital_requirement(pd, lgd, correlation, maturity_adjustment, irb)
    base_rwa = k * float(irb.rwa_multiplier) * ead

    logger.debug(
        "Counterparty %s: pd=%s (%s) R=%.6f MA=%.6f K=%.6f RWA=%.2f",
        reference,
        pd,
        pd_source.value,
        correlation,
        maturity_adjustment,
        k,
        base_rwa,
    )

    return RWAResult(
        pd=pd,
        pd_source=pd_source,
        ttc_pd=coerce_number(counterparty.ttc_pd),
        lgd=lgd,
        ead=ead,
        maturity=maturity,
        effective_maturity=calculate_effective_maturity(maturity, irb),
        base_correlation=base_correlation,
        avc_multiplier=avc_multiplier,
        correlation=correlation,
        maturity_adjustment=maturity_adjustment,
        k=k,
        rwa=base_rwa,
        original_rwa=base_rwa,
        has_adjustment=False,
        has_portfolio_adjustment=False,
        rwa_density=base_rwa / ead if ead > 0 else 0.0,
        stage=AdjustmentStage.BASE,
    )


def calculate_base_rwa(
    counterparty: Counterparty,
    config: CalculationConfig | None = None,
) -> RWAResult:
    """
    Calculate the model RWA of a counterparty, before any adjustment.

    Args:
        counterparty: Counterparty to calculate
        config: Calculation configuration (default configuration if None)

    Returns:
        RWAResult with rwa = original_rwa = base RWA and stage BASE

    Raises:
        DomainError: If the selected PD is outside (0, 1) or the correlation
            is outside [0, 1)
        InputValidationError: If an input is missing under strict validation
    """
    config = config if config is not None else CalculationConfig.default()
    return _base_result(counterparty, config, [])


def calculate_rwa(
    counterparty: Counterparty,
    config: CalculationConfig | None = None,
) -> RWAResult:
    """
    Calculate the final RWA of a counterparty.

    Base RWA followed by the counterparty and portfolio adjustment stages.
    Pure: identical inputs yield identical results. The stored TTC PD is
    used as is; refresh it after changing PD-affecting fields.

    Args:
        counterparty: Counterparty to calculate
        config: Calculation configuration (default configuration if None)

    Returns:
        Freshly constructed RWAResult

    Raises:
        DomainError: If the selected PD is outside (0, 1) or the correlation
            is outside [0, 1)
        InputValidationError: If an input is missing under strict validation
    """
    return RWACalculator(config).calculate(counterparty)


# =============================================================================
# CALCULATOR
# =============================================================================


class RWACalculator:
    """
    Calculate A-IRB RWA with manual adjustment layering.

    Holds a CalculationConfig and offers scalar, batch and vectorized
    portfolio entry points.

    Usage:
        calculator = RWACalculator(CalculationConfig.default())
        result = calculator.calculate(counterparty)
        portfolio = calculator.calculate_portfolio(counterparties_lf)
    """

    def __init__(self, config: CalculationConfig | None = None) -> None:
        """Initialize calculator with a configuration."""
        self.config = config if config is not None else CalculationConfig.default()

    def calculate(self, counterparty: Counterparty) -> RWAResult:
        """
        Calculate the final RWA of one counterparty.

        Raises:
            DomainError: On PD or correlation domain violations
            InputValidationError: On missing inputs under strict validation
        """
        result, _ = self.calculate_with_warnings(counterparty)
        return result

    def calculate_with_warnings(
        self,
        counterparty: Counterparty,
    ) -> tuple[RWAResult, list[CalculationError]]:
        """
        Calculate the final RWA and return the data-quality warnings raised.

        Returns:
            Tuple of (result, warnings for defaulted inputs and unknown ratings)
        """
        warnings: list[CalculationError] = []
        base = _base_result(counterparty, self.config, warnings)

        adjustments = []
        for raw in (counterparty.rwa_adjustment, counterparty.portfolio_rwa_adjustment):
            adjustment = parse_adjustment(raw)
            if raw is not None and adjustment is None:
                warnings.append(
                    adjustment_warning(
                        ERROR_INVALID_ADJUSTMENT,
                        "Adjustment could not be parsed and was ignored",
                        counterparty_reference=counterparty.counterparty_id,
                        actual_value=repr(raw),
                    )
                )
            adjustments.append(adjustment)

        return layer_adjustments(base, *adjustments), warnings

    def calculate_many(
        self,
        counterparties: Iterable[Counterparty],
    ) -> list[RWAResult | CalculationError]:
        """
        Calculate each counterparty independently.

        A domain or strict-validation failure rejects only the affected
        counterparty.

        Returns:
            One RWAResult or rejecting CalculationError per counterparty,
            in input order
        """
        outcomes: list[RWAResult | CalculationError] = []
        for counterparty in counterparties:
            try:
                outcomes.append(self.calculate(counterparty))
            except (DomainError, InputValidationError) as exc:
                error = exc.error.with_counterparty(counterparty.counterparty_id)
                logger.warning("Counterparty rejected: %s", error)
                outcomes.append(error)
        return outcomes

    def portfolio_baselines(
        self,
        counterparties: Iterable[Counterparty],
    ) -> list[PortfolioBaseline]:
        """
        RWA entering the portfolio stage (after counterparty adjustments).

        Rejected counterparties are skipped.

        Returns:
            PortfolioBaselines for distributing a portfolio override
        """
        baselines: list[PortfolioBaseline] = []
        for counterparty in counterparties:
            try:
                base = _base_result(counterparty, self.config, [])
            except (DomainError, InputValidationError) as exc:
                logger.warning("Counterparty %s excluded from baseline: %s",
                               counterparty.counterparty_id, exc)
                continue
            adjusted = layer_adjustments(base, parse_adjustment(counterparty.rwa_adjustment))
            baselines.append(
                PortfolioBaseline(
                    counterparty_id=counterparty.counterparty_id,
                    rwa=adjusted.rwa,
                    ead=adjusted.ead,
                )
            )
        return baselines

    # =========================================================================
    # PORTFOLIO PATH
    # =========================================================================

    def calculate_portfolio(self, frame: pl.LazyFrame | pl.DataFrame) -> LazyFrameResult:
        """
        Vectorized RWA calculation over a portfolio frame.

        Steps:
        1. Validate the schema (missing required columns reject the frame)
        2. Prepare columns, select PD, resolve inputs, apply formulas and
           adjustment layering via the airb namespace
        3. Report one error per rejected row and one warning per defaulted
           input, unknown rating or ignored adjustment
        4. Exclude rejected rows from the result frame

        Args:
            frame: Portfolio with at least the REQUIRED_PORTFOLIO_SCHEMA columns

        Returns:
            LazyFrameResult with RWA_RESULT_SCHEMA frame and accumulated errors
        """
        lf = frame.lazy()

        schema_errors = validate_schema_to_errors(lf, REQUIRED_PORTFOLIO_SCHEMA, "portfolio")
        if schema_errors:
            logger.error("Portfolio rejected: %d schema errors", len(schema_errors))
            return LazyFrameResult(
                frame=pl.LazyFrame(schema=RWA_RESULT_SCHEMA),
                errors=schema_errors,
            )

        calculated = (
            lf.with_row_index("_row")
            .airb.apply_all(self.config)
            .collect(engine=self.config.collect_engine)
        )

        errors, rejected = self._collect_row_errors(calculated)
        results = (
            calculated
            .filter(~pl.col("_row").is_in(rejected))
            .lazy()
            .airb.select_results()
        )

        logger.info(
            "Portfolio calculated: %d counterparties, %d rejected, %d warnings",
            calculated.height,
            len(rejected),
            sum(1 for e in errors if e.severity == ErrorSeverity.WARNING),
        )
        return LazyFrameResult(frame=results, errors=errors)

    def _collect_row_errors(
        self,
        df: pl.DataFrame,
    ) -> tuple[list[CalculationError], list[int]]:
        """Convert validation flag columns into CalculationErrors."""
        policy = self.config.validation
        defaults = policy.defaults
        errors: list[CalculationError] = []
        rejected: list[int] = []

        input_checks = (
            ("_defaulted_pd", "pd", ERROR_MISSING_PD, defaults.pd),
            ("_defaulted_lgd", "lgd", ERROR_MISSING_LGD, defaults.lgd),
            ("_defaulted_ead", "ead", ERROR_MISSING_FIELD, defaults.ead),
            ("_defaulted_maturity", "maturity", ERROR_MATURITY_INVALID, defaults.maturity),
        )

        for row in df.iter_rows(named=True):
            reference = row["counterparty_id"]
            row_rejected = False

            for flag, field_name, code, default in input_checks:
                if not row[flag]:
                    continue
                if policy.is_strict:
                    errors.append(
                        missing_input_error(
                            code,
                            field_name,
                            None,
                            counterparty_reference=reference,
                            severity=ErrorSeverity.CRITICAL,
                        )
                    )
                    row_rejected = True
                else:
                    errors.append(
                        missing_input_error(
                            code,
                            field_name,
                            None,
                            default=float(default),
                            counterparty_reference=reference,
                        )
                    )

            if row["_unknown_rating"]:
                errors.append(
                    unknown_rating_warning(
                        row["credit_rating"],
                        float(defaults.unknown_rating_pd),
                        counterparty_reference=reference,
                    )
                )

            if not row_rejected and not row["_valid_pd"]:
                errors.append(pd_domain_error(row["pd_used"], "pd", reference))
                row_rejected = True
            elif not row_rejected and not row["_valid_correlation"]:
                errors.append(correlation_domain_error(row["correlation"], reference))
                row_rejected = True
            elif not row_rejected and not row["_valid_maturity_adjustment"]:
                errors.append(
                    maturity_adjustment_domain_error(
                        row["pd_used"],
                        maturity_adjustment_denominator(row["pd_used"]),
                        reference,
                    )
                )
                row_rejected = True

            for scope in ("cp", "pf"):
                error = _adjustment_column_error(
                    row[f"{scope}_adjustment_type"],
                    row[f"{scope}_adjustment_value"],
                    reference,
                )
                if error is not None:
                    errors.append(error)

            if row_rejected:
                rejected.append(row["_row"])

        return errors, rejected


def _adjustment_column_error(
    adjustment_type: str | None,
    value: float | None,
    counterparty_reference: str,
) -> CalculationError | None:
    """Warning for a flattened adjustment that will be ignored."""
    if adjustment_type is None:
        return None
    if adjustment_type not in ADJUSTMENT_TYPE_VALUES:
        return adjustment_warning(
            ERROR_UNKNOWN_ADJUSTMENT_TYPE,
            f"Unknown adjustment type {adjustment_type!r} ignored",
            counterparty_reference=counterparty_reference,
            actual_value=adjustment_type,
        )
    if coerce_number(value) is None:
        return adjustment_warning(
            ERROR_INVALID_ADJUSTMENT,
            f"{adjustment_type} adjustment with non-finite value ignored",
            counterparty_reference=counterparty_reference,
            actual_value=repr(value),
        )
    return None


def counterparties_to_frame(counterparties: Sequence[Counterparty]) -> pl.LazyFrame:
    """
    Flatten counterparties into a portfolio LazyFrame.

    Adjustments become (type, value) column pairs per scope. Non-numeric
    inputs become nulls and are resolved by the validation policy.
    """
    rows = []
    for cp in counterparties:
        cp_type, cp_value = adjustment_to_columns(parse_adjustment(cp.rwa_adjustment))
        pf_type, pf_value = adjustment_to_columns(parse_adjustment(cp.portfolio_rwa_adjustment))
        rows.append(
            {
                "counterparty_id": cp.counterparty_id,
                "name": cp.name,
                "industry": cp.industry,
                "region": cp.region,
                "pd": coerce_number(cp.pd),
                "ttc_pd": coerce_number(cp.ttc_pd),
                "lgd": coerce_number(cp.lgd),
                "ead": coerce_number(cp.ead),
                "maturity": coerce_number(cp.maturity),
                "macroeconomic_index": coerce_number(cp.macroeconomic_index),
                "long_term_average": coerce_number(cp.long_term_average),
                "cyclicality": coerce_number(cp.cyclicality),
                "is_financial": bool(cp.is_financial),
                "is_large_financial": cp.is_large_financial,
                "is_regulated": bool(cp.is_regulated),
                "asset_size": coerce_number(cp.asset_size),
                "credit_rating": cp.credit_rating,
                "credit_rating_pd": coerce_number(cp.credit_rating_pd),
                "use_cred_rating_pd": bool(cp.use_cred_rating_pd),
                "cp_adjustment_type": cp_type,
                "cp_adjustment_value": cp_value,
                "pf_adjustment_type": pf_type,
                "pf_adjustment_value": pf_value,
            }
        )

    return pl.LazyFrame(
        {name: [row[name] for row in rows] for name in PORTFOLIO_SCHEMA},
        schema=PORTFOLIO_SCHEMA,
    )


def create_rwa_calculator(config: CalculationConfig | None = None) -> RWACalculator:
    """
    Create an RWA calculator instance.

    Args:
        config: Calculation configuration (default configuration if None)

    Returns:
        RWACalculator ready for use
    """
    return RWACalculator(config)
