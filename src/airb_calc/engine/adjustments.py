"""
Manual RWA adjustment layering.

Composes at most one counterparty-level and one portfolio-level override
onto the model RWA, in a fixed order, each applied to the value produced
by the previous stage:

    BASE ──(counterparty adjustment)──► COUNTERPARTY_ADJUSTED
         ──(portfolio adjustment)────► PORTFOLIO_ADJUSTED

Each transition is optional. Entering any adjusted stage fixes
original_rwa to the base RWA; the final RWA is the value leaving the last
applied stage.

Also provides:
- layered_rwa_expr: The same layering over flattened (type, value) columns
- distribute_portfolio_adjustment: Spread one portfolio override across a
  selection of counterparties as per-counterparty adjustments
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import polars as pl

from airb_calc.contracts.models import (
    AbsoluteAdjustment,
    AdditiveAdjustment,
    Adjustment,
    MultiplicativeAdjustment,
    PercentageAdjustment,
    make_adjustment,
    parse_adjustment,
)
from airb_calc.domain.enums import (
    AdjustmentScope,
    AdjustmentStage,
    AdjustmentType,
    DistributionMethod,
)

if TYPE_CHECKING:
    from airb_calc.contracts.models import Counterparty, RWAResult

logger = logging.getLogger(__name__)

ADJUSTMENT_TYPE_VALUES = tuple(t.value for t in AdjustmentType)

__all__ = [
    "ADJUSTMENT_TYPE_VALUES",
    "PortfolioAdjustmentPlan",
    "PortfolioBaseline",
    "adjustment_expr",
    "adjustment_from_columns",
    "adjustment_to_columns",
    "apply_adjustment",
    "distribute_portfolio_adjustment",
    "layer_adjustments",
    "layered_rwa_expr",
    "parse_adjustment",
    "stage_active_expr",
]


# =============================================================================
# SCALAR LAYERING
# =============================================================================


def apply_adjustment(current_rwa: float, adjustment: Adjustment | None) -> float | None:
    """
    Apply one adjustment to the RWA entering its stage.

    Returns:
        The adjusted RWA, or None if the stage is skipped (no adjustment,
        or an adjustment whose value is not finite)
    """
    if adjustment is None:
        return None
    if not math.isfinite(adjustment.value):
        logger.warning(
            "Skipping %s adjustment with non-finite value %r",
            adjustment.type.value,
            adjustment.value,
        )
        return None
    return adjustment.apply(current_rwa)


def layer_adjustments(
    base_result: RWAResult,
    counterparty_adjustment: Adjustment | None = None,
    portfolio_adjustment: Adjustment | None = None,
) -> RWAResult:
    """
    Run the adjustment stages over a base result.

    Args:
        base_result: Result of the base RWA calculation
        counterparty_adjustment: Counterparty-scope adjustment, if any
        portfolio_adjustment: Portfolio-scope adjustment, if any

    Returns:
        New RWAResult with final rwa, original_rwa (None unless a stage ran),
        adjustment flags, stage and density
    """
    base_rwa = base_result.base_rwa
    rwa = base_rwa
    original_rwa: float | None = None
    has_adjustment = False
    has_portfolio_adjustment = False
    stage = AdjustmentStage.BASE

    adjusted = apply_adjustment(rwa, counterparty_adjustment)
    if adjusted is not None:
        original_rwa = base_rwa
        rwa = adjusted
        has_adjustment = True
        stage = AdjustmentStage.COUNTERPARTY_ADJUSTED

    adjusted = apply_adjustment(rwa, portfolio_adjustment)
    if adjusted is not None:
        if original_rwa is None:
            original_rwa = rwa
        rwa = adjusted
        has_portfolio_adjustment = True
        stage = AdjustmentStage.PORTFOLIO_ADJUSTED

    if stage != AdjustmentStage.BASE:
        logger.debug("RWA layered %s -> %s (%s)", base_rwa, rwa, stage.value)

    return dataclasses.replace(
        base_result,
        rwa=rwa,
        original_rwa=original_rwa,
        has_adjustment=has_adjustment,
        has_portfolio_adjustment=has_portfolio_adjustment,
        rwa_density=rwa / base_result.ead if base_result.ead > 0 else 0.0,
        stage=stage,
    )


# =============================================================================
# COLUMN CONVERSION
# =============================================================================


def adjustment_to_columns(adjustment: Adjustment | None) -> tuple[str | None, float | None]:
    """Flatten an adjustment into its (type, value) column pair."""
    if adjustment is None:
        return None, None
    return adjustment.type.value, adjustment.value


def adjustment_from_columns(
    adjustment_type: str | None,
    value: float | None,
) -> Adjustment | None:
    """Rebuild an adjustment from its (type, value) column pair."""
    if adjustment_type is None or value is None:
        return None
    try:
        kind = AdjustmentType(adjustment_type)
    except ValueError:
        logger.warning("Ignoring adjustment with unknown type %r", adjustment_type)
        return None
    return make_adjustment(kind, value)


# =============================================================================
# POLARS EXPRESSIONS
# =============================================================================


def stage_active_expr(adjustment_type: str, adjustment_value: str) -> pl.Expr:
    """True where a (type, value) pair holds a known type and a finite value."""
    return (
        pl.col(adjustment_type).is_in(ADJUSTMENT_TYPE_VALUES)
        & pl.col(adjustment_value).is_finite()
    ).fill_null(False)


def adjustment_expr(
    current: pl.Expr,
    adjustment_type: str,
    adjustment_value: str,
) -> pl.Expr:
    """
    Pure Polars expression applying a flattened adjustment to current RWA.

    Rows without an active adjustment keep the current RWA.
    """
    value = pl.col(adjustment_value)
    kind = pl.col(adjustment_type)
    return (
        pl.when(~stage_active_expr(adjustment_type, adjustment_value))
        .then(current)
        .when(kind == AdjustmentType.ABSOLUTE.value)
        .then(value)
        .when(kind == AdjustmentType.ADDITIVE.value)
        .then(current + value)
        .when(kind == AdjustmentType.MULTIPLICATIVE.value)
        .then(current * value)
        .otherwise(current * (1.0 + value / 100.0))
    )


def layered_rwa_expr(
    base_rwa: str = "base_rwa",
    cp_adjustment_type: str = "cp_adjustment_type",
    cp_adjustment_value: str = "cp_adjustment_value",
    pf_adjustment_type: str = "pf_adjustment_type",
    pf_adjustment_value: str = "pf_adjustment_value",
) -> pl.Expr:
    """
    Pure Polars expression for the final RWA after both adjustment stages.

    Counterparty stage first, portfolio stage applied to its output.
    """
    after_counterparty = adjustment_expr(pl.col(base_rwa), cp_adjustment_type, cp_adjustment_value)
    return adjustment_expr(after_counterparty, pf_adjustment_type, pf_adjustment_value)


# =============================================================================
# PORTFOLIO DISTRIBUTION
# =============================================================================


@dataclass(frozen=True)
class PortfolioBaseline:
    """
    RWA entering the portfolio stage for one counterparty.

    Attributes:
        counterparty_id: Counterparty identifier
        rwa: RWA after any counterparty adjustment
        ead: Exposure at default
    """

    counterparty_id: str
    rwa: float
    ead: float

    @property
    def density(self) -> float:
        """RWA density (0 when EAD is 0)."""
        return self.rwa / self.ead if self.ead > 0 else 0.0


@dataclass(frozen=True)
class PortfolioAdjustmentPlan:
    """
    Per-counterparty portfolio adjustments derived from one override.

    Attributes:
        source: The portfolio-wide override
        method: Distribution method used for additive/absolute overrides
        adjustments: Counterparty ID to portfolio-scope adjustment
        baseline_rwa: Counterparty ID to RWA entering the portfolio stage
        adjusted_rwa: Counterparty ID to RWA after the adjustment
    """

    source: Adjustment
    method: DistributionMethod
    adjustments: dict[str, Adjustment] = field(default_factory=dict)
    baseline_rwa: dict[str, float] = field(default_factory=dict)
    adjusted_rwa: dict[str, float] = field(default_factory=dict)

    @property
    def baseline_total(self) -> float:
        """Total RWA of the selection before the override."""
        return sum(self.baseline_rwa.values())

    @property
    def adjusted_total(self) -> float:
        """Total RWA of the selection after the override."""
        return sum(self.adjusted_rwa.values())

    @property
    def absolute_change(self) -> float:
        """Adjusted total minus baseline total."""
        return self.adjusted_total - self.baseline_total

    @property
    def percentage_change(self) -> float:
        """Change as a percentage of the baseline total (0 when baseline is 0)."""
        baseline = self.baseline_total
        return self.absolute_change / baseline * 100.0 if baseline > 0 else 0.0

    def attach(self, counterparties: Iterable[Counterparty]) -> int:
        """
        Attach the planned adjustments at portfolio scope.

        Returns:
            Number of counterparties updated
        """
        updated = 0
        for counterparty in counterparties:
            adjustment = self.adjustments.get(counterparty.counterparty_id)
            if adjustment is not None:
                counterparty.attach_adjustment(adjustment, AdjustmentScope.PORTFOLIO)
                updated += 1
        return updated


def _distribution_weights(
    baselines: Sequence[PortfolioBaseline],
    method: DistributionMethod,
) -> list[float]:
    if method == DistributionMethod.EQUAL:
        return [1.0 / len(baselines)] * len(baselines)

    if method == DistributionMethod.RISK_WEIGHTED:
        scores = [b.density for b in baselines]
    else:
        scores = [b.rwa for b in baselines]

    total = sum(scores)
    if total <= 0:
        return [0.0] * len(baselines)
    return [score / total for score in scores]


def distribute_portfolio_adjustment(
    baselines: Sequence[PortfolioBaseline],
    adjustment: Adjustment,
    method: DistributionMethod = DistributionMethod.PROPORTIONAL,
) -> PortfolioAdjustmentPlan:
    """
    Spread one portfolio override across selected counterparties.

    Percentage and multiplicative overrides are replicated per counterparty.
    Additive overrides split their delta, and absolute overrides split the
    gap between the target total and the baseline total, into per-counterparty
    AdditiveAdjustments:

        PROPORTIONAL: by share of baseline RWA
        EQUAL: same amount each
        RISK_WEIGHTED: by share of RWA density

    Args:
        baselines: RWA entering the portfolio stage per selected counterparty
        adjustment: Portfolio-wide override
        method: Distribution method for additive/absolute overrides

    Returns:
        PortfolioAdjustmentPlan with per-counterparty adjustments and totals
    """
    plan = PortfolioAdjustmentPlan(source=adjustment, method=method)
    if not baselines:
        return plan

    if not math.isfinite(adjustment.value):
        logger.warning("Portfolio %s override with non-finite value ignored", adjustment.type.value)
        return plan

    if isinstance(adjustment, (PercentageAdjustment, MultiplicativeAdjustment)):
        per_counterparty = [adjustment] * len(baselines)
    else:
        if isinstance(adjustment, AbsoluteAdjustment):
            total_delta = adjustment.target_rwa - sum(b.rwa for b in baselines)
        else:
            total_delta = adjustment.value
        weights = _distribution_weights(baselines, method)
        per_counterparty = [
            AdditiveAdjustment(
                delta=total_delta * weight,
                reason=adjustment.reason,
                timestamp=adjustment.timestamp,
            )
            for weight in weights
        ]

    for baseline, counterparty_adjustment in zip(baselines, per_counterparty, strict=True):
        plan.adjustments[baseline.counterparty_id] = counterparty_adjustment
        plan.baseline_rwa[baseline.counterparty_id] = baseline.rwa
        plan.adjusted_rwa[baseline.counterparty_id] = counterparty_adjustment.apply(baseline.rwa)

    logger.info(
        "Portfolio %s override distributed over %d counterparties (%s): %.2f -> %.2f",
        adjustment.type.value,
        len(baselines),
        method.value,
        plan.baseline_total,
        plan.adjusted_total,
    )
    return plan
