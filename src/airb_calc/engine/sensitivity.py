"""
Sensitivity analysis for A-IRB RWA.

Re-runs the calculator on modified copies of a counterparty while one
parameter sweeps a fixed grid:

    PD multiplier         0.5 .. 1.5 step 0.1 (TTC PD recomputed)
    LGD multiplier        0.5 .. 1.5 step 0.1
    EAD multiplier        0.5 .. 1.5 step 0.1
    Maturity              0.5 .. 5.5 step 0.5 years
    Macroeconomic index   0.0 .. 1.0 step 0.1 (TTC PD recomputed)
    Cyclicality           0.0 .. 1.0 step 0.1 (TTC PD recomputed)
    Credit rating         every other grade of the rating table, rating PD used

The counterparty passed in is never modified. A point whose calculation
is rejected carries the CalculationError instead of a result.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import polars as pl

from airb_calc.contracts.config import CalculationConfig
from airb_calc.contracts.errors import CalculationError, DomainError, InputValidationError
from airb_calc.contracts.models import Counterparty, RWAResult
from airb_calc.contracts.validation import coerce_number
from airb_calc.data.tables.credit_ratings import CREDIT_RATING_PD
from airb_calc.engine.calculator import RWACalculator
from airb_calc.engine.ttc import update_risk_parameters

logger = logging.getLogger(__name__)

MULTIPLIER_GRID = tuple(round(0.5 + i * 0.1, 1) for i in range(11))
MATURITY_GRID = tuple(round(0.5 + i * 0.5, 1) for i in range(11))
UNIT_GRID = tuple(round(i * 0.1, 1) for i in range(11))


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class SensitivityPoint:
    """
    One evaluated point of a sweep.

    Attributes:
        parameter: Swept parameter name
        label: Display label for the point (e.g. "1.2", "BBB", "Recession")
        value: Numeric grid value (the rating PD for rating sweeps)
        result: RWAResult if the calculation succeeded
        error: Rejection reason if it did not
    """

    parameter: str
    label: str
    value: float | None
    result: RWAResult | None = None
    error: CalculationError | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    @property
    def rwa(self) -> float | None:
        return self.result.rwa if self.result is not None else None


@dataclass(frozen=True)
class SensitivityCurve:
    """
    A full sweep of one parameter.

    Attributes:
        parameter: Swept parameter name
        baseline: Result for the unmodified counterparty (None if rejected)
        points: Evaluated points in grid order
    """

    parameter: str
    baseline: RWAResult | None
    points: tuple[SensitivityPoint, ...]

    @property
    def rejected_points(self) -> list[SensitivityPoint]:
        return [point for point in self.points if not point.succeeded]

    def to_frame(self) -> pl.DataFrame:
        """
        Flatten the curve into a DataFrame.

        Columns: parameter, label, value, rwa, pd_used, rwa_change_pct, error_code.
        rwa_change_pct is relative to the baseline RWA (null without one).
        """
        baseline_rwa = self.baseline.rwa if self.baseline is not None else None
        rows = []
        for point in self.points:
            change = None
            if point.rwa is not None and baseline_rwa:
                change = (point.rwa / baseline_rwa - 1.0) * 100.0
            rows.append(
                {
                    "parameter": point.parameter,
                    "label": point.label,
                    "value": point.value,
                    "rwa": point.rwa,
                    "pd_used": point.result.pd if point.result is not None else None,
                    "rwa_change_pct": change,
                    "error_code": point.error.code if point.error is not None else None,
                }
            )
        return pl.DataFrame(
            rows,
            schema={
                "parameter": pl.String,
                "label": pl.String,
                "value": pl.Float64,
                "rwa": pl.Float64,
                "pd_used": pl.Float64,
                "rwa_change_pct": pl.Float64,
                "error_code": pl.String,
            },
        )


@dataclass(frozen=True)
class ScenarioResult:
    """Baseline and modified results of a what-if scenario."""

    changes: dict[str, Any]
    baseline: SensitivityPoint
    scenario: SensitivityPoint

    @property
    def rwa_change_pct(self) -> float | None:
        """Scenario RWA relative to baseline RWA, in percent."""
        if self.baseline.rwa is None or self.scenario.rwa is None or not self.baseline.rwa:
            return None
        return (self.scenario.rwa / self.baseline.rwa - 1.0) * 100.0


# =============================================================================
# ANALYZER
# =============================================================================


def _economy_label(index: float) -> str:
    if index == 0.5:
        return "Neutral"
    return "Recession" if index < 0.5 else "Expansion"


def _cyclicality_label(cyclicality: float) -> str:
    if cyclicality < 0.3:
        return "Low"
    return "Medium" if cyclicality < 0.7 else "High"


class SensitivityAnalyzer:
    """
    Parameter sweeps over a single counterparty.

    Usage:
        analyzer = SensitivityAnalyzer(CalculationConfig.default())
        curve = analyzer.pd_sensitivity(counterparty)
        curve.to_frame()
    """

    def __init__(self, config: CalculationConfig | None = None) -> None:
        self.config = config if config is not None else CalculationConfig.default()
        self._calculator = RWACalculator(self.config)

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def evaluate(
        self,
        counterparty: Counterparty,
        parameter: str,
        label: str,
        value: float | None,
        **changes: Any,
    ) -> SensitivityPoint:
        """
        Calculate RWA for a modified copy of the counterparty.

        Changes go through update_risk_parameters, so the copy's TTC PD is
        recomputed whenever a PD-affecting field changes.

        Returns:
            SensitivityPoint with a result, or with the rejecting error
        """
        modified = update_risk_parameters(
            dataclasses.replace(counterparty), self.config, **changes
        )
        try:
            result = self._calculator.calculate(modified)
        except (DomainError, InputValidationError) as exc:
            error = exc.error.with_counterparty(counterparty.counterparty_id)
            logger.debug("Sensitivity point %s=%s rejected: %s", parameter, label, error)
            return SensitivityPoint(parameter, label, value, error=error)
        return SensitivityPoint(parameter, label, value, result=result)

    def _baseline(self, counterparty: Counterparty) -> RWAResult | None:
        return self.evaluate(counterparty, "baseline", "baseline", None).result

    def _sweep(
        self,
        counterparty: Counterparty,
        parameter: str,
        points: Iterable[tuple[str, float | None, dict[str, Any]]],
    ) -> SensitivityCurve:
        evaluated = tuple(
            self.evaluate(counterparty, parameter, label, value, **changes)
            for label, value, changes in points
        )
        curve = SensitivityCurve(
            parameter=parameter,
            baseline=self._baseline(counterparty),
            points=evaluated,
        )
        logger.debug(
            "Counterparty %s: %s sweep, %d points, %d rejected",
            counterparty.counterparty_id,
            parameter,
            len(evaluated),
            len(curve.rejected_points),
        )
        return curve

    def _multiplier_sweep(self, counterparty: Counterparty, field_name: str) -> SensitivityCurve:
        current = coerce_number(getattr(counterparty, field_name))
        return self._sweep(
            counterparty,
            field_name,
            (
                (
                    f"{multiplier:.1f}",
                    multiplier,
                    {field_name: current * multiplier if current is not None else None},
                )
                for multiplier in MULTIPLIER_GRID
            ),
        )

    # =========================================================================
    # SWEEPS
    # =========================================================================

    def pd_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """PD scaled by 0.5 .. 1.5, with the TTC PD recomputed at each point."""
        return self._multiplier_sweep(counterparty, "pd")

    def lgd_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """LGD scaled by 0.5 .. 1.5."""
        return self._multiplier_sweep(counterparty, "lgd")

    def ead_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """EAD scaled by 0.5 .. 1.5."""
        return self._multiplier_sweep(counterparty, "ead")

    def maturity_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """Maturity from 0.5 to 5.5 years (outside [1, 5] the clamp binds)."""
        return self._sweep(
            counterparty,
            "maturity",
            ((f"{m:.1f} years", m, {"maturity": m}) for m in MATURITY_GRID),
        )

    def macroeconomic_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """Macroeconomic index from 0.0 to 1.0, TTC PD recomputed."""
        return self._sweep(
            counterparty,
            "macroeconomic_index",
            ((_economy_label(i), i, {"macroeconomic_index": i}) for i in UNIT_GRID),
        )

    def cyclicality_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """Cyclicality from 0.0 to 1.0, TTC PD recomputed."""
        return self._sweep(
            counterparty,
            "cyclicality",
            ((_cyclicality_label(c), c, {"cyclicality": c}) for c in UNIT_GRID),
        )

    def rating_sensitivity(self, counterparty: Counterparty) -> SensitivityCurve:
        """
        Every other grade of the rating table, starting at AAA.

        Each point uses the grade's PD in place of the TTC PD.
        """
        grades = list(CREDIT_RATING_PD.items())[::2]
        return self._sweep(
            counterparty,
            "credit_rating",
            (
                (
                    grade,
                    float(pd),
                    {
                        "credit_rating": grade,
                        "credit_rating_pd": float(pd),
                        "use_cred_rating_pd": True,
                    },
                )
                for grade, pd in grades
            ),
        )

    def run_all(self, counterparty: Counterparty) -> dict[str, SensitivityCurve]:
        """
        Run every sweep.

        Returns:
            Parameter name to SensitivityCurve
        """
        curves = [
            self.pd_sensitivity(counterparty),
            self.lgd_sensitivity(counterparty),
            self.ead_sensitivity(counterparty),
            self.maturity_sensitivity(counterparty),
            self.macroeconomic_sensitivity(counterparty),
            self.cyclicality_sensitivity(counterparty),
            self.rating_sensitivity(counterparty),
        ]
        return {curve.parameter: curve for curve in curves}

    def scenario(self, counterparty: Counterparty, **changes: Any) -> ScenarioResult:
        """
        What-if calculation with several parameters changed at once.

        Args:
            counterparty: Counterparty to analyse (not modified)
            **changes: Field name to new value

        Returns:
            ScenarioResult with baseline, scenario and percentage RWA change

        Raises:
            ValueError: If ttc_pd is changed directly or a field does not exist
        """
        return ScenarioResult(
            changes=dict(changes),
            baseline=self.evaluate(counterparty, "baseline", "baseline", None),
            scenario=self.evaluate(counterparty, "scenario", "scenario", None, **changes),
        )


def create_sensitivity_analyzer(config: CalculationConfig | None = None) -> SensitivityAnalyzer:
    """
    Create a SensitivityAnalyzer instance.

    Args:
        config: Calculation configuration (default configuration if None)

    Returns:
        SensitivityAnalyzer ready for use
    """
    return SensitivityAnalyzer(config)
