"""
Core data model for the A-IRB RWA calculator.

- Counterparty: The unit of analysis, mutated only by attaching/removing
  adjustments or changing risk parameters
- Adjustment variants: One frozen dataclass per adjustment kind, each
  carrying only the field it needs
- TTCInputs: Inputs of the through-the-cycle PD normaliser
- RWAResult: Immutable projection recomputed on every call

Adjustment dispatch is by variant, never by a free-text type field:

    AbsoluteAdjustment(target_rwa=...)          new = target
    AdditiveAdjustment(delta=...)               new = current + delta
    MultiplicativeAdjustment(multiplier=...)    new = current × multiplier
    PercentageAdjustment(percentage=...)        new = current × (1 + percentage / 100)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

from airb_calc.contracts.validation import coerce_number
from airb_calc.domain.enums import (
    AdjustmentScope,
    AdjustmentStage,
    AdjustmentType,
    PDSource,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Adjustments
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class Adjustment(ABC):
    """
    Base class for manual RWA adjustments.

    Attributes:
        reason: Free-text justification recorded by the analyst
        timestamp: When the adjustment was made
    """

    reason: str = ""
    timestamp: datetime | None = None

    type: ClassVar[AdjustmentType]

    @property
    @abstractmethod
    def value(self) -> float:
        """The single numeric parameter of the adjustment."""

    @abstractmethod
    def apply(self, current_rwa: float) -> float:
        """Transform the RWA value entering this adjustment's stage."""


@dataclass(frozen=True, kw_only=True)
class AbsoluteAdjustment(Adjustment):
    """Replace the current RWA with a target value."""

    target_rwa: float

    type: ClassVar[AdjustmentType] = AdjustmentType.ABSOLUTE

    @property
    def value(self) -> float:
        return self.target_rwa

    def apply(self, current_rwa: float) -> float:
        return self.target_rwa


@dataclass(frozen=True, kw_only=True)
class AdditiveAdjustment(Adjustment):
    """Add a delta to the current RWA."""

    delta: float

    type: ClassVar[AdjustmentType] = AdjustmentType.ADDITIVE

    @property
    def value(self) -> float:
        return self.delta

    def apply(self, current_rwa: float) -> float:
        return current_rwa + self.delta


@dataclass(frozen=True, kw_only=True)
class MultiplicativeAdjustment(Adjustment):
    """Scale the current RWA by a multiplier."""

    multiplier: float

    type: ClassVar[AdjustmentType] = AdjustmentType.MULTIPLICATIVE

    @property
    def value(self) -> float:
        return self.multiplier

    def apply(self, current_rwa: float) -> float:
        return current_rwa * self.multiplier


@dataclass(frozen=True, kw_only=True)
class PercentageAdjustment(Adjustment):
    """Scale the current RWA by (1 + percentage / 100)."""

    percentage: float

    type: ClassVar[AdjustmentType] = AdjustmentType.PERCENTAGE

    @property
    def value(self) -> float:
        return self.percentage

    def apply(self, current_rwa: float) -> float:
        return current_rwa * (1.0 + self.percentage / 100.0)


ADJUSTMENT_CLASSES: dict[AdjustmentType, type[Adjustment]] = {
    AdjustmentType.ABSOLUTE: AbsoluteAdjustment,
    AdjustmentType.ADDITIVE: AdditiveAdjustment,
    AdjustmentType.MULTIPLICATIVE: MultiplicativeAdjustment,
    AdjustmentType.PERCENTAGE: PercentageAdjustment,
}

# Record keys holding the numeric parameter, in lookup order
_ADJUSTMENT_VALUE_KEYS: dict[AdjustmentType, tuple[str, ...]] = {
    AdjustmentType.ABSOLUTE: ("adjustedRWA", "adjusted_rwa", "target_rwa", "value"),
    AdjustmentType.ADDITIVE: ("adjustment", "delta", "value"),
    AdjustmentType.MULTIPLICATIVE: ("multiplier", "value"),
    AdjustmentType.PERCENTAGE: ("percentage", "value"),
}


def make_adjustment(
    adjustment_type: AdjustmentType,
    value: float,
    reason: str = "",
    timestamp: datetime | None = None,
) -> Adjustment:
    """Build the variant for an adjustment type from its numeric parameter."""
    if adjustment_type == AdjustmentType.ABSOLUTE:
        return AbsoluteAdjustment(target_rwa=value, reason=reason, timestamp=timestamp)
    if adjustment_type == AdjustmentType.ADDITIVE:
        return AdditiveAdjustment(delta=value, reason=reason, timestamp=timestamp)
    if adjustment_type == AdjustmentType.MULTIPLICATIVE:
        return MultiplicativeAdjustment(multiplier=value, reason=reason, timestamp=timestamp)
    return PercentageAdjustment(percentage=value, reason=reason, timestamp=timestamp)


def parse_adjustment(record: Mapping[str, Any] | Adjustment | None) -> Adjustment | None:
    """
    Convert a loosely typed adjustment record into an Adjustment variant.

    Accepts the presentation layer's record format:
        {"type": "multiplicative", "multiplier": 1.1, "reason": "...", "timestamp": "..."}

    The numeric parameter is read from the type-specific key first
    (adjustedRWA / adjustment / multiplier) and then from "value".

    Returns:
        The parsed Adjustment, or None when the record is absent, has an
        unknown type, or carries no numeric value (treated as absent).
    """
    if record is None or isinstance(record, Adjustment):
        return record

    raw_type = record.get("type")
    try:
        adjustment_type = (
            raw_type if isinstance(raw_type, AdjustmentType)
            else AdjustmentType(str(raw_type).strip().lower())
        )
    except ValueError:
        logger.warning("Ignoring adjustment with unknown type %r", raw_type)
        return None

    value = None
    for key in _ADJUSTMENT_VALUE_KEYS[adjustment_type]:
        value = coerce_number(record.get(key))
        if value is not None:
            break

    if value is None:
        logger.warning(
            "Ignoring %s adjustment with non-numeric value: %r",
            adjustment_type.value,
            record,
        )
        return None

    return make_adjustment(
        adjustment_type,
        value,
        reason=str(record.get("reason") or ""),
        timestamp=_parse_timestamp(record.get("timestamp")),
    )


def _parse_timestamp(raw: object) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable adjustment timestamp %r", raw)
    return None


# =============================================================================
# Counterparty
# =============================================================================


# Presentation-layer record keys mapped to field names
_RECORD_ALIASES: dict[str, str] = {
    "id": "counterparty_id",
    "ttcPd": "ttc_pd",
    "macroeconomicIndex": "macroeconomic_index",
    "longTermAverage": "long_term_average",
    "isFinancial": "is_financial",
    "isLargeFinancial": "is_large_financial",
    "isRegulated": "is_regulated",
    "assetSize": "asset_size",
    "creditRating": "credit_rating",
    "creditRatingPd": "credit_rating_pd",
    "useCredRatingPd": "use_cred_rating_pd",
    "rwaAdjustment": "rwa_adjustment",
    "portfolioRwaAdjustment": "portfolio_rwa_adjustment",
}

_TTC_RECORD_ALIASES: dict[str, str] = {
    "pointInTimePd": "point_in_time_pd",
    "macroeconomicIndex": "macroeconomic_index",
    "longTermAverage": "long_term_average",
}


@dataclass
class Counterparty:
    """
    A counterparty and its A-IRB risk parameters.

    Numeric risk parameters may be None (or non-numeric when built from
    external data); the validation policy resolves them at calculation time.
    ttc_pd is derived from pd, macroeconomic_index, long_term_average and
    cyclicality; refresh it via airb_calc.engine.ttc after changing any of them.
    """

    counterparty_id: str
    name: str = ""
    pd: float | None = None
    ttc_pd: float | None = None
    lgd: float | None = None
    ead: float | None = None
    maturity: float | None = None
    macroeconomic_index: float | None = None
    long_term_average: float | None = None
    cyclicality: float | None = None
    is_financial: bool = False
    is_large_financial: bool | None = False
    is_regulated: bool = True
    asset_size: float | None = None
    industry: str | None = None
    region: str | None = None
    credit_rating: str | None = None
    credit_rating_pd: float | None = None
    use_cred_rating_pd: bool = False
    rwa_adjustment: Adjustment | None = None
    portfolio_rwa_adjustment: Adjustment | None = None

    def get_adjustment(self, scope: AdjustmentScope) -> Adjustment | None:
        """Get the adjustment attached at a scope."""
        if scope == AdjustmentScope.COUNTERPARTY:
            return self.rwa_adjustment
        return self.portfolio_rwa_adjustment

    def has_adjustment(self, scope: AdjustmentScope) -> bool:
        """Check if an adjustment is attached at a scope."""
        return self.get_adjustment(scope) is not None

    def attach_adjustment(
        self,
        adjustment: Adjustment,
        scope: AdjustmentScope = AdjustmentScope.COUNTERPARTY,
    ) -> None:
        """Attach an adjustment, replacing any existing one at the same scope."""
        if scope == AdjustmentScope.COUNTERPARTY:
            self.rwa_adjustment = adjustment
        else:
            self.portfolio_rwa_adjustment = adjustment

    def remove_adjustment(
        self,
        scope: AdjustmentScope = AdjustmentScope.COUNTERPARTY,
    ) -> Adjustment | None:
        """Detach and return the adjustment at a scope."""
        removed = self.get_adjustment(scope)
        if scope == AdjustmentScope.COUNTERPARTY:
            self.rwa_adjustment = None
        else:
            self.portfolio_rwa_adjustment = None
        return removed

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Counterparty:
        """
        Build a Counterparty from an external record.

        Accepts snake_case field names or the presentation layer's camelCase
        keys. Unknown keys are ignored. Numeric values are kept as given so
        that the validation policy can report them.
        """
        known = set(cls.__dataclass_fields__)
        values: dict[str, Any] = {}
        for key, value in record.items():
            name = _RECORD_ALIASES.get(key, key)
            if name in known:
                values[name] = value

        for name in ("rwa_adjustment", "portfolio_rwa_adjustment"):
            if name in values:
                values[name] = parse_adjustment(values[name])

        values["counterparty_id"] = str(values.get("counterparty_id", ""))
        return cls(**values)


# =============================================================================
# TTC inputs
# =============================================================================


@dataclass(frozen=True)
class TTCInputs:
    """Inputs of the through-the-cycle PD normaliser."""

    point_in_time_pd: float
    macroeconomic_index: float
    long_term_average: float
    cyclicality: float

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> TTCInputs:
        """
        Build TTCInputs from a loose record.

        Accepts field names and camelCase keys (pointInTimePd,
        macroeconomicIndex, longTermAverage, cyclicality). Absent inputs
        are None and rejected by calculate_ttc_pd.
        """
        values = {_TTC_RECORD_ALIASES.get(key, key): value for key, value in record.items()}
        return cls(
            point_in_time_pd=values.get("point_in_time_pd"),
            macroeconomic_index=values.get("macroeconomic_index"),
            long_term_average=values.get("long_term_average"),
            cyclicality=values.get("cyclicality"),
        )


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True)
class RWAResult:
    """
    RWA calculation result for one counterparty.

    Recomputed on every call and never mutated. Holds no reference to the
    Counterparty it was computed from.

    Attributes:
        pd: PD actually fed to the formulas
        pd_source: Which PD source was selected
        ttc_pd: Counterparty's TTC PD (None if unavailable)
        lgd: Resolved LGD
        ead: Resolved EAD
        maturity: Resolved (unclamped) maturity
        effective_maturity: Maturity clamped to [1, 5]
        base_correlation: PD-dependent correlation before AVC
        avc_multiplier: 1.25 for large/unregulated financials, else 1.0
        correlation: base_correlation × avc_multiplier
        maturity_adjustment: Maturity adjustment factor
        k: Capital requirement (LGD × conditional PD × MA)
        rwa: Final RWA after adjustment layering
        original_rwa: Base RWA; None unless an adjustment stage ran
        has_adjustment: A counterparty adjustment was applied
        has_portfolio_adjustment: A portfolio adjustment was applied
        rwa_density: rwa / ead (0 when ead is 0)
        stage: Last adjustment stage reached
    """

    pd: float
    pd_source: PDSource
    ttc_pd: float | None
    lgd: float
    ead: float
    maturity: float
    effective_maturity: float
    base_correlation: float
    avc_multiplier: float
    correlation: float
    maturity_adjustment: float
    k: float
    rwa: float
    original_rwa: float | None = None
    has_adjustment: bool = False
    has_portfolio_adjustment: bool = False
    rwa_density: float = 0.0
    stage: AdjustmentStage = AdjustmentStage.BASE

    @property
    def base_rwa(self) -> float:
        """RWA before any manual adjustment."""
        return self.rwa if self.original_rwa is None else self.original_rwa

    @property
    def total_adjustment(self) -> float:
        """Final RWA minus base RWA."""
        return self.rwa - self.base_rwa

    @property
    def adjustment_percentage(self) -> float:
        """Total adjustment as a percentage of base RWA (0 when base is 0)."""
        base = self.base_rwa
        return (self.rwa / base - 1.0) * 100.0 if base > 0 else 0.0

    @property
    def risk_weight(self) -> float:
        """Risk weight as a fraction of EAD (K × 12.5)."""
        return self.k * 12.5

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "pd": self.pd,
            "pd_source": self.pd_source.value,
            "ttc_pd": self.ttc_pd,
            "lgd": self.lgd,
            "ead": self.ead,
            "maturity": self.maturity,
            "effective_maturity": self.effective_maturity,
            "base_correlation": self.base_correlation,
            "avc_multiplier": self.avc_multiplier,
            "correlation": self.correlation,
            "maturity_adjustment": self.maturity_adjustment,
            "k": self.k,
            "rwa": self.rwa,
            "original_rwa": self.original_rwa,
            "has_adjustment": self.has_adjustment,
            "has_portfolio_adjustment": self.has_portfolio_adjustment,
            "rwa_density": self.rwa_density,
            "stage": self.stage.value,
        }
