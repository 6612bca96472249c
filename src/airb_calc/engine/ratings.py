"""
External rating to PD mapping.

Maps rating grades to PDs through the static rating table and finds the
nearest grade for a PD. A rating PD, when selected, substitutes for the
TTC PD entirely.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import polars as pl

from airb_calc.contracts.errors import CalculationError, unknown_rating_warning
from airb_calc.data.tables.credit_ratings import (
    CREDIT_RATING_PD,
    UNKNOWN_RATING_PD,
    lookup_rating_pd,
)

if TYPE_CHECKING:
    from airb_calc.contracts.models import Counterparty

logger = logging.getLogger(__name__)


def lookup_rating(
    rating: str,
    counterparty_reference: str | None = None,
    default_pd: float | None = None,
) -> tuple[float, CalculationError | None]:
    """
    Look up the PD of a rating, reporting unknown grades.

    Args:
        rating: Rating grade (e.g. "BBB+")
        counterparty_reference: Counterparty for error reporting
        default_pd: PD for unknown grades (0.01 if None)

    Returns:
        Tuple of (PD, data-quality warning or None)
    """
    pd = lookup_rating_pd(rating)
    if pd is not None:
        return float(pd), None

    fallback = float(UNKNOWN_RATING_PD) if default_pd is None else default_pd
    logger.warning("Rating %r not found in rating table; using PD %s", rating, fallback)
    return fallback, unknown_rating_warning(rating, fallback, counterparty_reference)


def pd_from_rating(rating: str, default_pd: float | None = None) -> float:
    """
    PD of a rating grade.

    Unknown grades are a data-quality condition, not a failure: they map
    to the default PD (0.01) and a warning is logged.
    """
    pd, _ = lookup_rating(rating, default_pd=default_pd)
    return pd


def rating_from_pd(pd: float) -> str:
    """
    Nearest rating grade to a PD by absolute difference.

    Ties go to the grade listed first in the rating table.
    """
    return min(CREDIT_RATING_PD, key=lambda rating: abs(float(CREDIT_RATING_PD[rating]) - pd))


def assign_credit_rating(
    counterparty: Counterparty,
    rating: str,
    use_rating_pd: bool = True,
) -> Counterparty:
    """
    Set a counterparty's rating and rating PD.

    Args:
        counterparty: Counterparty to update in place
        rating: Rating grade
        use_rating_pd: Whether the rating PD replaces the TTC PD

    Returns:
        The updated counterparty
    """
    counterparty.credit_rating = rating
    counterparty.credit_rating_pd = pd_from_rating(rating)
    counterparty.use_cred_rating_pd = use_rating_pd
    return counterparty


def rating_pd_expr(rating: str = "credit_rating") -> pl.Expr:
    """Pure Polars expression mapping rating grades to PDs (null if unknown)."""
    return pl.col(rating).replace_strict(
        {grade: float(pd) for grade, pd in CREDIT_RATING_PD.items()},
        default=None,
        return_dtype=pl.Float64,
    )
