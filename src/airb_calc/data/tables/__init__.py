"""
Static lookup tables for the A-IRB RWA calculator.

Modules:
    credit_ratings: External rating grade to PD mapping
"""

from .credit_ratings import (
    CREDIT_RATING_DESCRIPTIONS,
    CREDIT_RATING_PD,
    UNKNOWN_RATING_PD,
    get_credit_rating_table,
    lookup_rating_pd,
)

__all__ = [
    "CREDIT_RATING_DESCRIPTIONS",
    "CREDIT_RATING_PD",
    "UNKNOWN_RATING_PD",
    "get_credit_rating_table",
    "lookup_rating_pd",
]
