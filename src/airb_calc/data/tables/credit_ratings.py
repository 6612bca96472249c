"""
External credit rating to PD mapping.

Approximate midpoint one-year PDs for S&P-style rating grades, based on
historical default rates. Provided both as an ordered dict (scalar lookups)
and as a Polars DataFrame (joins in the portfolio path).

Table order runs from best (AAA) to worst (D) and breaks ties in
nearest-PD lookups.
"""

from decimal import Decimal

import polars as pl


# =============================================================================
# RATING TABLE
# =============================================================================

# Rating grade -> one-year PD, best to worst
CREDIT_RATING_PD: dict[str, Decimal] = {
    "AAA": Decimal("0.0001"),   # 0.01%
    "AA+": Decimal("0.0002"),
    "AA": Decimal("0.0003"),
    "AA-": Decimal("0.0004"),
    "A+": Decimal("0.0005"),
    "A": Decimal("0.0007"),
    "A-": Decimal("0.0009"),
    "BBB+": Decimal("0.0012"),
    "BBB": Decimal("0.0022"),
    "BBB-": Decimal("0.0035"),  # Lowest investment grade
    "BB+": Decimal("0.0065"),
    "BB": Decimal("0.012"),
    "BB-": Decimal("0.019"),
    "B+": Decimal("0.029"),
    "B": Decimal("0.045"),
    "B-": Decimal("0.065"),
    "CCC+": Decimal("0.095"),
    "CCC": Decimal("0.14"),
    "CCC-": Decimal("0.19"),
    "CC": Decimal("0.25"),
    "C": Decimal("0.35"),
    "D": Decimal("1.0"),        # In default
}

CREDIT_RATING_DESCRIPTIONS: dict[str, str] = {
    "AAA": "Extremely strong capacity to meet financial commitments",
    "AA+": "Very strong capacity to meet financial commitments",
    "AA": "Very strong capacity to meet financial commitments",
    "AA-": "Very strong capacity to meet financial commitments",
    "A+": "Strong capacity to meet financial commitments",
    "A": "Strong capacity to meet financial commitments",
    "A-": "Strong capacity to meet financial commitments",
    "BBB+": "Adequate capacity to meet financial commitments",
    "BBB": "Adequate capacity to meet financial commitments",
    "BBB-": "Considered lowest investment grade by market participants",
    "BB+": "Less vulnerable in the near-term but faces ongoing uncertainties",
    "BB": "Less vulnerable in the near-term but faces ongoing uncertainties",
    "BB-": "Less vulnerable in the near-term but faces ongoing uncertainties",
    "B+": "More vulnerable to adverse business, financial and economic conditions",
    "B": "More vulnerable to adverse business, financial and economic conditions",
    "B-": "More vulnerable to adverse business, financial and economic conditions",
    "CCC+": "Currently vulnerable and dependent on favorable conditions to meet commitments",
    "CCC": "Currently vulnerable and dependent on favorable conditions to meet commitments",
    "CCC-": "Currently highly vulnerable",
    "CC": "Currently highly vulnerable",
    "C": "A bankruptcy petition has been filed but payments are continued",
    "D": "Payment default on financial commitments",
}

# PD assigned to ratings missing from the table
UNKNOWN_RATING_PD: Decimal = Decimal("0.01")


def _create_credit_rating_df() -> pl.DataFrame:
    """Create the rating lookup DataFrame in table order."""
    return pl.DataFrame(
        {
            "credit_rating": list(CREDIT_RATING_PD),
            "credit_rating_pd": [float(pd) for pd in CREDIT_RATING_PD.values()],
            "description": [CREDIT_RATING_DESCRIPTIONS[r] for r in CREDIT_RATING_PD],
            "rank": list(range(len(CREDIT_RATING_PD))),
        },
        schema={
            "credit_rating": pl.String,
            "credit_rating_pd": pl.Float64,
            "description": pl.String,
            "rank": pl.Int32,
        },
    )


def get_credit_rating_table() -> pl.DataFrame:
    """
    Get the rating lookup table.

    Returns:
        DataFrame with columns: credit_rating, credit_rating_pd, description, rank
    """
    return _create_credit_rating_df()


def lookup_rating_pd(rating: str) -> Decimal | None:
    """
    Look up the PD of a rating grade.

    Returns:
        PD as Decimal, or None if the rating is not in the table
    """
    return CREDIT_RATING_PD.get(rating)
