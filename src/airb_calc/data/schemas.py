"""
Schemas for the portfolio inputs and outputs of airb_calc.

Key Data Inputs:
- Counterparty_portfolio    # One row per counterparty with A-IRB risk parameters and
                            # the counterparty/portfolio adjustments attached to it

Reference/Lookup Data:
- Credit_rating             # Rating grade to PD mapping (see data/tables/credit_ratings.py)

Output Schemas:
- RWA_result                # Per-counterparty RWA with formula intermediates and audit columns
- Portfolio_summary         # Portfolio totals
- Group_summary             # Totals by industry or region

Adjustments are flattened into a (type, value) column pair per scope, where
type is one of absolute, additive, multiplicative, percentage (null = none).
"""

import polars as pl

# Columns every portfolio frame must carry
REQUIRED_PORTFOLIO_SCHEMA = {
    "counterparty_id": pl.String,
    "pd": pl.Float64,  # Point-in-time PD, open interval (0, 1)
    "lgd": pl.Float64,
    "ead": pl.Float64,
    "maturity": pl.Float64,  # Years, clamped to [1, 5] in the maturity adjustment only
}

# Optional columns, added with neutral values when absent
OPTIONAL_PORTFOLIO_SCHEMA = {
    "name": pl.String,
    "industry": pl.String,
    "region": pl.String,
    "ttc_pd": pl.Float64,  # Derived from pd and the macro inputs below
    "macroeconomic_index": pl.Float64,  # 0 = weak economy, 1 = strong economy
    "long_term_average": pl.Float64,
    "cyclicality": pl.Float64,
    "is_financial": pl.Boolean,
    "is_large_financial": pl.Boolean,  # Null = derive from asset_size
    "is_regulated": pl.Boolean,
    "asset_size": pl.Float64,
    "credit_rating": pl.String,
    "credit_rating_pd": pl.Float64,
    "use_cred_rating_pd": pl.Boolean,
    "cp_adjustment_type": pl.String,  # Counterparty-scope adjustment
    "cp_adjustment_value": pl.Float64,
    "pf_adjustment_type": pl.String,  # Portfolio-scope adjustment
    "pf_adjustment_value": pl.Float64,
}

PORTFOLIO_SCHEMA = {**REQUIRED_PORTFOLIO_SCHEMA, **OPTIONAL_PORTFOLIO_SCHEMA}

CREDIT_RATING_SCHEMA = {
    "credit_rating": pl.String,
    "credit_rating_pd": pl.Float64,
    "description": pl.String,
    "rank": pl.Int32,  # Table order, best to worst
}

RWA_RESULT_SCHEMA = {
    "counterparty_id": pl.String,
    "name": pl.String,
    "industry": pl.String,
    "region": pl.String,
    "pd_used": pl.Float64,
    "pd_source": pl.String,  # rating, ttc, pit, default
    "ttc_pd": pl.Float64,
    "lgd": pl.Float64,
    "ead": pl.Float64,
    "maturity": pl.Float64,
    "effective_maturity": pl.Float64,
    "base_correlation": pl.Float64,
    "avc_multiplier": pl.Float64,
    "correlation": pl.Float64,
    "maturity_adjustment": pl.Float64,
    "k": pl.Float64,
    "base_rwa": pl.Float64,
    "rwa": pl.Float64,  # Final RWA after adjustment layering
    "original_rwa": pl.Float64,  # Null unless an adjustment stage ran
    "has_adjustment": pl.Boolean,
    "has_portfolio_adjustment": pl.Boolean,
    "rwa_density": pl.Float64,
    "stage": pl.String,  # base, counterparty_adjusted, portfolio_adjusted
}

PORTFOLIO_SUMMARY_SCHEMA = {
    "counterparty_count": pl.UInt32,
    "adjusted_count": pl.UInt32,
    "portfolio_adjusted_count": pl.UInt32,
    "total_ead": pl.Float64,
    "total_base_rwa": pl.Float64,
    "total_rwa": pl.Float64,
    "total_adjustment": pl.Float64,
    "adjustment_percentage": pl.Float64,
    "rwa_density": pl.Float64,
}

GROUP_SUMMARY_SCHEMA = {
    "group": pl.String,  # Industry or region value
    "counterparty_count": pl.UInt32,
    "total_ead": pl.Float64,
    "total_base_rwa": pl.Float64,
    "total_rwa": pl.Float64,
    "total_adjustment": pl.Float64,
    "adjustment_percentage": pl.Float64,
    "rwa_density": pl.Float64,
}
