"""
A-IRB RWA calculation engine.

    PD selection -> correlation / maturity adjustment / K -> base RWA
        -> adjustment layering -> aggregation

Modules:
    stats: Normal CDF and inverse normal approximations
    irb: Correlation, AVC, maturity adjustment and capital requirement
    ttc: Through-the-cycle PD normaliser
    ratings: Rating grade to PD mapping
    adjustments: Manual adjustment layering and portfolio distribution
    calculator: Scalar and portfolio RWA calculation
    aggregator: Portfolio summaries by industry and region
    sensitivity: Parameter sweeps

Polars Namespaces:
    Registered when this package is imported.
    - lf.airb: Portfolio pipeline
    - pl.col(...).airb: Column-level statistics
"""

# Import namespace module to register namespaces on module load
import airb_calc.engine.namespace  # noqa: F401

from .adjustments import (
    PortfolioAdjustmentPlan,
    PortfolioBaseline,
    distribute_portfolio_adjustment,
    layer_adjustments,
)
from .aggregator import PortfolioAggregator, PortfolioSummary, create_portfolio_aggregator
from .calculator import (
    RWACalculator,
    calculate_base_rwa,
    calculate_rwa,
    counterparties_to_frame,
    create_rwa_calculator,
    select_pd,
)
from .namespace import AIRBExpr, AIRBLazyFrame
from .ratings import assign_credit_rating, pd_from_rating, rating_from_pd
from .sensitivity import SensitivityAnalyzer, create_sensitivity_analyzer
from .stats import normal_cdf, normal_inverse
from .ttc import (
    calculate_ttc_pd,
    generate_ttc_inputs,
    refresh_ttc_pd,
    update_risk_parameters,
)

__all__ = [
    "PortfolioAdjustmentPlan",
    "PortfolioBaseline",
    "distribute_portfolio_adjustment",
    "layer_adjustments",
    "PortfolioAggregator",
    "PortfolioSummary",
    "create_portfolio_aggregator",
    "RWACalculator",
    "calculate_base_rwa",
    "calculate_rwa",
    "counterparties_to_frame",
    "create_rwa_calculator",
    "select_pd",
    "assign_credit_rating",
    "pd_from_rating",
    "rating_from_pd",
    "SensitivityAnalyzer",
    "create_sensitivity_analyzer",
    "normal_cdf",
    "normal_inverse",
    "calculate_ttc_pd",
    "generate_ttc_inputs",
    "refresh_ttc_pd",
    "update_risk_parameters",
    # Namespace classes
    "AIRBLazyFrame",
    "AIRBExpr",
]
