"""
A-IRB RWA Calculator API Module.

Public API for RWA calculations providing:
- RWAService: Main service facade for calculations
- Request/Response models: Clean interface contracts

Usage:
    from airb_calc.api import RWAService, CalculationRequest

    service = RWAService()
    response = service.calculate(
        CalculationRequest(
            counterparty={"id": "CP001", "pd": 0.01, "lgd": 0.45,
                          "ead": 1_000_000, "maturity": 2.5},
        )
    )

    if response.success:
        print(f"RWA: {response.result.rwa:,.0f}")
    else:
        for error in response.errors:
            print(f"{error.code}: {error.message}")
"""

from airb_calc.api.models import (
    APIError,
    CalculationRequest,
    CalculationResponse,
    PerformanceMetrics,
    PortfolioResponse,
    SummaryStatistics,
)
from airb_calc.api.service import (
    RWAService,
    create_service,
    quick_calculate,
)

__all__ = [
    # Service
    "RWAService",
    "create_service",
    "quick_calculate",
    # Request models
    "CalculationRequest",
    # Response models
    "CalculationResponse",
    "PortfolioResponse",
    "SummaryStatistics",
    "APIError",
    "PerformanceMetrics",
]
