"""
A-IRB Credit Risk RWA Calculator.

Risk-Weighted Assets (RWA) for corporate exposures under the Basel
Advanced Internal-Ratings-Based approach, with manual counterparty and
portfolio adjustments layered on top of the model output.

Basic usage:
    >>> from airb_calc.contracts.models import Counterparty
    >>> from airb_calc.engine import calculate_rwa
    >>>
    >>> counterparty = Counterparty("CP001", pd=0.01, lgd=0.45, ead=1_000_000, maturity=2.5)
    >>> result = calculate_rwa(counterparty)
"""

__version__ = "0.1.0"
__author__ = "OpenAfterHours"
__license__ = "Apache-2.0"

__all__ = [
    "__version__",
    "__author__",
    "__license__",
]
