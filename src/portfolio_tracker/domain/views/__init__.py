"""View models for service outputs."""

from portfolio_tracker.domain.views.market import Quote, SecurityMetadata
from portfolio_tracker.domain.views.portfolio import (
    HoldingState,
    HoldingValuation,
    PortfolioValuation,
)

__all__ = [
    "Quote",
    "SecurityMetadata",
    "HoldingState",
    "HoldingValuation",
    "PortfolioValuation",
]
