"""API routers package."""

from portfolio_tracker.api.routers.portfolios import router as portfolios_router
from portfolio_tracker.api.routers.holdings import router as holdings_router
from portfolio_tracker.api.routers.quotes import router as quotes_router

__all__ = [
    "portfolios_router",
    "holdings_router",
    "quotes_router",
]
