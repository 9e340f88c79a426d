"""Domain models package."""

from portfolio_tracker.domain.models.enums import TransactionType, SecurityType, ProviderName
from portfolio_tracker.domain.models.portfolio import Portfolio
from portfolio_tracker.domain.models.security import Security
from portfolio_tracker.domain.models.holding import Holding
from portfolio_tracker.domain.models.transaction import Transaction
from portfolio_tracker.domain.models.price_history import PriceHistory
from portfolio_tracker.domain.models.snapshot import PortfolioSnapshot
from portfolio_tracker.domain.models.dividend import Dividend

__all__ = [
    "TransactionType",
    "SecurityType",
    "ProviderName",
    "Portfolio",
    "Security",
    "Holding",
    "Transaction",
    "PriceHistory",
    "PortfolioSnapshot",
    "Dividend",
]
