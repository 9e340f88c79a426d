"""Domain layer - pure business models with no external dependencies."""

from portfolio_tracker.domain.models import (
    Portfolio,
    Security,
    Holding,
    Transaction,
    PriceHistory,
    PortfolioSnapshot,
    Dividend,
    TransactionType,
    SecurityType,
    ProviderName,
)

__all__ = [
    "Portfolio",
    "Security",
    "Holding",
    "Transaction",
    "PriceHistory",
    "PortfolioSnapshot",
    "Dividend",
    "TransactionType",
    "SecurityType",
    "ProviderName",
]
