"""Repository layer - data access abstractions and implementations."""

from portfolio_tracker.repositories.protocols import (
    PortfolioRepository,
    SecurityRepository,
    HoldingRepository,
    TransactionRepository,
    PriceHistoryRepository,
    SnapshotRepository,
    DividendRepository,
)

__all__ = [
    "PortfolioRepository",
    "SecurityRepository",
    "HoldingRepository",
    "TransactionRepository",
    "PriceHistoryRepository",
    "SnapshotRepository",
    "DividendRepository",
]
