"""Repository protocol definitions (interfaces)."""

from portfolio_tracker.repositories.protocols.portfolio_repo import PortfolioRepository
from portfolio_tracker.repositories.protocols.security_repo import SecurityRepository
from portfolio_tracker.repositories.protocols.holding_repo import HoldingRepository
from portfolio_tracker.repositories.protocols.transaction_repo import TransactionRepository
from portfolio_tracker.repositories.protocols.price_history_repo import PriceHistoryRepository
from portfolio_tracker.repositories.protocols.snapshot_repo import SnapshotRepository
from portfolio_tracker.repositories.protocols.dividend_repo import DividendRepository

__all__ = [
    "PortfolioRepository",
    "SecurityRepository",
    "HoldingRepository",
    "TransactionRepository",
    "PriceHistoryRepository",
    "SnapshotRepository",
    "DividendRepository",
]
