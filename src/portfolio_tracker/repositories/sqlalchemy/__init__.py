"""SQLAlchemy repository implementations."""

from portfolio_tracker.repositories.sqlalchemy.database import (
    SessionFactory,
    create_db_engine,
    create_session_factory,
    make_sessionmaker,
    session_scope,
    init_db,
    Base,
)
from portfolio_tracker.repositories.sqlalchemy.portfolio_repo import SqlAlchemyPortfolioRepository
from portfolio_tracker.repositories.sqlalchemy.security_repo import SqlAlchemySecurityRepository
from portfolio_tracker.repositories.sqlalchemy.holding_repo import SqlAlchemyHoldingRepository
from portfolio_tracker.repositories.sqlalchemy.transaction_repo import SqlAlchemyTransactionRepository
from portfolio_tracker.repositories.sqlalchemy.price_history_repo import SqlAlchemyPriceHistoryRepository
from portfolio_tracker.repositories.sqlalchemy.snapshot_repo import SqlAlchemySnapshotRepository
from portfolio_tracker.repositories.sqlalchemy.dividend_repo import SqlAlchemyDividendRepository

__all__ = [
    "SessionFactory",
    "create_db_engine",
    "create_session_factory",
    "make_sessionmaker",
    "session_scope",
    "init_db",
    "Base",
    "SqlAlchemyPortfolioRepository",
    "SqlAlchemySecurityRepository",
    "SqlAlchemyHoldingRepository",
    "SqlAlchemyTransactionRepository",
    "SqlAlchemyPriceHistoryRepository",
    "SqlAlchemySnapshotRepository",
    "SqlAlchemyDividendRepository",
]
