"""SQLAlchemy ORM model definitions."""

from sqlalchemy import (
    Column,
    Date,
    String,
    DateTime,
    Boolean,
    Integer,
    BigInteger,
    Text,
    ForeignKey,
    Numeric,
    UniqueConstraint,
    Index,
    Enum as SqlEnum,
    text,
)

from portfolio_tracker.repositories.sqlalchemy.database import Base
from portfolio_tracker.domain.models.enums import TransactionType, SecurityType

# Timestamps are written explicitly by the repositories (stamp on write);
# no column carries a default= or onupdate= hook.


class PortfolioORM(Base):
    """SQLAlchemy model for Portfolio."""

    __tablename__ = "portfolios"

    portfolio_id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    currency = Column(String(3), nullable=False)
    created_at_est = Column(DateTime, nullable=False)
    updated_at_est = Column(DateTime, nullable=False)


class SecurityORM(Base):
    """SQLAlchemy model for Security."""

    __tablename__ = "securities"

    security_id = Column(String(36), primary_key=True)
    symbol = Column(String(20), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    exchange = Column(String(50), nullable=True)
    currency = Column(String(3), nullable=False)
    security_type = Column(SqlEnum(SecurityType), nullable=False)
    metadata_refreshed_at_est = Column(DateTime, nullable=True)
    created_at_est = Column(DateTime, nullable=False)
    updated_at_est = Column(DateTime, nullable=False)


class HoldingORM(Base):
    """SQLAlchemy model for Holding (derived ledger state)."""

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "security_id", name="uq_holdings_portfolio_security"),
    )

    holding_id = Column(String(36), primary_key=True)
    portfolio_id = Column(String(36), ForeignKey("portfolios.portfolio_id"), nullable=False, index=True)
    security_id = Column(String(36), ForeignKey("securities.security_id"), nullable=False, index=True)
    quantity = Column(Numeric(precision=28, scale=10), nullable=False)
    average_cost = Column(Numeric(precision=28, scale=10), nullable=False)
    realized_gain = Column(Numeric(precision=28, scale=10), nullable=False)
    total_fees = Column(Numeric(precision=18, scale=4), nullable=False)
    version = Column(Integer, nullable=False)
    created_at_est = Column(DateTime, nullable=False)
    updated_at_est = Column(DateTime, nullable=False)


class TransactionORM(Base):
    """SQLAlchemy model for Transaction (ledger entry)."""

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("holding_id", "sequence", name="uq_transactions_holding_sequence"),
        Index("ix_transactions_holding_time", "holding_id", "txn_time_est"),
    )

    txn_id = Column(String(36), primary_key=True)
    holding_id = Column(String(36), ForeignKey("holdings.holding_id"), nullable=False)
    txn_type = Column(SqlEnum(TransactionType), nullable=False)
    shares = Column(Numeric(precision=28, scale=10), nullable=False)
    price_per_share = Column(Numeric(precision=18, scale=4), nullable=False)
    fees = Column(Numeric(precision=18, scale=4), nullable=False)
    txn_time_est = Column(DateTime, nullable=False)
    sequence = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at_est = Column(DateTime, nullable=False)


class PriceHistoryORM(Base):
    """SQLAlchemy model for PriceHistory (archived daily prices)."""

    __tablename__ = "price_history"
    __table_args__ = (
        UniqueConstraint("security_id", "price_date", name="uq_price_history_security_date"),
    )

    price_history_id = Column(Integer, primary_key=True, autoincrement=True)
    security_id = Column(String(36), ForeignKey("securities.security_id"), nullable=False)
    price_date = Column(Date, nullable=False, index=True)
    price = Column(Numeric(precision=18, scale=4), nullable=False)
    open_price = Column(Numeric(precision=18, scale=4), nullable=True)
    high_price = Column(Numeric(precision=18, scale=4), nullable=True)
    low_price = Column(Numeric(precision=18, scale=4), nullable=True)
    close_price = Column(Numeric(precision=18, scale=4), nullable=True)
    volume = Column(BigInteger, nullable=True)
    source = Column(String(20), nullable=False)
    created_at_est = Column(DateTime, nullable=False)
    updated_at_est = Column(DateTime, nullable=False)


class PortfolioSnapshotORM(Base):
    """SQLAlchemy model for PortfolioSnapshot."""

    __tablename__ = "portfolio_snapshots"
    __table_args__ = (
        # One current snapshot per (portfolio, date); superseded rows are kept
        Index(
            "uq_snapshots_portfolio_date_current",
            "portfolio_id",
            "snapshot_date",
            unique=True,
            sqlite_where=text("is_superseded = 0"),
            postgresql_where=text("NOT is_superseded"),
        ),
        Index("ix_snapshots_portfolio_date", "portfolio_id", "snapshot_date"),
    )

    snapshot_id = Column(String(36), primary_key=True)
    portfolio_id = Column(String(36), ForeignKey("portfolios.portfolio_id"), nullable=False)
    snapshot_date = Column(Date, nullable=False)
    total_market_value = Column(Numeric(precision=18, scale=4), nullable=False)
    total_cost_basis = Column(Numeric(precision=18, scale=4), nullable=False)
    unrealized_gain = Column(Numeric(precision=18, scale=4), nullable=False)
    realized_gain = Column(Numeric(precision=18, scale=4), nullable=False)
    is_partial = Column(Boolean, nullable=False)
    supersedes_snapshot_id = Column(String(36), nullable=True)
    is_superseded = Column(Boolean, nullable=False)
    created_at_est = Column(DateTime, nullable=False)


class DividendORM(Base):
    """SQLAlchemy model for Dividend."""

    __tablename__ = "dividends"

    dividend_id = Column(String(36), primary_key=True)
    holding_id = Column(String(36), ForeignKey("holdings.holding_id"), nullable=False, index=True)
    amount_per_share = Column(Numeric(precision=18, scale=4), nullable=False)
    total_amount = Column(Numeric(precision=18, scale=4), nullable=False)
    payment_date = Column(Date, nullable=False)
    ex_dividend_date = Column(Date, nullable=True)
    created_at_est = Column(DateTime, nullable=False)
