"""
Integration tests for SQLAlchemy repositories with SQLite.

Tests cover:
- Portfolio and security persistence
- Holding uniqueness and the optimistic version check
- Transaction ordering and sequence numbers
- Price history upsert
- Snapshot uniqueness per date
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio_tracker.core.exceptions import PersistenceConflictError
from portfolio_tracker.domain.models import (
    Holding,
    Portfolio,
    PortfolioSnapshot,
    PriceHistory,
    Security,
    Transaction,
    TransactionType,
)
from portfolio_tracker.repositories.sqlalchemy import (
    SqlAlchemyHoldingRepository,
    SqlAlchemyPortfolioRepository,
    SqlAlchemyPriceHistoryRepository,
    SqlAlchemySecurityRepository,
    SqlAlchemySnapshotRepository,
    SqlAlchemyTransactionRepository,
)

from tests.conftest import eastern_datetime


@pytest.fixture
def seeded(test_session: Session, clock):
    """A portfolio, a security and an empty holding."""
    portfolio = SqlAlchemyPortfolioRepository(test_session, clock=clock).create(
        Portfolio(portfolio_id="pf-001", name="Brokerage")
    )
    security = SqlAlchemySecurityRepository(test_session, clock=clock).create(
        Security(security_id="sec-aapl", symbol="AAPL", name="Apple Inc.")
    )
    holding = SqlAlchemyHoldingRepository(test_session, clock=clock).create(
        Holding(holding_id="hold-001", portfolio_id=portfolio.portfolio_id, security_id=security.security_id)
    )
    test_session.commit()
    return portfolio, security, holding


def make_txn(txn_id: str, day: int, sequence: int, shares: str = "10") -> Transaction:
    return Transaction(
        txn_id=txn_id,
        holding_id="hold-001",
        txn_type=TransactionType.BUY,
        shares=Decimal(shares),
        price_per_share=Decimal("100"),
        txn_time_est=eastern_datetime(2024, 6, day),
        sequence=sequence,
    )


# =============================================================================
# PORTFOLIO / SECURITY TESTS
# =============================================================================


class TestPortfolioAndSecurity:
    def test_portfolio_round_trip(self, test_session: Session, seeded, fixed_now):
        stored = SqlAlchemyPortfolioRepository(test_session).get_by_id("pf-001")

        assert stored.name == "Brokerage"
        assert stored.currency == "USD"
        assert stored.created_at_est == fixed_now
        assert stored.created_at_est.tzinfo is not None

    def test_security_symbol_unique(self, test_session: Session, seeded, clock):
        repo = SqlAlchemySecurityRepository(test_session, clock=clock)

        with pytest.raises(IntegrityError):
            repo.create(Security(security_id="sec-dup", symbol="AAPL", name="Duplicate"))

    def test_security_lookup_case_insensitive(self, test_session: Session, seeded):
        assert SqlAlchemySecurityRepository(test_session).get_by_symbol("aapl").security_id == "sec-aapl"


# =============================================================================
# HOLDING TESTS
# =============================================================================


class TestHoldingRepository:
    def test_one_holding_per_portfolio_and_security(self, test_session: Session, seeded, clock):
        repo = SqlAlchemyHoldingRepository(test_session, clock=clock)

        with pytest.raises(IntegrityError):
            repo.create(Holding(holding_id="hold-002", portfolio_id="pf-001", security_id="sec-aapl"))

    def test_update_derived_bumps_version(self, test_session: Session, seeded, clock):
        _, _, holding = seeded
        repo = SqlAlchemyHoldingRepository(test_session, clock=clock)
        holding.quantity = Decimal("10")
        holding.average_cost = Decimal("100")

        updated = repo.update_derived(holding, expected_version=0)

        assert updated.version == 1
        assert updated.quantity == Decimal("10")

    def test_stale_version_conflicts(self, test_session: Session, seeded, clock):
        """
        GIVEN a holding already updated to version 1
        WHEN a writer that read version 0 tries to update
        THEN PersistenceConflictError is raised and the row is unchanged
        """
        _, _, holding = seeded
        repo = SqlAlchemyHoldingRepository(test_session, clock=clock)
        holding.quantity = Decimal("10")
        repo.update_derived(holding, expected_version=0)

        holding.quantity = Decimal("99")
        with pytest.raises(PersistenceConflictError):
            repo.update_derived(holding, expected_version=0)

        assert repo.get_by_id("hold-001").quantity == Decimal("10")


# =============================================================================
# TRANSACTION TESTS
# =============================================================================


class TestTransactionRepository:
    def test_list_in_time_then_sequence_order(self, test_session: Session, seeded, clock):
        repo = SqlAlchemyTransactionRepository(test_session, clock=clock)
        repo.add(make_txn("t-late", day=10, sequence=1))
        repo.add(make_txn("t-early-b", day=5, sequence=3))
        repo.add(make_txn("t-early-a", day=5, sequence=2))

        assert [t.txn_id for t in repo.list_by_holding("hold-001")] == ["t-early-a", "t-early-b", "t-late"]
        assert repo.count_by_holding("hold-001") == 3
        assert repo.next_sequence("hold-001") == 4

    def test_next_sequence_starts_at_one(self, test_session: Session, seeded):
        assert SqlAlchemyTransactionRepository(test_session).next_sequence("hold-001") == 1

    def test_duplicate_sequence_rejected(self, test_session: Session, seeded, clock):
        repo = SqlAlchemyTransactionRepository(test_session, clock=clock)
        repo.add(make_txn("t-1", day=5, sequence=1))

        with pytest.raises(IntegrityError):
            repo.add(make_txn("t-2", day=6, sequence=1))

    def test_times_read_back_in_eastern(self, test_session: Session, seeded, clock):
        repo = SqlAlchemyTransactionRepository(test_session, clock=clock)
        repo.add(make_txn("t-1", day=5, sequence=1))
        test_session.commit()
        test_session.expire_all()

        stored = repo.get_by_id("t-1")

        assert stored.txn_time_est == eastern_datetime(2024, 6, 5)
        assert stored.txn_time_est.tzinfo is not None


# =============================================================================
# PRICE HISTORY TESTS
# =============================================================================


class TestPriceHistoryRepository:
    def test_upsert_overwrites_same_date(self, test_session: Session, seeded, clock):
        repo = SqlAlchemyPriceHistoryRepository(test_session, clock=clock)
        repo.upsert(PriceHistory(security_id="sec-aapl", price_date=date(2024, 6, 14), price=Decimal("185.50"), source="yahoo"))
        repo.upsert(PriceHistory(security_id="sec-aapl", price_date=date(2024, 6, 14), price=Decimal("186.10"), source="fmp"))
        repo.upsert(PriceHistory(security_id="sec-aapl", price_date=date(2024, 6, 13), price=Decimal("183.00"), source="yahoo"))

        history = repo.list_by_security("sec-aapl")

        assert [h.price_date for h in history] == [date(2024, 6, 13), date(2024, 6, 14)]
        assert history[1].price == Decimal("186.10")
        assert history[1].source == "fmp"


# =============================================================================
# SNAPSHOT TESTS
# =============================================================================


class TestSnapshotRepository:
    def make_snapshot(self, snapshot_id: str, day: int) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            snapshot_id=snapshot_id,
            portfolio_id="pf-001",
            snapshot_date=date(2024, 6, day),
            total_market_value=Decimal("1855"),
            total_cost_basis=Decimal("1500"),
            unrealized_gain=Decimal("355"),
        )

    def test_one_snapshot_per_date(self, test_session: Session, seeded, clock):
        repo = SqlAlchemySnapshotRepository(test_session, clock=clock)
        repo.create(self.make_snapshot("snap-1", 14))

        with pytest.raises(IntegrityError):
            repo.create(self.make_snapshot("snap-2", 14))

    def test_superseded_row_kept_beside_replacement(self, test_session: Session, seeded, clock):
        repo = SqlAlchemySnapshotRepository(test_session, clock=clock)
        repo.create(self.make_snapshot("snap-1", 14))

        repo.mark_superseded("snap-1")
        repo.create(replace(self.make_snapshot("snap-2", 14), supersedes_snapshot_id="snap-1"))

        assert repo.get("pf-001", date(2024, 6, 14)).snapshot_id == "snap-2"
        original = repo.get_by_id("snap-1")
        assert original.is_superseded
        assert original.total_market_value == Decimal("1855")
        assert [s.snapshot_id for s in repo.list_by_portfolio("pf-001")] == ["snap-2"]
        everything = repo.list_by_portfolio("pf-001", include_superseded=True)
        assert sorted(s.snapshot_id for s in everything) == ["snap-1", "snap-2"]

    def test_second_current_row_for_date_rejected(self, test_session: Session, seeded, clock):
        repo = SqlAlchemySnapshotRepository(test_session, clock=clock)
        repo.create(self.make_snapshot("snap-1", 14))
        repo.mark_superseded("snap-1")
        repo.create(self.make_snapshot("snap-2", 14))

        with pytest.raises(IntegrityError):
            repo.create(self.make_snapshot("snap-3", 14))
