"""
Integration tests for LedgerService over a SQLite database.

Tests cover:
- Implicit holding creation and security lookup
- Derived state after buys and sells
- Oversell rejection leaving state unchanged
- Holding deletion rules
- Concurrent sells on one holding
- Conflict retry and rebuild from the log
- Dividends
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from portfolio_tracker.core.exceptions import (
    HoldingNotEmptyError,
    InsufficientSharesError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
)
from portfolio_tracker.domain.models import TransactionType
from portfolio_tracker.repositories.sqlalchemy import (
    SqlAlchemyHoldingRepository,
    SqlAlchemySecurityRepository,
)
from portfolio_tracker.services import LedgerService, TransactionCreate

from tests.conftest import assert_decimal_equal, buy, eastern_datetime, sell


# =============================================================================
# PORTFOLIO TESTS
# =============================================================================


class TestPortfolios:
    def test_create_and_list(self, ledger_service: LedgerService):
        created = ledger_service.create_portfolio("Retirement", "usd")

        assert created.currency == "USD"
        assert [p.portfolio_id for p in ledger_service.list_portfolios()] == [created.portfolio_id]

    def test_blank_name_rejected(self, ledger_service: LedgerService):
        with pytest.raises(ValidationError):
            ledger_service.create_portfolio("   ")

    def test_missing_portfolio(self, ledger_service: LedgerService):
        with pytest.raises(NotFoundError):
            ledger_service.get_portfolio("nope")


# =============================================================================
# APPLY TRANSACTION TESTS
# =============================================================================


class TestApplyTransaction:
    """Tests for applying BUY/SELL transactions."""

    def test_first_buy_creates_holding_and_security(
        self,
        ledger_service: LedgerService,
        sample_portfolio,
        session_factory,
    ):
        """
        GIVEN a portfolio with no holdings
        WHEN I buy 10 AAPL by symbol
        THEN a holding and a security (with provider metadata) exist
        """
        applied = ledger_service.apply_transaction(
            buy(sample_portfolio.portfolio_id, "aapl", "10", "185.50")
        )

        assert applied.state.symbol == "AAPL"
        assert applied.state.quantity == Decimal("10")
        assert applied.state.transaction_count == 1
        assert applied.transaction.sequence == 1
        with session_factory() as session:
            security = SqlAlchemySecurityRepository(session).get_by_symbol("AAPL")
        assert security.name == "AAPL Corp"

    def test_spec_example_sequence(self, ledger_service: LedgerService, sample_portfolio):
        """
        GIVEN an empty holding
        WHEN buy 25 @ 240, buy 25 @ 251, sell 10 @ 260
        THEN quantity 40, average 245.50, realized 145.00
        """
        first = ledger_service.apply_transaction(
            buy(sample_portfolio.portfolio_id, "MSFT", "25", "240.00", txn_time_est=eastern_datetime(2024, 6, 3))
        )
        holding_id = first.state.holding_id
        ledger_service.apply_transaction(
            buy(sample_portfolio.portfolio_id, "MSFT", "25", "251.00", txn_time_est=eastern_datetime(2024, 6, 4))
        )
        result = ledger_service.apply_transaction(
            sell(holding_id, "10", "260.00", txn_time_est=eastern_datetime(2024, 6, 5))
        )

        assert_decimal_equal(result.state.quantity, Decimal("40"))
        assert_decimal_equal(result.state.average_cost, Decimal("245.50"))
        assert_decimal_equal(result.state.realized_gain, Decimal("145.00"))

        stored = ledger_service.get_holding_state(holding_id)
        assert_decimal_equal(stored.quantity, Decimal("40"))
        assert_decimal_equal(stored.average_cost, Decimal("245.50"))
        assert stored.transaction_count == 3

    def test_oversell_rejected_state_unchanged(self, ledger_service: LedgerService, sample_portfolio):
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "10", "100"))
        holding_id = applied.state.holding_id

        with pytest.raises(InsufficientSharesError):
            ledger_service.apply_transaction(sell(holding_id, "11", "120"))

        state = ledger_service.get_holding_state(holding_id)
        assert_decimal_equal(state.quantity, Decimal("10"))
        assert state.transaction_count == 1

    def test_oversell_on_new_holding_leaves_nothing(
        self,
        ledger_service: LedgerService,
        sample_portfolio,
    ):
        data = TransactionCreate(
            portfolio_id=sample_portfolio.portfolio_id,
            symbol="TSLA",
            txn_type=TransactionType.SELL,
            shares=Decimal("1"),
            price_per_share=Decimal("100"),
        )

        with pytest.raises(InsufficientSharesError):
            ledger_service.apply_transaction(data)

        assert ledger_service.list_holdings(sample_portfolio.portfolio_id) == []

    def test_backdated_sell_validated_at_its_time(self, ledger_service: LedgerService, sample_portfolio):
        applied = ledger_service.apply_transaction(
            buy(sample_portfolio.portfolio_id, "AAPL", "10", "100", txn_time_est=eastern_datetime(2024, 6, 10))
        )

        with pytest.raises(InsufficientSharesError):
            ledger_service.apply_transaction(
                sell(applied.state.holding_id, "5", "100", txn_time_est=eastern_datetime(2024, 6, 1))
            )

    @pytest.mark.parametrize(
        "shares, price, fees",
        [("0", "100", "0"), ("-1", "100", "0"), ("1", "-5", "0"), ("1", "100", "-1")],
    )
    def test_invalid_amounts_rejected(self, ledger_service: LedgerService, sample_portfolio, shares, price, fees):
        with pytest.raises(ValidationError):
            ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", shares, price, fees))

    def test_target_required(self, ledger_service: LedgerService):
        data = TransactionCreate(
            txn_type=TransactionType.BUY,
            shares=Decimal("1"),
            price_per_share=Decimal("1"),
        )

        with pytest.raises(ValidationError):
            ledger_service.apply_transaction(data)

    def test_unknown_holding(self, ledger_service: LedgerService):
        with pytest.raises(NotFoundError):
            ledger_service.apply_transaction(sell("missing", "1", "1"))

    def test_unknown_portfolio(self, ledger_service: LedgerService):
        with pytest.raises(NotFoundError):
            ledger_service.apply_transaction(buy("missing", "AAPL", "1", "1"))

    def test_unknown_symbol_gets_placeholder_security(
        self,
        ledger_service: LedgerService,
        sample_portfolio,
        session_factory,
    ):
        ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "PRIVCO", "1", "10"))

        with session_factory() as session:
            security = SqlAlchemySecurityRepository(session).get_by_symbol("PRIVCO")
        assert security.name == "PRIVCO"

    def test_transactions_listed_in_replay_order(self, ledger_service: LedgerService, sample_portfolio):
        pid = sample_portfolio.portfolio_id
        applied = ledger_service.apply_transaction(
            buy(pid, "AAPL", "5", "100", txn_time_est=eastern_datetime(2024, 6, 10))
        )
        ledger_service.apply_transaction(buy(pid, "AAPL", "5", "90", txn_time_est=eastern_datetime(2024, 6, 1)))

        txns = ledger_service.list_transactions(applied.state.holding_id)

        assert [t.txn_time_est for t in txns] == [eastern_datetime(2024, 6, 1), eastern_datetime(2024, 6, 10)]
        assert [t.sequence for t in txns] == [2, 1]


# =============================================================================
# CONCURRENCY TESTS
# =============================================================================


class TestConcurrentWrites:
    def test_concurrent_sells_never_go_negative(self, ledger_service: LedgerService, sample_portfolio):
        """
        GIVEN a holding of 50 shares
        WHEN 10 threads each try to sell 10 shares at once
        THEN exactly 5 sells succeed and the final quantity is 0
        """
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "50", "100"))
        holding_id = applied.state.holding_id

        def try_sell(_):
            try:
                ledger_service.apply_transaction(sell(holding_id, "10", "110"))
                return True
            except InsufficientSharesError:
                return False

        with ThreadPoolExecutor(max_workers=10) as pool:
            outcomes = list(pool.map(try_sell, range(10)))

        assert outcomes.count(True) == 5
        state = ledger_service.get_holding_state(holding_id)
        assert_decimal_equal(state.quantity, Decimal("0"))
        assert_decimal_equal(state.realized_gain, Decimal("500"))
        assert state.transaction_count == 6

    def test_concurrent_first_buys_share_one_holding(self, ledger_service: LedgerService, sample_portfolio):
        pid = sample_portfolio.portfolio_id

        with ThreadPoolExecutor(max_workers=5) as pool:
            list(pool.map(lambda _: ledger_service.apply_transaction(buy(pid, "MSFT", "1", "300")), range(5)))

        holdings = ledger_service.list_holdings(pid)
        assert len(holdings) == 1
        assert_decimal_equal(holdings[0].quantity, Decimal("5"))

    def test_version_conflict_retried_once(
        self,
        ledger_service: LedgerService,
        sample_portfolio,
        monkeypatch,
    ):
        """
        GIVEN another writer bumps the holding version once mid-write
        WHEN I apply a transaction
        THEN the conflict is retried and the transaction is stored once
        """
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "10", "100"))
        original = SqlAlchemyHoldingRepository.update_derived
        conflicts = []

        def flaky_update(self, holding, expected_version):
            if not conflicts:
                conflicts.append(holding.holding_id)
                raise PersistenceConflictError("Holding", holding.holding_id)
            return original(self, holding, expected_version)

        monkeypatch.setattr(SqlAlchemyHoldingRepository, "update_derived", flaky_update)

        result = ledger_service.apply_transaction(sell(applied.state.holding_id, "4", "120"))

        assert conflicts == [applied.state.holding_id]
        assert_decimal_equal(result.state.quantity, Decimal("6"))
        assert result.state.transaction_count == 2

    def test_second_conflict_propagates(self, ledger_service: LedgerService, sample_portfolio, monkeypatch):
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "10", "100"))

        def always_conflict(self, holding, expected_version):
            raise PersistenceConflictError("Holding", holding.holding_id)

        monkeypatch.setattr(SqlAlchemyHoldingRepository, "update_derived", always_conflict)

        with pytest.raises(PersistenceConflictError):
            ledger_service.apply_transaction(sell(applied.state.holding_id, "1", "120"))

        monkeypatch.undo()
        assert ledger_service.get_holding_state(applied.state.holding_id).transaction_count == 1


# =============================================================================
# HOLDING LIFECYCLE TESTS
# =============================================================================


class TestHoldingLifecycle:
    def test_open_and_delete_empty_holding(self, ledger_service: LedgerService, sample_portfolio):
        state = ledger_service.open_holding(sample_portfolio.portfolio_id, "SPY")
        assert state.quantity == Decimal("0")
        assert state.transaction_count == 0

        ledger_service.delete_holding(state.holding_id)

        with pytest.raises(NotFoundError):
            ledger_service.get_holding_state(state.holding_id)

    def test_open_holding_is_idempotent(self, ledger_service: LedgerService, sample_portfolio):
        first = ledger_service.open_holding(sample_portfolio.portfolio_id, "SPY")
        second = ledger_service.open_holding(sample_portfolio.portfolio_id, "spy")

        assert first.holding_id == second.holding_id

    def test_delete_with_transactions_rejected(self, ledger_service: LedgerService, sample_portfolio):
        """
        GIVEN a holding bought and fully sold (quantity 0, 2 transactions)
        WHEN I delete it
        THEN HoldingNotEmptyError is raised
        """
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "5", "100"))
        ledger_service.apply_transaction(sell(applied.state.holding_id, "5", "100"))

        with pytest.raises(HoldingNotEmptyError) as exc_info:
            ledger_service.delete_holding(applied.state.holding_id)

        assert exc_info.value.transaction_count == 2

    def test_rebuild_restores_derived_fields(
        self,
        ledger_service: LedgerService,
        sample_portfolio,
        session_factory,
    ):
        pid = sample_portfolio.portfolio_id
        applied = ledger_service.apply_transaction(buy(pid, "AAPL", "25", "240"))
        ledger_service.apply_transaction(buy(pid, "AAPL", "25", "251"))

        # Corrupt the derived fields behind the ledger's back
        with session_factory() as session:
            repo = SqlAlchemyHoldingRepository(session)
            holding = repo.get_by_id(applied.state.holding_id)
            holding.quantity = Decimal("999")
            repo.update_derived(holding, expected_version=holding.version)

        rebuilt = ledger_service.rebuild_holding(applied.state.holding_id)

        assert_decimal_equal(rebuilt.quantity, Decimal("50"))
        assert_decimal_equal(rebuilt.average_cost, Decimal("245.50"))

    def test_applied_state_matches_rebuild(self, ledger_service: LedgerService, sample_portfolio):
        """
        GIVEN buys and a sell at the finest stored precision
        WHEN the holding is rebuilt from its log
        THEN the rebuilt state equals the state the writes produced
        """
        pid = sample_portfolio.portfolio_id
        ledger_service.apply_transaction(buy(pid, "AAPL", "0.1234567891", "100.1234", fees="0.0001"))
        ledger_service.apply_transaction(buy(pid, "AAPL", "3", "99.9999"))
        applied = ledger_service.apply_transaction(
            sell(ledger_service.list_holdings(pid)[0].holding_id, "1.0000000001", "101.5")
        )

        rebuilt = ledger_service.rebuild_holding(applied.state.holding_id)

        assert rebuilt.quantity == applied.state.quantity
        assert rebuilt.average_cost == applied.state.average_cost
        assert rebuilt.realized_gain == applied.state.realized_gain
        assert rebuilt.total_fees == applied.state.total_fees

    def test_fine_grained_position_can_be_sold_in_full(self, ledger_service: LedgerService, sample_portfolio):
        applied = ledger_service.apply_transaction(
            buy(sample_portfolio.portfolio_id, "AAPL", "0.1234567891", "100")
        )

        closed = ledger_service.apply_transaction(sell(applied.state.holding_id, "0.1234567891", "110"))

        assert closed.state.quantity == Decimal("0")

    @pytest.mark.parametrize(
        "shares, price, fees",
        [("10", "100.12345", "0"), ("0.12345678901", "10", "0"), ("1", "10", "0.00001")],
    )
    def test_precision_beyond_storage_rejected(
        self,
        ledger_service: LedgerService,
        sample_portfolio,
        shares,
        price,
        fees,
    ):
        with pytest.raises(ValidationError, match="decimal places"):
            ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", shares, price, fees))

        assert ledger_service.list_holdings(sample_portfolio.portfolio_id) == []

    def test_trailing_zeros_accepted(self, ledger_service: LedgerService, sample_portfolio):
        applied = ledger_service.apply_transaction(
            buy(sample_portfolio.portfolio_id, "AAPL", "2.000000000000", "100.12340000")
        )

        assert applied.transaction.price_per_share == Decimal("100.1234")
        assert applied.state.average_cost == Decimal("100.1234")


# =============================================================================
# DIVIDEND TESTS
# =============================================================================


class TestDividends:
    def test_dividend_uses_current_quantity(self, ledger_service: LedgerService, sample_portfolio):
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "40", "100"))

        dividend = ledger_service.record_dividend(
            applied.state.holding_id, Decimal("0.24"), payment_date=date(2024, 6, 13)
        )

        assert_decimal_equal(dividend.total_amount, Decimal("9.60"))
        assert len(ledger_service.list_dividends(applied.state.holding_id)) == 1

    def test_dividend_uses_shares_before_ex_date(self, ledger_service: LedgerService, sample_portfolio):
        pid = sample_portfolio.portfolio_id
        applied = ledger_service.apply_transaction(
            buy(pid, "AAPL", "10", "100", txn_time_est=eastern_datetime(2024, 5, 1))
        )
        ledger_service.apply_transaction(buy(pid, "AAPL", "30", "100", txn_time_est=eastern_datetime(2024, 5, 20)))

        dividend = ledger_service.record_dividend(
            applied.state.holding_id,
            Decimal("0.25"),
            payment_date=date(2024, 5, 16),
            ex_dividend_date=date(2024, 5, 10),
        )

        assert_decimal_equal(dividend.total_amount, Decimal("2.50"))

    def test_dividend_without_shares_rejected(self, ledger_service: LedgerService, sample_portfolio):
        state = ledger_service.open_holding(sample_portfolio.portfolio_id, "AAPL")

        with pytest.raises(ValidationError):
            ledger_service.record_dividend(state.holding_id, Decimal("0.25"), payment_date=date(2024, 5, 16))

    def test_dividend_does_not_change_cost_basis(self, ledger_service: LedgerService, sample_portfolio):
        applied = ledger_service.apply_transaction(buy(sample_portfolio.portfolio_id, "AAPL", "10", "100"))
        ledger_service.record_dividend(applied.state.holding_id, Decimal("1"), payment_date=date(2024, 6, 1))

        state = ledger_service.get_holding_state(applied.state.holding_id)
        assert_decimal_equal(state.average_cost, Decimal("100"))
        assert_decimal_equal(state.quantity, Decimal("10"))
