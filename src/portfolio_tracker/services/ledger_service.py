"""Ledger service: portfolios, holdings and the transaction log."""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError

from portfolio_tracker.core.concurrency import KeyedLocks
from portfolio_tracker.core.exceptions import (
    HoldingNotEmptyError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
)
from portfolio_tracker.core.timezone import EASTERN_TZ, now_eastern, to_eastern
from portfolio_tracker.domain.models import (
    Dividend,
    Holding,
    Portfolio,
    Security,
    Transaction,
    TransactionType,
)
from portfolio_tracker.domain.views import HoldingState
from portfolio_tracker.repositories import HoldingRepository
from portfolio_tracker.repositories.sqlalchemy import (
    SessionFactory,
    SqlAlchemyDividendRepository,
    SqlAlchemyHoldingRepository,
    SqlAlchemyPortfolioRepository,
    SqlAlchemySecurityRepository,
    SqlAlchemyTransactionRepository,
)
from portfolio_tracker.services.cost_basis import CostBasisState, replay
from portfolio_tracker.services.security_service import SecurityService

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Decimal places of the stored transaction columns
SHARES_PLACES = 10
PRICE_PLACES = 4


@dataclass
class TransactionCreate:
    """
    Input data for applying a transaction.

    Target either an existing holding (``holding_id``) or a portfolio and
    symbol; the latter creates the holding on its first transaction.
    """

    txn_type: TransactionType
    shares: Decimal
    price_per_share: Decimal
    fees: Decimal = Decimal("0")
    txn_time_est: Optional[datetime] = None
    notes: Optional[str] = None
    holding_id: Optional[str] = None
    portfolio_id: Optional[str] = None
    symbol: Optional[str] = None


@dataclass(frozen=True)
class AppliedTransaction:
    """A stored transaction and the holding state it produced."""

    transaction: Transaction
    state: HoldingState


class LedgerService:
    """
    Service for managing the transaction ledger.

    The transaction log is the source of truth. Every write replays the
    holding's full log (new transaction included, in timestamp order) and
    stores the transaction together with the holding's derived fields in
    one unit of work. Writes to one holding are serialized in-process and
    guarded by a version check against other processes.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        security_service: SecurityService,
        clock: Callable[[], datetime] = now_eastern,
        locks: Optional[KeyedLocks] = None,
    ):
        self._session_factory = session_factory
        self._securities = security_service
        self._clock = clock
        self._locks = locks if locks is not None else KeyedLocks()

    # Portfolios

    def create_portfolio(self, name: str, currency: str = "USD") -> Portfolio:
        """Create a new portfolio."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Portfolio name is required")
        currency = (currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"Invalid currency code: {currency!r}")

        portfolio = Portfolio(portfolio_id=str(uuid.uuid4()), name=name, currency=currency)
        with self._session_factory() as session:
            return SqlAlchemyPortfolioRepository(session, clock=self._clock).create(portfolio)

    def get_portfolio(self, portfolio_id: str) -> Portfolio:
        """Get portfolio by ID."""
        with self._session_factory() as session:
            portfolio = SqlAlchemyPortfolioRepository(session, clock=self._clock).get_by_id(portfolio_id)
        if not portfolio:
            raise NotFoundError("Portfolio", portfolio_id)
        return portfolio

    def list_portfolios(self) -> list[Portfolio]:
        """List all portfolios."""
        with self._session_factory() as session:
            return SqlAlchemyPortfolioRepository(session, clock=self._clock).list_all()

    # Holdings and transactions

    def apply_transaction(self, data: TransactionCreate) -> AppliedTransaction:
        """
        Append a BUY or SELL to a holding's log.

        Raises InsufficientSharesError (state unchanged) when a sell would
        take the position below zero at its point in the timeline.
        """
        txn_type, shares, price, fees = self._validate_transaction_create(data)
        portfolio_id, security = self._resolve_target(data)
        txn_time = to_eastern(data.txn_time_est) if data.txn_time_est else self._clock()

        def _apply() -> AppliedTransaction:
            with self._session_factory() as session:
                holdings = SqlAlchemyHoldingRepository(session, clock=self._clock)
                transactions = SqlAlchemyTransactionRepository(session, clock=self._clock)

                holding = holdings.get_by_portfolio_and_security(portfolio_id, security.security_id)
                if holding is None:
                    if data.holding_id:
                        raise NotFoundError("Holding", data.holding_id)
                    holding = holdings.create(
                        Holding(
                            holding_id=str(uuid.uuid4()),
                            portfolio_id=portfolio_id,
                            security_id=security.security_id,
                        )
                    )

                history = transactions.list_by_holding(holding.holding_id)
                stored = transactions.add(
                    Transaction(
                        txn_id=str(uuid.uuid4()),
                        holding_id=holding.holding_id,
                        txn_type=txn_type,
                        shares=shares,
                        price_per_share=price,
                        fees=fees,
                        txn_time_est=txn_time,
                        sequence=transactions.next_sequence(holding.holding_id),
                        notes=data.notes,
                    )
                )
                # Fold the row as stored so a later rebuild gives the same state
                state = replay([*history, stored], symbol=security.symbol)
                updated = self._store_state(holdings, holding, state)
                logger.debug(
                    "Applied %s %s %s -> quantity %s",
                    txn_type.value,
                    shares,
                    security.symbol,
                    state.quantity,
                )
                return AppliedTransaction(
                    transaction=stored,
                    state=self._to_state(updated, security.symbol, len(history) + 1),
                )

        with self._locks.hold((portfolio_id, security.security_id)):
            return self._with_conflict_retry(_apply)

    def get_holding_state(self, holding_id: str) -> HoldingState:
        """Current quantity, average cost and realized gain of a holding."""
        with self._session_factory() as session:
            holding, security = self._load_holding(session, holding_id)
            count = SqlAlchemyTransactionRepository(session, clock=self._clock).count_by_holding(holding_id)
        return self._to_state(holding, security.symbol, count)

    def list_holdings(self, portfolio_id: str) -> list[HoldingState]:
        """States of every holding in a portfolio."""
        self.get_portfolio(portfolio_id)
        with self._session_factory() as session:
            securities = SqlAlchemySecurityRepository(session, clock=self._clock)
            transactions = SqlAlchemyTransactionRepository(session, clock=self._clock)
            result = []
            for holding in SqlAlchemyHoldingRepository(session, clock=self._clock).list_by_portfolio(portfolio_id):
                security = securities.get_by_id(holding.security_id)
                result.append(
                    self._to_state(holding, security.symbol, transactions.count_by_holding(holding.holding_id))
                )
        return result

    def list_transactions(self, holding_id: str) -> list[Transaction]:
        """A holding's transactions in replay order."""
        with self._session_factory() as session:
            self._load_holding(session, holding_id)
            return SqlAlchemyTransactionRepository(session, clock=self._clock).list_by_holding(holding_id)

    def open_holding(self, portfolio_id: str, symbol: str) -> HoldingState:
        """Get or create an (empty) holding for a symbol in a portfolio."""
        self.get_portfolio(portfolio_id)
        security = self._securities.ensure_security(symbol)

        def _open() -> HoldingState:
            with self._session_factory() as session:
                holdings = SqlAlchemyHoldingRepository(session, clock=self._clock)
                holding = holdings.get_by_portfolio_and_security(portfolio_id, security.security_id)
                if holding is None:
                    holding = holdings.create(
                        Holding(
                            holding_id=str(uuid.uuid4()),
                            portfolio_id=portfolio_id,
                            security_id=security.security_id,
                        )
                    )
                count = SqlAlchemyTransactionRepository(session, clock=self._clock).count_by_holding(
                    holding.holding_id
                )
                return self._to_state(holding, security.symbol, count)

        with self._locks.hold((portfolio_id, security.security_id)):
            return self._with_conflict_retry(_open)

    def delete_holding(self, holding_id: str) -> None:
        """Delete a holding. Only allowed while its transaction list is empty."""
        with self._session_factory() as session:
            holding, _ = self._load_holding(session, holding_id)

        with self._locks.hold((holding.portfolio_id, holding.security_id)):
            with self._session_factory() as session:
                count = SqlAlchemyTransactionRepository(session, clock=self._clock).count_by_holding(holding_id)
                if count:
                    raise HoldingNotEmptyError(holding_id, count)
                SqlAlchemyHoldingRepository(session, clock=self._clock).delete(holding_id)
        logger.info("Deleted empty holding %s", holding_id)

    def rebuild_holding(self, holding_id: str) -> HoldingState:
        """Recompute a holding's derived fields from its transaction log."""
        with self._session_factory() as session:
            holding, security = self._load_holding(session, holding_id)

        def _rebuild() -> HoldingState:
            with self._session_factory() as session:
                holdings = SqlAlchemyHoldingRepository(session, clock=self._clock)
                current = holdings.get_by_id(holding_id)
                if current is None:
                    raise NotFoundError("Holding", holding_id)
                history = SqlAlchemyTransactionRepository(session, clock=self._clock).list_by_holding(holding_id)
                state = replay(history, symbol=security.symbol)
                updated = self._store_state(holdings, current, state)
                return self._to_state(updated, security.symbol, len(history))

        with self._locks.hold((holding.portfolio_id, holding.security_id)):
            rebuilt = self._with_conflict_retry(_rebuild)
        logger.info("Rebuilt holding %s (%s) from ledger", holding_id, security.symbol)
        return rebuilt

    # Dividends

    def record_dividend(
        self,
        holding_id: str,
        amount_per_share: Decimal,
        payment_date: date,
        ex_dividend_date: Optional[date] = None,
    ) -> Dividend:
        """
        Record a dividend payment on a holding.

        Shares entitled are those held before the ex-dividend date when one
        is given, otherwise the current quantity.
        """
        amount = self._to_places(
            self._to_decimal(amount_per_share, "amount_per_share"), PRICE_PLACES, "amount_per_share"
        )
        if amount <= 0:
            raise ValidationError("Dividend amount_per_share must be > 0")
        if ex_dividend_date and ex_dividend_date > payment_date:
            raise ValidationError("Ex-dividend date cannot be after the payment date")

        with self._session_factory() as session:
            holding, security = self._load_holding(session, holding_id)
            if ex_dividend_date:
                cutoff = EASTERN_TZ.localize(datetime.combine(ex_dividend_date, datetime.min.time()))
                history = SqlAlchemyTransactionRepository(session, clock=self._clock).list_by_holding(holding_id)
                shares = replay([t for t in history if t.txn_time_est < cutoff], symbol=security.symbol).quantity
            else:
                shares = holding.quantity
            if shares <= 0:
                raise ValidationError(f"No shares of {security.symbol} entitled to the dividend")

            return SqlAlchemyDividendRepository(session, clock=self._clock).create(
                Dividend(
                    dividend_id=str(uuid.uuid4()),
                    holding_id=holding_id,
                    amount_per_share=amount,
                    total_amount=amount * shares,
                    payment_date=payment_date,
                    ex_dividend_date=ex_dividend_date,
                )
            )

    def list_dividends(self, holding_id: str) -> list[Dividend]:
        with self._session_factory() as session:
            self._load_holding(session, holding_id)
            return SqlAlchemyDividendRepository(session, clock=self._clock).list_by_holding(holding_id)

    # Helpers

    def _resolve_target(self, data: TransactionCreate) -> tuple[str, Security]:
        """Return (portfolio_id, security) the transaction applies to."""
        if data.holding_id:
            with self._session_factory() as session:
                holding, security = self._load_holding(session, data.holding_id)
            return holding.portfolio_id, security

        self.get_portfolio(data.portfolio_id)
        return data.portfolio_id, self._securities.ensure_security(data.symbol)

    def _load_holding(self, session, holding_id: str) -> tuple[Holding, Security]:
        holding = SqlAlchemyHoldingRepository(session, clock=self._clock).get_by_id(holding_id)
        if not holding:
            raise NotFoundError("Holding", holding_id)
        security = SqlAlchemySecurityRepository(session, clock=self._clock).get_by_id(holding.security_id)
        return holding, security

    @staticmethod
    def _store_state(
        holdings: HoldingRepository,
        holding: Holding,
        state: CostBasisState,
    ) -> Holding:
        return holdings.update_derived(
            replace(
                holding,
                quantity=state.quantity,
                average_cost=state.average_cost,
                realized_gain=state.realized_gain,
                total_fees=state.total_fees,
            ),
            expected_version=holding.version,
        )

    @staticmethod
    def _with_conflict_retry(operation: Callable[[], T]) -> T:
        """Run a unit of work; on a write conflict retry once with a fresh read."""
        try:
            return LedgerService._run_unit(operation)
        except PersistenceConflictError as exc:
            logger.warning("%s; retrying once with a fresh read", exc.message)
            return LedgerService._run_unit(operation)

    @staticmethod
    def _run_unit(operation: Callable[[], T]) -> T:
        try:
            return operation()
        except IntegrityError as exc:
            # Unique (portfolio, security) or (holding, sequence) lost a race
            raise PersistenceConflictError("Holding", str(exc.params)) from exc

    def _validate_transaction_create(
        self,
        data: TransactionCreate,
    ) -> tuple[TransactionType, Decimal, Decimal, Decimal]:
        """Validate transaction creation input."""
        try:
            txn_type = TransactionType(data.txn_type)
        except ValueError:
            raise ValidationError(f"Unsupported transaction type: {data.txn_type}") from None

        if not data.holding_id and not (data.portfolio_id and data.symbol):
            raise ValidationError("Transaction requires a holding_id or a portfolio_id and symbol")

        shares = self._to_places(self._to_decimal(data.shares, "shares"), SHARES_PLACES, "shares")
        price = self._to_places(
            self._to_decimal(data.price_per_share, "price_per_share"), PRICE_PLACES, "price_per_share"
        )
        fees = self._to_places(self._to_decimal(data.fees, "fees"), PRICE_PLACES, "fees")
        if shares <= 0:
            raise ValidationError(f"{txn_type.value} requires shares > 0")
        if price < 0:
            raise ValidationError(f"{txn_type.value} requires price_per_share >= 0")
        if fees < 0:
            raise ValidationError("Fees cannot be negative")
        return txn_type, shares, price, fees

    @staticmethod
    def _to_decimal(value, field_name: str) -> Decimal:
        if value is None:
            raise ValidationError(f"{field_name} is required")
        try:
            result = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field_name} is not a number: {value!r}") from None
        if not result.is_finite():
            raise ValidationError(f"{field_name} must be finite")
        return result

    @staticmethod
    def _to_places(value: Decimal, places: int, field_name: str) -> Decimal:
        """Return ``value`` at the stored scale; extra precision is rejected, never rounded."""
        try:
            scaled = value.quantize(Decimal(1).scaleb(-places))
        except InvalidOperation:
            raise ValidationError(f"{field_name} is out of range: {value}") from None
        if scaled != value:
            raise ValidationError(f"{field_name} supports at most {places} decimal places: {value}")
        return scaled

    @staticmethod
    def _to_state(holding: Holding, symbol: str, transaction_count: int) -> HoldingState:
        return HoldingState(
            holding_id=holding.holding_id,
            portfolio_id=holding.portfolio_id,
            symbol=symbol,
            quantity=holding.quantity,
            average_cost=holding.average_cost,
            realized_gain=holding.realized_gain,
            total_fees=holding.total_fees,
            transaction_count=transaction_count,
        )
