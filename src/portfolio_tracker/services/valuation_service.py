"""Valuation engine: current portfolio value and daily snapshots."""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from portfolio_tracker.core.concurrency import KeyedLocks
from portfolio_tracker.core.exceptions import AppError, NotFoundError, QuoteUnavailableError
from portfolio_tracker.core.timezone import now_eastern, to_eastern
from portfolio_tracker.domain.models import PortfolioSnapshot
from portfolio_tracker.domain.views import HoldingValuation, PortfolioValuation, Quote
from portfolio_tracker.repositories.sqlalchemy import (
    SessionFactory,
    SqlAlchemyDividendRepository,
    SqlAlchemyHoldingRepository,
    SqlAlchemyPortfolioRepository,
    SqlAlchemySecurityRepository,
    SqlAlchemySnapshotRepository,
)
from portfolio_tracker.services.quote_cache import QuoteCache

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ValuationService:
    """
    Combines holding state with quotes to value portfolios.

    A holding whose quote cannot be obtained is reported unpriced and left
    out of the totals; the valuation is then flagged partial instead of
    failing. Snapshots are the only writes this service makes, one per
    (portfolio, date).
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        quote_cache: QuoteCache,
        max_workers: int = 8,
        clock: Callable[[], datetime] = now_eastern,
    ):
        self._session_factory = session_factory
        self._quote_cache = quote_cache
        self._max_workers = max(1, max_workers)
        self._clock = clock
        self._locks = KeyedLocks()

    def value_portfolio(self, portfolio_id: str) -> PortfolioValuation:
        """Value every holding of a portfolio at current quotes."""
        as_of = self._clock()
        with self._session_factory() as session:
            if SqlAlchemyPortfolioRepository(session, clock=self._clock).get_by_id(portfolio_id) is None:
                raise NotFoundError("Portfolio", portfolio_id)
            securities = SqlAlchemySecurityRepository(session, clock=self._clock)
            holdings = [
                (holding, securities.get_by_id(holding.security_id).symbol)
                for holding in SqlAlchemyHoldingRepository(session, clock=self._clock).list_by_portfolio(
                    portfolio_id
                )
            ]
            total_dividends = SqlAlchemyDividendRepository(session, clock=self._clock).total_by_holdings(
                [holding.holding_id for holding, _ in holdings]
            )

        # Closed positions contribute nothing and need no quote
        open_symbols = sorted({symbol for holding, symbol in holdings if holding.quantity > 0})
        quotes, failures = self._fetch_quotes(open_symbols)

        valuation = PortfolioValuation(
            portfolio_id=portfolio_id,
            as_of=as_of,
            total_dividends=total_dividends,
        )
        for holding, symbol in holdings:
            cost_basis = holding.quantity * holding.average_cost
            valuation.realized_gain += holding.realized_gain

            if holding.quantity <= 0:
                item = HoldingValuation(
                    holding_id=holding.holding_id,
                    symbol=symbol,
                    quantity=holding.quantity,
                    average_cost=holding.average_cost,
                    cost_basis=cost_basis,
                    priced=True,
                    market_value=ZERO,
                    unrealized_gain=ZERO,
                )
            elif symbol in quotes:
                quote = quotes[symbol]
                market_value = holding.quantity * quote.price
                item = HoldingValuation(
                    holding_id=holding.holding_id,
                    symbol=symbol,
                    quantity=holding.quantity,
                    average_cost=holding.average_cost,
                    cost_basis=cost_basis,
                    priced=True,
                    price=quote.price,
                    price_as_of=quote.as_of,
                    stale_price=quote.is_stale,
                    market_value=market_value,
                    unrealized_gain=market_value - cost_basis,
                )
            else:
                item = HoldingValuation(
                    holding_id=holding.holding_id,
                    symbol=symbol,
                    quantity=holding.quantity,
                    average_cost=holding.average_cost,
                    cost_basis=cost_basis,
                    priced=False,
                    error=failures.get(symbol),
                )
            valuation.holdings.append(item)

            if item.priced:
                valuation.market_value += item.market_value
                valuation.cost_basis += item.cost_basis
                valuation.has_stale_prices = valuation.has_stale_prices or item.stale_price
            else:
                valuation.partial = True

        valuation.unrealized_gain = valuation.market_value - valuation.cost_basis
        if valuation.partial:
            logger.info(
                "Partial valuation of %s; unpriced: %s",
                portfolio_id,
                ", ".join(valuation.unpriced_symbols),
            )
        return valuation

    def create_daily_snapshot(
        self,
        portfolio_id: str,
        snapshot_date: Optional[date] = None,
        force: bool = False,
    ) -> PortfolioSnapshot:
        """
        Store the portfolio's value for a date.

        Without ``force`` an existing snapshot for the date is returned
        untouched. With ``force`` a new record naming the current one in
        ``supersedes_snapshot_id`` is inserted, and the current one is
        flagged superseded in the same unit of work. Superseded records
        keep their values and stay readable through ``get_snapshot``.
        """
        snapshot_date = snapshot_date or to_eastern(self._clock()).date()

        with self._locks.hold(portfolio_id):
            if not force:
                existing = self._find_snapshot(portfolio_id, snapshot_date)
                if existing is not None:
                    return existing

            valuation = self.value_portfolio(portfolio_id)
            try:
                with self._session_factory() as session:
                    snapshots = SqlAlchemySnapshotRepository(session, clock=self._clock)
                    prior = snapshots.get(portfolio_id, snapshot_date)
                    if prior is not None and not force:
                        return prior
                    if prior is not None:
                        snapshots.mark_superseded(prior.snapshot_id)
                    created = snapshots.create(
                        PortfolioSnapshot(
                            snapshot_id=str(uuid.uuid4()),
                            portfolio_id=portfolio_id,
                            snapshot_date=snapshot_date,
                            total_market_value=valuation.market_value,
                            total_cost_basis=valuation.cost_basis,
                            unrealized_gain=valuation.unrealized_gain,
                            realized_gain=valuation.realized_gain,
                            is_partial=valuation.partial,
                            supersedes_snapshot_id=prior.snapshot_id if prior else None,
                        )
                    )
            except IntegrityError:
                # Another process stored the snapshot for this date first
                existing = self._find_snapshot(portfolio_id, snapshot_date)
                if existing is None:
                    raise
                return existing

        logger.info(
            "Snapshot %s for %s on %s%s",
            created.snapshot_id,
            portfolio_id,
            snapshot_date.isoformat(),
            " (supersedes %s)" % created.supersedes_snapshot_id if created.supersedes_snapshot_id else "",
        )
        return created

    def get_or_create_snapshot(self, portfolio_id: str, snapshot_date: date) -> PortfolioSnapshot:
        return self.create_daily_snapshot(portfolio_id, snapshot_date, force=False)

    def get_snapshot(self, snapshot_id: str) -> PortfolioSnapshot:
        """Any stored snapshot by ID, superseded ones included."""
        with self._session_factory() as session:
            snapshot = SqlAlchemySnapshotRepository(session, clock=self._clock).get_by_id(snapshot_id)
        if snapshot is None:
            raise NotFoundError("Snapshot", snapshot_id)
        return snapshot

    def list_snapshots(
        self,
        portfolio_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_superseded: bool = False,
    ) -> list[PortfolioSnapshot]:
        with self._session_factory() as session:
            if SqlAlchemyPortfolioRepository(session, clock=self._clock).get_by_id(portfolio_id) is None:
                raise NotFoundError("Portfolio", portfolio_id)
            return SqlAlchemySnapshotRepository(session, clock=self._clock).list_by_portfolio(
                portfolio_id, start_date, end_date, include_superseded=include_superseded
            )

    def snapshot_all_portfolios(self, snapshot_date: Optional[date] = None) -> list[PortfolioSnapshot]:
        """
        Snapshot every portfolio for a date.

        A failure on one portfolio is logged and does not stop the others.
        """
        with self._session_factory() as session:
            portfolio_ids = [
                p.portfolio_id for p in SqlAlchemyPortfolioRepository(session, clock=self._clock).list_all()
            ]

        created = []
        for portfolio_id in portfolio_ids:
            try:
                created.append(self.create_daily_snapshot(portfolio_id, snapshot_date))
            except (AppError, SQLAlchemyError):
                logger.exception("Snapshot failed for portfolio %s", portfolio_id)
        return created

    def _find_snapshot(self, portfolio_id: str, snapshot_date: date) -> Optional[PortfolioSnapshot]:
        with self._session_factory() as session:
            return SqlAlchemySnapshotRepository(session, clock=self._clock).get(portfolio_id, snapshot_date)

    def _fetch_quotes(self, symbols: list[str]) -> tuple[dict[str, Quote], dict[str, str]]:
        """Fetch quotes in parallel. Returns (quotes, failure reason by symbol)."""
        if not symbols:
            return {}, {}

        quotes: dict[str, Quote] = {}
        failures: dict[str, str] = {}
        workers = min(self._max_workers, len(symbols))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="valuation") as pool:
            futures = {symbol: pool.submit(self._quote_cache.get_quote, symbol) for symbol in symbols}
            for symbol, future in futures.items():
                try:
                    quotes[symbol] = future.result()
                except QuoteUnavailableError as exc:
                    failures[symbol] = exc.reason
        return quotes, failures
