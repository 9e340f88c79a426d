"""
Pytest configuration and fixtures for portfolio tracker tests.

This module provides:
- File-backed SQLite database fixtures (safe to share across threads)
- Controllable clock and US/Eastern time helpers
- Counting/failing fake quote sources
- Service, repository and API client fixtures
"""

import time
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from threading import Lock
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from portfolio_tracker.app_context import AppContext, set_app_context
from portfolio_tracker.config.settings import Settings, reset_settings
from portfolio_tracker.core.exceptions import SymbolNotFoundError
from portfolio_tracker.core.timezone import EASTERN_TZ
from portfolio_tracker.domain.models import Portfolio, SecurityType, TransactionType
from portfolio_tracker.domain.views import Quote, SecurityMetadata
from portfolio_tracker.main import app
from portfolio_tracker.repositories.sqlalchemy.database import (
    Base,
    create_db_engine,
    create_session_factory,
    make_sessionmaker,
)
# Import ORM models to register them with Base before creating tables
from portfolio_tracker.repositories.sqlalchemy import orm_models  # noqa: F401
from portfolio_tracker.services import (
    LedgerService,
    QuoteCache,
    SecurityService,
    TransactionCreate,
    ValuationService,
)


# =============================================================================
# TIMEZONE HELPERS
# =============================================================================


def eastern_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 10,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create a localized datetime in US/Eastern timezone."""
    return EASTERN_TZ.localize(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self._now = start
        self._lock = Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, **kwargs) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed 'now' timestamp for deterministic tests."""
    return eastern_datetime(2024, 6, 14, 14, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_engine(tmp_path):
    """SQLite database file per test; each thread gets its own connection."""
    reset_settings()

    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Unit-of-work factory bound to the test database."""
    return create_session_factory(make_sessionmaker(test_engine))


@pytest.fixture(scope="function")
def test_session(test_engine) -> Session:
    """Create test database session (for repository tests)."""
    session = make_sessionmaker(test_engine)()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# QUOTE SOURCE FIXTURES
# =============================================================================


class FakeQuoteSource:
    """
    In-memory quote source that records every call.

    ``prices`` maps symbol -> price; other symbols raise
    SymbolNotFoundError. Set ``fail_with`` to an exception instance to make
    every call raise it. ``delay`` slows each call to widen race windows.
    """

    def __init__(
        self,
        prices: Optional[dict[str, Decimal]] = None,
        name: str = "fake",
        delay: float = 0.0,
        as_of: Optional[datetime] = None,
    ):
        self.name = name
        self.prices = dict(prices or {})
        self.delay = delay
        self.fail_with: Optional[Exception] = None
        self._as_of = as_of or eastern_datetime(2024, 6, 14, 14, 0, 0)
        self._lock = Lock()
        self.quote_calls: list[str] = []
        self.metadata_calls: list[str] = []

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.quote_calls) + len(self.metadata_calls)

    def fetch_quote(self, symbol: str) -> Quote:
        with self._lock:
            self.quote_calls.append(symbol)
        price = self._lookup(symbol)
        return Quote(symbol=symbol, price=price, as_of=self._as_of, source=self.name)

    def fetch_metadata(self, symbol: str) -> SecurityMetadata:
        with self._lock:
            self.metadata_calls.append(symbol)
        self._lookup(symbol)
        return SecurityMetadata(
            symbol=symbol,
            name=f"{symbol} Corp",
            exchange="NASDAQ",
            currency="USD",
            security_type=SecurityType.STOCK,
            as_of=self._as_of,
            source=self.name,
        )

    def _lookup(self, symbol: str) -> Decimal:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        if symbol not in self.prices:
            raise SymbolNotFoundError(self.name, symbol, "unknown symbol")
        return self.prices[symbol]


DEFAULT_PRICES = {
    "AAPL": Decimal("185.50"),
    "MSFT": Decimal("378.25"),
    "TSLA": Decimal("248.75"),
    "SPY": Decimal("485.25"),
}


@pytest.fixture
def primary_source() -> FakeQuoteSource:
    return FakeQuoteSource(DEFAULT_PRICES, name="primary")


@pytest.fixture
def secondary_source() -> FakeQuoteSource:
    return FakeQuoteSource(DEFAULT_PRICES, name="secondary")


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def quote_cache(primary_source, clock) -> QuoteCache:
    """Quote cache over the primary fake source, no archive."""
    return QuoteCache(primary=primary_source, clock=clock)


@pytest.fixture
def security_service(session_factory, quote_cache, clock) -> SecurityService:
    return SecurityService(session_factory, quote_cache=quote_cache, clock=clock)


@pytest.fixture
def ledger_service(session_factory, security_service, clock) -> LedgerService:
    """Provide test LedgerService."""
    return LedgerService(session_factory, security_service=security_service, clock=clock)


@pytest.fixture
def valuation_service(session_factory, quote_cache, clock) -> ValuationService:
    """Provide test ValuationService."""
    return ValuationService(session_factory, quote_cache=quote_cache, max_workers=4, clock=clock)


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def portfolio_factory(ledger_service) -> Callable[..., Portfolio]:
    """Factory for creating test portfolios."""

    def _create_portfolio(name: Optional[str] = None, currency: str = "USD") -> Portfolio:
        if name is None:
            name = f"Test Portfolio {uuid.uuid4().hex[:8]}"
        return ledger_service.create_portfolio(name, currency)

    return _create_portfolio


@pytest.fixture
def sample_portfolio(portfolio_factory) -> Portfolio:
    return portfolio_factory(name="Brokerage")


# =============================================================================
# API TEST CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def app_context(tmp_path, primary_source, clock) -> AppContext:
    """AppContext on a temporary database with fake quote sources."""
    settings = Settings(data_dir=tmp_path / "data", scheduler_enabled=False)
    context = AppContext(settings=settings, quote_sources=(primary_source, None), clock=clock)
    context.initialize()
    yield context
    context.close()


@pytest.fixture
def client(app_context) -> TestClient:
    """Provide FastAPI test client bound to the test AppContext."""
    set_app_context(app_context)
    with TestClient(app) as c:
        yield c
    set_app_context(None)


# =============================================================================
# HELPER FUNCTIONS (exported for use in tests)
# =============================================================================


def assert_decimal_equal(
    actual: Decimal,
    expected: Decimal,
    tolerance: Decimal = Decimal("0.01"),
) -> None:
    """Assert two Decimals are equal within tolerance."""
    diff = abs(Decimal(actual) - Decimal(expected))
    assert diff <= tolerance, f"Expected {expected}, got {actual} (diff={diff})"


def buy(
    portfolio_id: str,
    symbol: str,
    shares: str,
    price: str,
    fees: str = "0",
    txn_time_est: Optional[datetime] = None,
) -> TransactionCreate:
    """Helper to create BUY transaction data addressed by symbol."""
    return TransactionCreate(
        portfolio_id=portfolio_id,
        symbol=symbol,
        txn_type=TransactionType.BUY,
        shares=Decimal(shares),
        price_per_share=Decimal(price),
        fees=Decimal(fees),
        txn_time_est=txn_time_est,
    )


def sell(
    holding_id: str,
    shares: str,
    price: str,
    fees: str = "0",
    txn_time_est: Optional[datetime] = None,
) -> TransactionCreate:
    """Helper to create SELL transaction data for an existing holding."""
    return TransactionCreate(
        holding_id=holding_id,
        txn_type=TransactionType.SELL,
        shares=Decimal(shares),
        price_per_share=Decimal(price),
        fees=Decimal(fees),
        txn_time_est=txn_time_est,
    )
