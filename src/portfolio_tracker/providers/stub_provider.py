"""Stub quote source for offline/testing use."""

import random
from decimal import Decimal

from portfolio_tracker.core.exceptions import SymbolNotFoundError
from portfolio_tracker.core.timezone import now_eastern
from portfolio_tracker.domain.models import SecurityType
from portfolio_tracker.domain.views import Quote, SecurityMetadata


# Deterministic fake prices and names for common symbols
_STUB_SECURITIES: dict[str, tuple[Decimal, str, str, SecurityType]] = {
    "AAPL": (Decimal("185.50"), "Apple Inc.", "NASDAQ", SecurityType.STOCK),
    "GOOGL": (Decimal("142.75"), "Alphabet Inc.", "NASDAQ", SecurityType.STOCK),
    "MSFT": (Decimal("378.25"), "Microsoft Corporation", "NASDAQ", SecurityType.STOCK),
    "AMZN": (Decimal("178.50"), "Amazon.com, Inc.", "NASDAQ", SecurityType.STOCK),
    "TSLA": (Decimal("248.75"), "Tesla, Inc.", "NASDAQ", SecurityType.STOCK),
    "NVDA": (Decimal("485.25"), "NVIDIA Corporation", "NASDAQ", SecurityType.STOCK),
    "META": (Decimal("505.50"), "Meta Platforms, Inc.", "NASDAQ", SecurityType.STOCK),
    "SPY": (Decimal("485.25"), "SPDR S&P 500 ETF Trust", "NYSEARCA", SecurityType.ETF),
    "QQQ": (Decimal("418.75"), "Invesco QQQ Trust", "NASDAQ", SecurityType.ETF),
    "VTI": (Decimal("252.30"), "Vanguard Total Stock Market ETF", "NYSEARCA", SecurityType.ETF),
}


class StubQuoteSource:
    """
    Stub provider with deterministic fake data for offline operation.

    Uses predefined prices for common symbols. Unknown symbols get a seeded
    pseudo-random price, or SymbolNotFoundError when ``known_only`` is set.
    """

    name = "stub"

    def __init__(self, seed: int = 42, known_only: bool = False):
        """Initialize with optional random seed for reproducibility."""
        self._seed = seed
        self._known_only = known_only
        self._generated: dict[str, Decimal] = {}

    def fetch_quote(self, symbol: str) -> Quote:
        """Return a stub quote for the requested symbol."""
        return Quote(
            symbol=symbol,
            price=self._price_for(symbol),
            as_of=now_eastern(),
            source=self.name,
        )

    def fetch_metadata(self, symbol: str) -> SecurityMetadata:
        """Return stub metadata for the requested symbol."""
        if symbol in _STUB_SECURITIES:
            _, name, exchange, security_type = _STUB_SECURITIES[symbol]
        else:
            self._price_for(symbol)  # same not-found rule as quotes
            name, exchange, security_type = symbol, None, SecurityType.STOCK
        return SecurityMetadata(
            symbol=symbol,
            name=name,
            exchange=exchange,
            security_type=security_type,
            as_of=now_eastern(),
            source=self.name,
        )

    def _price_for(self, symbol: str) -> Decimal:
        if symbol in _STUB_SECURITIES:
            return _STUB_SECURITIES[symbol][0]
        if self._known_only:
            raise SymbolNotFoundError(self.name, symbol, "unknown symbol")
        if symbol not in self._generated:
            # Deterministic per symbol, independent of request order
            rng = random.Random(f"{self._seed}:{symbol}")
            base_price = Decimal(str(50 + rng.random() * 200))
            self._generated[symbol] = base_price.quantize(Decimal("0.01"))
        return self._generated[symbol]
