"""
Yahoo Finance quote source via yfinance.

Reads ``Ticker.info`` for one symbol at a time and maps yfinance failures
onto the provider error taxonomy.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from portfolio_tracker.core.exceptions import (
    MalformedResponseError,
    ProviderUnavailableError,
    RateLimitedError,
    SymbolNotFoundError,
)
from portfolio_tracker.core.timezone import now_eastern
from portfolio_tracker.domain.models import SecurityType
from portfolio_tracker.domain.views import Quote, SecurityMetadata

logger = logging.getLogger(__name__)

_QUOTE_TYPES = {
    "EQUITY": SecurityType.STOCK,
    "ETF": SecurityType.ETF,
    "MUTUALFUND": SecurityType.FUND,
    "BOND": SecurityType.BOND,
    "CRYPTOCURRENCY": SecurityType.CRYPTO,
}


# Lazy import so tests can patch before import
def _get_yf():
    import yfinance as yf
    return yf


class YahooFinanceSource:
    """Quote source backed by the yfinance package."""

    name = "yahoo"

    def fetch_quote(self, symbol: str) -> Quote:
        info = self._info(symbol)
        # Price: currentPrice preferred, then regularMarketPrice
        raw_price = info.get("currentPrice")
        if raw_price is None:
            raw_price = info.get("regularMarketPrice")
        if raw_price is None:
            raise SymbolNotFoundError(self.name, symbol, "no price in response")
        return Quote(
            symbol=symbol,
            price=self._to_decimal(symbol, raw_price),
            as_of=now_eastern(),
            source=self.name,
        )

    def fetch_metadata(self, symbol: str) -> SecurityMetadata:
        info = self._info(symbol)
        # Name: longName preferred, then shortName
        name = (info.get("longName") or info.get("shortName") or "").strip()
        if not name:
            raise SymbolNotFoundError(self.name, symbol, "no name in response")
        quote_type = str(info.get("quoteType") or "").upper()
        return SecurityMetadata(
            symbol=symbol,
            name=name,
            exchange=info.get("exchange"),
            currency=(info.get("currency") or "USD").upper(),
            security_type=_QUOTE_TYPES.get(quote_type, SecurityType.OTHER),
            as_of=now_eastern(),
            source=self.name,
        )

    def _info(self, symbol: str) -> dict[str, Any]:
        yf = _get_yf()
        from yfinance.exceptions import YFRateLimitError

        try:
            info = yf.Ticker(symbol).info
        except YFRateLimitError as exc:
            raise RateLimitedError(self.name, symbol, str(exc)) from exc
        except Exception as exc:
            # Network and HTTP failures surface as assorted exception types
            logger.debug("yfinance lookup for %s failed: %r", symbol, exc)
            raise ProviderUnavailableError(self.name, symbol, str(exc)) from exc

        if not isinstance(info, dict):
            raise MalformedResponseError(self.name, symbol, f"unexpected info type {type(info).__name__}")
        # Unknown tickers come back as an (almost) empty dict
        if set(info) <= {"trailingPegRatio"}:
            raise SymbolNotFoundError(self.name, symbol, "empty info")
        return info

    def _to_decimal(self, symbol: str, value: Any) -> Decimal:
        try:
            price = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise MalformedResponseError(self.name, symbol, f"bad price {value!r}") from exc
        if not price.is_finite() or price < 0:
            raise MalformedResponseError(self.name, symbol, f"bad price {value!r}")
        return price
