"""Quote cache: the only caller of external quote sources."""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional, TypeVar, Union

from portfolio_tracker.core.concurrency import SingleFlight
from portfolio_tracker.core.exceptions import (
    ProviderError,
    ProviderUnavailableError,
    QuoteUnavailableError,
    RateLimitedError,
    SymbolNotFoundError,
    ValidationError,
)
from portfolio_tracker.core.timezone import now_eastern
from portfolio_tracker.domain.views import Quote, SecurityMetadata
from portfolio_tracker.providers.quote_source import QuoteSource
from portfolio_tracker.services.price_archive import QuoteArchive
from portfolio_tracker.services.quote_store import CacheEntry, InMemoryQuoteStore, QuoteStore

logger = logging.getLogger(__name__)

DEFAULT_QUOTE_TTL = timedelta(minutes=15)
DEFAULT_METADATA_TTL = timedelta(days=30)

V = TypeVar("V", Quote, SecurityMetadata)


class QuoteCache:
    """
    Time-bounded cache of quotes and security metadata.

    - A fresh entry (younger than its TTL) is served without calling any
      source.
    - Misses and stale entries are refreshed through a per-key single
      flight, so N concurrent readers of one symbol cause one source call
      and all receive the same result.
    - Rate-limited or unavailable primary -> one try on the secondary.
      Not-found is terminal and never retried.
    - When every source fails, the stale entry is returned flagged
      ``is_stale``; with nothing cached QuoteUnavailableError is raised.
    - Each fetched quote is passed to the archive (daily PriceHistory).
    """

    def __init__(
        self,
        primary: QuoteSource,
        secondary: Optional[QuoteSource] = None,
        store: Optional[QuoteStore] = None,
        archive: Optional[QuoteArchive] = None,
        quote_ttl: timedelta = DEFAULT_QUOTE_TTL,
        metadata_ttl: timedelta = DEFAULT_METADATA_TTL,
        clock: Callable[[], datetime] = now_eastern,
    ):
        self._primary = primary
        self._secondary = secondary
        self._store = store if store is not None else InMemoryQuoteStore()
        self._archive = archive
        self._quote_ttl = quote_ttl
        self._metadata_ttl = metadata_ttl
        self._clock = clock
        self._flights: SingleFlight = SingleFlight()

    def get_quote(self, symbol: str) -> Quote:
        """Return a quote no older than the quote TTL, or a flagged stale one."""
        symbol = self._normalize(symbol)
        return self._get(
            key=f"quote:{symbol}",
            symbol=symbol,
            ttl=self._quote_ttl,
            fetch=lambda source: source.fetch_quote(symbol),
            on_fetched=self._archive_quote,
        )

    def get_metadata(self, symbol: str) -> SecurityMetadata:
        """Return metadata no older than the metadata TTL, or a flagged stale one."""
        symbol = self._normalize(symbol)
        return self._get(
            key=f"meta:{symbol}",
            symbol=symbol,
            ttl=self._metadata_ttl,
            fetch=lambda source: source.fetch_metadata(symbol),
        )

    def get_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """
        Fetch quotes for several symbols.

        Returns dict mapping symbol -> Quote; symbols without any quote are
        omitted from the result.
        """
        result: dict[str, Quote] = {}
        for symbol in symbols:
            try:
                quote = self.get_quote(symbol)
            except QuoteUnavailableError as exc:
                logger.info("Skipping %s: %s", exc.symbol, exc.reason)
                continue
            result[quote.symbol] = quote
        return result

    def invalidate(self, symbol: str) -> None:
        """Forget cached quote and metadata for a symbol."""
        symbol = self._normalize(symbol)
        self._store.delete(f"quote:{symbol}")
        self._store.delete(f"meta:{symbol}")

    def _get(
        self,
        key: str,
        symbol: str,
        ttl: timedelta,
        fetch: Callable[[QuoteSource], V],
        on_fetched: Optional[Callable[[V], None]] = None,
    ) -> V:
        entry = self._store.get(key)
        if entry is not None and self._is_fresh(entry, ttl):
            return entry.value
        return self._flights.do(key, lambda: self._refresh(key, symbol, ttl, fetch, on_fetched))

    def _refresh(
        self,
        key: str,
        symbol: str,
        ttl: timedelta,
        fetch: Callable[[QuoteSource], V],
        on_fetched: Optional[Callable[[V], None]],
    ) -> V:
        # A flight that finished just before this one may have refreshed the entry
        entry = self._store.get(key)
        if entry is not None and self._is_fresh(entry, ttl):
            return entry.value

        try:
            value = self._fetch_with_failover(symbol, fetch)
        except SymbolNotFoundError as exc:
            raise QuoteUnavailableError(symbol, "symbol not found") from exc
        except ProviderError as exc:
            if entry is not None:
                logger.warning("Serving stale %s after provider failure: %s", key, exc.message)
                return replace(entry.value, is_stale=True)
            raise QuoteUnavailableError(symbol, exc.message) from exc

        fetched_at = self._clock()
        value = replace(value, symbol=symbol, as_of=fetched_at, is_stale=False)
        self._store.set(key, CacheEntry(value=value, fetched_at=fetched_at))
        if on_fetched is not None:
            on_fetched(value)
        return value

    def _fetch_with_failover(self, symbol: str, fetch: Callable[[QuoteSource], V]) -> V:
        try:
            return fetch(self._primary)
        except (RateLimitedError, ProviderUnavailableError) as exc:
            if self._secondary is None:
                raise
            logger.warning(
                "%s; retrying %s with %s",
                exc.message,
                symbol,
                self._secondary.name,
            )
            return fetch(self._secondary)

    def _archive_quote(self, quote: Quote) -> None:
        if self._archive is not None:
            self._archive.record(quote)

    def _is_fresh(self, entry: CacheEntry, ttl: timedelta) -> bool:
        return self._clock() - entry.fetched_at < ttl

    @staticmethod
    def _normalize(symbol: Union[str, None]) -> str:
        normalized = (symbol or "").strip().upper()
        if not normalized:
            raise ValidationError("Symbol is required")
        return normalized
