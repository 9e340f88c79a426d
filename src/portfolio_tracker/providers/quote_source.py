"""Quote source protocol shared by all market data providers."""

from typing import Protocol

from portfolio_tracker.domain.views import Quote, SecurityMetadata


class QuoteSource(Protocol):
    """
    Protocol for external market data providers.

    Implementations translate provider-specific failures into the
    ProviderError family (RateLimitedError, SymbolNotFoundError,
    ProviderUnavailableError, MalformedResponseError) and never leak
    provider types to callers. Only the quote cache talks to a source.
    """

    name: str

    def fetch_quote(self, symbol: str) -> Quote:
        """Fetch the latest price for an uppercase symbol."""
        ...

    def fetch_metadata(self, symbol: str) -> SecurityMetadata:
        """Fetch descriptive metadata for an uppercase symbol."""
        ...
