"""Market data providers module."""

from portfolio_tracker.providers.quote_source import QuoteSource
from portfolio_tracker.providers.stub_provider import StubQuoteSource
from portfolio_tracker.providers.yahoo_provider import YahooFinanceSource
from portfolio_tracker.providers.fmp_provider import FinancialModelingPrepSource
from portfolio_tracker.providers.factory import build_quote_source, build_quote_sources

__all__ = [
    "QuoteSource",
    "StubQuoteSource",
    "YahooFinanceSource",
    "FinancialModelingPrepSource",
    "build_quote_source",
    "build_quote_sources",
]
