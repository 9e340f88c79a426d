"""Builds the configured quote sources."""

from typing import Optional

from portfolio_tracker.config.settings import Settings
from portfolio_tracker.core.exceptions import ValidationError
from portfolio_tracker.domain.models import ProviderName
from portfolio_tracker.providers.fmp_provider import FinancialModelingPrepSource
from portfolio_tracker.providers.quote_source import QuoteSource
from portfolio_tracker.providers.stub_provider import StubQuoteSource
from portfolio_tracker.providers.yahoo_provider import YahooFinanceSource


def build_quote_source(name: str, settings: Settings) -> QuoteSource:
    """Instantiate the quote source registered under ``name``."""
    try:
        provider = ProviderName(name.lower())
    except ValueError:
        raise ValidationError(f"Unknown quote provider: {name}") from None

    if provider is ProviderName.YAHOO:
        return YahooFinanceSource()
    if provider is ProviderName.FMP:
        return FinancialModelingPrepSource(
            api_key=settings.fmp_api_key,
            base_url=settings.fmp_base_url,
            timeout_seconds=settings.provider_timeout_seconds,
        )
    return StubQuoteSource()


def build_quote_sources(settings: Settings) -> tuple[QuoteSource, Optional[QuoteSource]]:
    """Return (primary, secondary) sources from settings."""
    primary = build_quote_source(settings.primary_quote_provider, settings)
    secondary = None
    if settings.secondary_quote_provider:
        secondary = build_quote_source(settings.secondary_quote_provider, settings)
    return primary, secondary
