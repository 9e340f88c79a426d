"""Dependency injection for FastAPI."""

from fastapi import Depends

from portfolio_tracker.app_context import AppContext, get_app_context
from portfolio_tracker.services import LedgerService, QuoteCache, ValuationService


def get_context() -> AppContext:
    """Provide the shared AppContext (overridden in tests)."""
    return get_app_context()


def get_ledger_service(context: AppContext = Depends(get_context)) -> LedgerService:
    """Provide LedgerService instance."""
    return context.ledger


def get_valuation_service(context: AppContext = Depends(get_context)) -> ValuationService:
    """Provide ValuationService instance."""
    return context.valuation


def get_quote_cache(context: AppContext = Depends(get_context)) -> QuoteCache:
    """Provide the shared QuoteCache instance."""
    return context.quote_cache
