"""Service layer - business logic orchestration."""

from portfolio_tracker.services.cost_basis import CostBasisState, apply_transaction, replay
from portfolio_tracker.services.quote_store import CacheEntry, InMemoryQuoteStore, QuoteStore
from portfolio_tracker.services.price_archive import PriceArchive, QuoteArchive
from portfolio_tracker.services.quote_cache import QuoteCache
from portfolio_tracker.services.security_service import SecurityService, normalize_symbol
from portfolio_tracker.services.ledger_service import AppliedTransaction, LedgerService, TransactionCreate
from portfolio_tracker.services.valuation_service import ValuationService
from portfolio_tracker.services.snapshot_scheduler import SnapshotScheduler

__all__ = [
    "CostBasisState",
    "apply_transaction",
    "replay",
    "CacheEntry",
    "InMemoryQuoteStore",
    "QuoteStore",
    "PriceArchive",
    "QuoteArchive",
    "QuoteCache",
    "SecurityService",
    "normalize_symbol",
    "AppliedTransaction",
    "LedgerService",
    "TransactionCreate",
    "ValuationService",
    "SnapshotScheduler",
]
