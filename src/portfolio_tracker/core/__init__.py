"""Core utilities and shared functionality."""

from portfolio_tracker.core.timezone import (
    now_eastern,
    to_eastern,
    to_naive_eastern,
    parse_datetime_eastern,
    EASTERN_TZ,
)
from portfolio_tracker.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    InsufficientSharesError,
    HoldingNotEmptyError,
    PersistenceConflictError,
    QuoteUnavailableError,
    ProviderError,
    RateLimitedError,
    SymbolNotFoundError,
    ProviderUnavailableError,
    MalformedResponseError,
)
from portfolio_tracker.core.concurrency import KeyedLocks, SingleFlight

__all__ = [
    "now_eastern",
    "to_eastern",
    "to_naive_eastern",
    "parse_datetime_eastern",
    "EASTERN_TZ",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "InsufficientSharesError",
    "HoldingNotEmptyError",
    "PersistenceConflictError",
    "QuoteUnavailableError",
    "ProviderError",
    "RateLimitedError",
    "SymbolNotFoundError",
    "ProviderUnavailableError",
    "MalformedResponseError",
    "KeyedLocks",
    "SingleFlight",
]
