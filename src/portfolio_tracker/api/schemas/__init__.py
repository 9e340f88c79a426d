"""Pydantic schemas for API request/response."""

from portfolio_tracker.api.schemas.portfolio import (
    PortfolioCreateRequest,
    PortfolioResponse,
    HoldingValuationResponse,
    PortfolioValuationResponse,
    SnapshotCreateRequest,
    SnapshotResponse,
    SnapshotListResponse,
)
from portfolio_tracker.api.schemas.holding import (
    TransactionCreateRequest,
    TransactionResponse,
    HoldingStateResponse,
    AppliedTransactionResponse,
    HoldingOpenRequest,
    TransactionListResponse,
    DividendCreateRequest,
    DividendResponse,
)
from portfolio_tracker.api.schemas.quote import QuoteResponse

__all__ = [
    "PortfolioCreateRequest",
    "PortfolioResponse",
    "HoldingValuationResponse",
    "PortfolioValuationResponse",
    "SnapshotCreateRequest",
    "SnapshotResponse",
    "SnapshotListResponse",
    "TransactionCreateRequest",
    "TransactionResponse",
    "HoldingStateResponse",
    "AppliedTransactionResponse",
    "HoldingOpenRequest",
    "TransactionListResponse",
    "DividendCreateRequest",
    "DividendResponse",
    "QuoteResponse",
]
