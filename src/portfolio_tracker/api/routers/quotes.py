"""Quote endpoints served through the shared quote cache."""

from fastapi import APIRouter, Depends

from portfolio_tracker.api.deps import get_quote_cache
from portfolio_tracker.api.schemas import QuoteResponse
from portfolio_tracker.services import QuoteCache

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.get("/{symbol}", response_model=QuoteResponse)
def get_quote(symbol: str, cache: QuoteCache = Depends(get_quote_cache)) -> QuoteResponse:
    """Cached quote; ``is_stale`` is set when every source failed."""
    return QuoteResponse.model_validate(cache.get_quote(symbol))
