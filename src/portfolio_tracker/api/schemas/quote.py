"""Pydantic schemas for quote endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class QuoteResponse(BaseModel):
    """Response schema for a quote."""

    model_config = {"from_attributes": True}

    symbol: str
    price: Decimal
    as_of: datetime
    source: str
    is_stale: bool
