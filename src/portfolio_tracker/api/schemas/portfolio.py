"""Pydantic schemas for portfolio, valuation and snapshot endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PortfolioCreateRequest(BaseModel):
    """Request schema for creating a portfolio."""

    name: str = Field(..., min_length=1, max_length=255, description="Portfolio name")
    currency: str = Field(default="USD", min_length=3, max_length=3, description="ISO currency code")

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()


class PortfolioResponse(BaseModel):
    """Response schema for a single portfolio."""

    model_config = {"from_attributes": True}

    portfolio_id: str
    name: str
    currency: str
    created_at_est: Optional[datetime] = None


class HoldingValuationResponse(BaseModel):
    """One holding's line in a valuation; value fields are null when unpriced."""

    model_config = {"from_attributes": True}

    holding_id: str
    symbol: str
    quantity: Decimal
    average_cost: Decimal
    cost_basis: Decimal
    priced: bool
    price: Optional[Decimal] = None
    price_as_of: Optional[datetime] = None
    stale_price: bool = False
    market_value: Optional[Decimal] = None
    unrealized_gain: Optional[Decimal] = None
    error: Optional[str] = None


class PortfolioValuationResponse(BaseModel):
    """Response schema for a point-in-time portfolio valuation."""

    model_config = {"from_attributes": True}

    portfolio_id: str
    as_of: datetime
    holdings: list[HoldingValuationResponse]
    market_value: Decimal
    cost_basis: Decimal
    unrealized_gain: Decimal
    realized_gain: Decimal
    total_dividends: Decimal
    partial: bool
    has_stale_prices: bool
    unpriced_symbols: list[str]


class SnapshotCreateRequest(BaseModel):
    """Request schema for taking a snapshot."""

    snapshot_date: Optional[date] = Field(default=None, description="US/Eastern date; defaults to today")
    force: bool = Field(default=False, description="Supersede an existing snapshot for the date")


class SnapshotResponse(BaseModel):
    """Response schema for a stored snapshot."""

    model_config = {"from_attributes": True}

    snapshot_id: str
    portfolio_id: str
    snapshot_date: date
    total_market_value: Decimal
    total_cost_basis: Decimal
    unrealized_gain: Decimal
    realized_gain: Decimal
    is_partial: bool
    supersedes_snapshot_id: Optional[str] = None
    is_superseded: bool = False
    created_at_est: Optional[datetime] = None


class SnapshotListResponse(BaseModel):
    """Response schema for listing snapshots."""

    snapshots: list[SnapshotResponse]
    count: int
