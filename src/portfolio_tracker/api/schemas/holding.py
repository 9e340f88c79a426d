"""Pydantic schemas for holding, transaction and dividend endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from portfolio_tracker.core.timezone import parse_datetime_eastern
from portfolio_tracker.domain.models.enums import TransactionType


class TransactionCreateRequest(BaseModel):
    """
    Request schema for applying a transaction.

    Give ``holding_id`` for an existing holding, or ``portfolio_id`` and
    ``symbol`` to create the holding on its first transaction.
    """

    holding_id: Optional[str] = Field(default=None, description="Existing holding ID")
    portfolio_id: Optional[str] = Field(default=None, description="Portfolio ID (new holding)")
    symbol: Optional[str] = Field(default=None, max_length=20, description="Ticker (new holding)")
    txn_type: TransactionType = Field(..., description="BUY or SELL")
    shares: Decimal = Field(..., gt=0, description="Number of shares")
    price_per_share: Decimal = Field(..., ge=0, description="Execution price per share")
    fees: Decimal = Field(default=Decimal("0"), ge=0, description="Transaction fees")
    txn_time_est: Optional[datetime] = Field(
        default=None,
        description="Transaction time (US/Eastern); defaults to now",
    )
    notes: Optional[str] = Field(default=None, max_length=500, description="Optional note")

    @field_validator("symbol")
    @classmethod
    def uppercase_symbol(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else None

    @field_validator("txn_time_est", mode="before")
    @classmethod
    def parse_eastern_time(cls, v):
        # Strings without an offset are US/Eastern wall-clock times
        if isinstance(v, str) and v.strip():
            return parse_datetime_eastern(v)
        return v

    @model_validator(mode="after")
    def check_target(self) -> "TransactionCreateRequest":
        if not self.holding_id and not (self.portfolio_id and self.symbol):
            raise ValueError("holding_id or portfolio_id and symbol is required")
        return self


class TransactionResponse(BaseModel):
    """Response schema for a single transaction."""

    model_config = {"from_attributes": True}

    txn_id: str
    holding_id: str
    txn_type: TransactionType
    shares: Decimal
    price_per_share: Decimal
    fees: Decimal
    txn_time_est: datetime
    sequence: int
    notes: Optional[str] = None
    created_at_est: Optional[datetime] = None


class HoldingStateResponse(BaseModel):
    """Response schema for a holding's derived state."""

    model_config = {"from_attributes": True}

    holding_id: str
    portfolio_id: str
    symbol: str
    quantity: Decimal
    average_cost: Decimal
    cost_basis: Decimal
    realized_gain: Decimal
    total_fees: Decimal
    transaction_count: int


class AppliedTransactionResponse(BaseModel):
    """Response schema for an applied transaction and the resulting state."""

    model_config = {"from_attributes": True}

    transaction: TransactionResponse
    state: HoldingStateResponse


class HoldingOpenRequest(BaseModel):
    """Request schema for opening an empty holding."""

    symbol: str = Field(..., min_length=1, max_length=20)


class TransactionListResponse(BaseModel):
    """Response schema for listing transactions."""

    transactions: list[TransactionResponse]
    count: int


class DividendCreateRequest(BaseModel):
    """Request schema for recording a dividend."""

    amount_per_share: Decimal = Field(..., gt=0)
    payment_date: date
    ex_dividend_date: Optional[date] = None


class DividendResponse(BaseModel):
    """Response schema for a dividend payment."""

    model_config = {"from_attributes": True}

    dividend_id: str
    holding_id: str
    amount_per_share: Decimal
    total_amount: Decimal
    payment_date: date
    ex_dividend_date: Optional[date] = None
