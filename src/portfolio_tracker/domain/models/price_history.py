"""Archived daily price record."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass
class PriceHistory:
    """
    Last observed price for a security on a calendar date.

    One record per (security, date); a later observation on the same day
    overwrites the earlier one.
    """

    security_id: str
    price_date: date
    price: Decimal
    source: str
    open_price: Optional[Decimal] = None
    high_price: Optional[Decimal] = None
    low_price: Optional[Decimal] = None
    close_price: Optional[Decimal] = None
    volume: Optional[int] = None
    created_at_est: Optional[datetime] = field(default=None)
    updated_at_est: Optional[datetime] = field(default=None)
