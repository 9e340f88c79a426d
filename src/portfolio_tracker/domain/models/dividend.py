"""Dividend domain model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Dividend:
    """
    Dividend payment received on a holding.

    ``total_amount`` is amount_per_share times the shares held when the
    payment was recorded. Dividends never change quantity or cost basis.
    """

    dividend_id: str
    holding_id: str
    amount_per_share: Decimal
    total_amount: Decimal
    payment_date: date
    ex_dividend_date: Optional[date] = None
    created_at_est: Optional[datetime] = field(default=None)
