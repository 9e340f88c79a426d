"""Holding domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class Holding:
    """
    Position in one security within one portfolio.

    IMPORTANT: quantity, average_cost, realized_gain and total_fees are
    derived from the transaction log. Never edit them directly; apply a
    transaction or rebuild from the ledger.
    """

    holding_id: str
    portfolio_id: str
    security_id: str
    quantity: Decimal = field(default_factory=lambda: Decimal("0"))
    average_cost: Decimal = field(default_factory=lambda: Decimal("0"))
    realized_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    total_fees: Decimal = field(default_factory=lambda: Decimal("0"))
    version: int = 0
    created_at_est: Optional[datetime] = field(default=None)
    updated_at_est: Optional[datetime] = field(default=None)
