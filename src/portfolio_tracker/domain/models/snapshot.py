"""Portfolio snapshot domain model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Immutable dated record of a portfolio's computed value.

    One current record per (portfolio, date). A forced re-snapshot stores a
    new record naming the one it supersedes; the older record is kept and
    only flagged ``is_superseded``.
    """

    snapshot_id: str
    portfolio_id: str
    snapshot_date: date
    total_market_value: Decimal
    total_cost_basis: Decimal
    unrealized_gain: Decimal
    realized_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    is_partial: bool = False
    supersedes_snapshot_id: Optional[str] = None
    is_superseded: bool = False
    created_at_est: Optional[datetime] = None
