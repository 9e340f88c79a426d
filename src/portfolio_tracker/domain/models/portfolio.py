"""Portfolio domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Portfolio:
    """
    Container of holdings.

    Holdings reference their portfolio by id; the portfolio keeps no
    in-memory collection of them.
    """

    portfolio_id: str
    name: str
    currency: str = "USD"
    created_at_est: Optional[datetime] = field(default=None)
    updated_at_est: Optional[datetime] = field(default=None)
