"""View models for ledger and valuation outputs."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class HoldingState:
    """Current derived ledger state of a holding."""

    holding_id: str
    portfolio_id: str
    symbol: str
    quantity: Decimal
    average_cost: Decimal
    realized_gain: Decimal
    total_fees: Decimal
    transaction_count: int = 0

    @property
    def cost_basis(self) -> Decimal:
        """Total cost of the open position."""
        return self.quantity * self.average_cost


@dataclass
class HoldingValuation:
    """
    One holding's contribution to a portfolio valuation.

    When ``priced`` is False no quote could be obtained; market value and
    unrealized gain are None and the holding is left out of the totals.
    """

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


@dataclass
class PortfolioValuation:
    """Point-in-time value of a portfolio."""

    portfolio_id: str
    as_of: datetime
    holdings: list[HoldingValuation] = field(default_factory=list)
    market_value: Decimal = field(default_factory=lambda: Decimal("0"))
    cost_basis: Decimal = field(default_factory=lambda: Decimal("0"))
    unrealized_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    realized_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    total_dividends: Decimal = field(default_factory=lambda: Decimal("0"))
    partial: bool = False
    has_stale_prices: bool = False

    @property
    def unpriced_symbols(self) -> list[str]:
        return [h.symbol for h in self.holdings if not h.priced]
