"""Transaction domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from portfolio_tracker.domain.models.enums import TransactionType


@dataclass(frozen=True)
class Transaction:
    """
    Ledger entry for one holding (source of truth).

    Append-only and immutable. Replay order is (txn_time_est, sequence);
    ``sequence`` is the per-holding insertion counter that breaks ties
    between transactions stamped with the same time.
    """

    txn_id: str
    holding_id: str
    txn_type: TransactionType
    shares: Decimal
    price_per_share: Decimal
    txn_time_est: datetime
    fees: Decimal = field(default_factory=lambda: Decimal("0"))
    sequence: int = 0
    notes: Optional[str] = None
    created_at_est: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.txn_type, str):
            object.__setattr__(self, "txn_type", TransactionType(self.txn_type))

    @property
    def gross_amount(self) -> Decimal:
        """Shares times price, before fees."""
        return self.shares * self.price_per_share
