"""Security domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from portfolio_tracker.domain.models.enums import SecurityType


@dataclass
class Security:
    """
    Master data for a traded instrument.

    ``symbol`` is the identity (unique, uppercase) and never changes;
    display metadata is refreshed from the quote cache.
    """

    security_id: str
    symbol: str
    name: str
    exchange: Optional[str] = None
    currency: str = "USD"
    security_type: SecurityType = SecurityType.STOCK
    metadata_refreshed_at_est: Optional[datetime] = field(default=None)
    created_at_est: Optional[datetime] = field(default=None)
    updated_at_est: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        self.symbol = self.symbol.upper()
        if isinstance(self.security_type, str):
            self.security_type = SecurityType(self.security_type)
