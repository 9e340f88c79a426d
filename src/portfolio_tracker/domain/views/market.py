"""Market data value objects handed out by the quote cache."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from portfolio_tracker.domain.models.enums import SecurityType


@dataclass(frozen=True)
class Quote:
    """Snapshot price for a symbol. Ephemeral; never the system of record."""

    symbol: str
    price: Decimal
    as_of: datetime
    source: str
    is_stale: bool = False


@dataclass(frozen=True)
class SecurityMetadata:
    """Semi-static descriptive data for a symbol."""

    symbol: str
    name: str
    exchange: Optional[str] = None
    currency: str = "USD"
    security_type: SecurityType = SecurityType.STOCK
    as_of: Optional[datetime] = None
    source: Optional[str] = None
    is_stale: bool = False
