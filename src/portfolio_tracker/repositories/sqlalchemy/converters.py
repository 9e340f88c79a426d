"""Column value conversions shared by the SQLAlchemy repositories."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from portfolio_tracker.core.timezone import to_eastern


def to_decimal(value) -> Decimal:
    """Numeric column -> Decimal, treating NULL as zero."""
    return Decimal(str(value)) if value is not None else Decimal("0")


def to_optional_decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def to_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Stored naive Eastern wall-clock time -> aware US/Eastern datetime."""
    return to_eastern(value) if value is not None else None
