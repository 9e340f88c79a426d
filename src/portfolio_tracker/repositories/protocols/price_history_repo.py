"""Price history repository protocol."""

from datetime import date
from typing import Protocol, Optional

from portfolio_tracker.domain.models import PriceHistory


class PriceHistoryRepository(Protocol):
    """Interface for archived daily prices."""

    def upsert(self, record: PriceHistory) -> PriceHistory:
        """Insert or overwrite the record for (security, date)."""
        ...

    def get(self, security_id: str, price_date: date) -> Optional[PriceHistory]:
        ...

    def list_by_security(
        self,
        security_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[PriceHistory]:
        ...
