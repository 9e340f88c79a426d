"""Dividend repository protocol."""

from decimal import Decimal
from typing import Protocol

from portfolio_tracker.domain.models import Dividend


class DividendRepository(Protocol):
    """Interface for dividend records."""

    def create(self, dividend: Dividend) -> Dividend:
        ...

    def list_by_holding(self, holding_id: str) -> list[Dividend]:
        ...

    def total_by_holdings(self, holding_ids: list[str]) -> Decimal:
        ...
