"""Portfolio snapshot repository protocol."""

from datetime import date
from typing import Protocol, Optional

from portfolio_tracker.domain.models import PortfolioSnapshot


class SnapshotRepository(Protocol):
    """Interface for portfolio snapshots. Values are never updated or deleted."""

    def create(self, snapshot: PortfolioSnapshot) -> PortfolioSnapshot:
        ...

    def get(self, portfolio_id: str, snapshot_date: date) -> Optional[PortfolioSnapshot]:
        """The current (not superseded) snapshot for a date."""
        ...

    def get_by_id(self, snapshot_id: str) -> Optional[PortfolioSnapshot]:
        ...

    def mark_superseded(self, snapshot_id: str) -> None:
        """Flag a snapshot as replaced by a corrective record."""
        ...

    def list_by_portfolio(
        self,
        portfolio_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_superseded: bool = False,
    ) -> list[PortfolioSnapshot]:
        ...
