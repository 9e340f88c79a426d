"""Holding repository protocol."""

from typing import Protocol, Optional

from portfolio_tracker.domain.models import Holding


class HoldingRepository(Protocol):
    """Interface for holding data access."""

    def create(self, holding: Holding) -> Holding:
        """Persist a new holding (unique per portfolio and security)."""
        ...

    def get_by_id(self, holding_id: str) -> Optional[Holding]:
        ...

    def get_by_portfolio_and_security(
        self,
        portfolio_id: str,
        security_id: str,
    ) -> Optional[Holding]:
        ...

    def list_by_portfolio(self, portfolio_id: str) -> list[Holding]:
        ...

    def update_derived(self, holding: Holding, expected_version: int) -> Holding:
        """
        Write derived ledger fields if the stored version still matches.

        Raises PersistenceConflictError when another writer got there first.
        """
        ...

    def delete(self, holding_id: str) -> None:
        ...
