"""Transaction repository protocol."""

from typing import Protocol, Optional

from portfolio_tracker.domain.models import Transaction


class TransactionRepository(Protocol):
    """Interface for transaction (ledger) data access. Append-only."""

    def add(self, transaction: Transaction) -> Transaction:
        """Append a transaction, assigning the next per-holding sequence."""
        ...

    def get_by_id(self, txn_id: str) -> Optional[Transaction]:
        ...

    def list_by_holding(self, holding_id: str) -> list[Transaction]:
        """List a holding's transactions in replay order."""
        ...

    def count_by_holding(self, holding_id: str) -> int:
        ...

    def next_sequence(self, holding_id: str) -> int:
        ...
