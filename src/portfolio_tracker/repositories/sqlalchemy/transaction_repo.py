"""SQLAlchemy implementation of TransactionRepository."""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import Transaction
from portfolio_tracker.repositories.sqlalchemy.converters import to_aware, to_decimal
from portfolio_tracker.repositories.sqlalchemy.orm_models import TransactionORM


class SqlAlchemyTransactionRepository:
    """SQLAlchemy-backed, append-only transaction repository."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def add(self, transaction: Transaction) -> Transaction:
        """Append a transaction, assigning the next sequence unless one is set."""
        orm_txn = TransactionORM(
            txn_id=transaction.txn_id,
            holding_id=transaction.holding_id,
            txn_type=transaction.txn_type,
            shares=transaction.shares,
            price_per_share=transaction.price_per_share,
            fees=transaction.fees,
            txn_time_est=to_naive_eastern(transaction.txn_time_est),
            sequence=transaction.sequence or self.next_sequence(transaction.holding_id),
            notes=transaction.notes,
            created_at_est=to_naive_eastern(self._clock()),
        )
        self._db.add(orm_txn)
        self._db.flush()
        return self._to_domain(orm_txn)

    def get_by_id(self, txn_id: str) -> Optional[Transaction]:
        orm_txn = self._db.query(TransactionORM).filter(
            TransactionORM.txn_id == txn_id
        ).first()
        return self._to_domain(orm_txn) if orm_txn else None

    def list_by_holding(self, holding_id: str) -> list[Transaction]:
        """List a holding's transactions ordered by (txn_time_est, sequence)."""
        orm_txns = (
            self._db.query(TransactionORM)
            .filter(TransactionORM.holding_id == holding_id)
            .order_by(TransactionORM.txn_time_est, TransactionORM.sequence)
            .all()
        )
        return [self._to_domain(t) for t in orm_txns]

    def count_by_holding(self, holding_id: str) -> int:
        return (
            self._db.query(func.count(TransactionORM.txn_id))
            .filter(TransactionORM.holding_id == holding_id)
            .scalar()
        )

    def next_sequence(self, holding_id: str) -> int:
        current = (
            self._db.query(func.max(TransactionORM.sequence))
            .filter(TransactionORM.holding_id == holding_id)
            .scalar()
        )
        return (current or 0) + 1

    @staticmethod
    def _to_domain(orm: TransactionORM) -> Transaction:
        """Convert ORM model to domain model."""
        return Transaction(
            txn_id=orm.txn_id,
            holding_id=orm.holding_id,
            txn_type=orm.txn_type,
            shares=to_decimal(orm.shares),
            price_per_share=to_decimal(orm.price_per_share),
            fees=to_decimal(orm.fees),
            txn_time_est=to_aware(orm.txn_time_est),
            sequence=orm.sequence,
            notes=orm.notes,
            created_at_est=to_aware(orm.created_at_est),
        )
