"""SQLAlchemy implementation of SnapshotRepository."""

from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import PortfolioSnapshot
from portfolio_tracker.repositories.sqlalchemy.converters import to_aware, to_decimal
from portfolio_tracker.repositories.sqlalchemy.orm_models import PortfolioSnapshotORM


class SqlAlchemySnapshotRepository:
    """
    SQLAlchemy-backed snapshot repository.

    Rows are insert-only apart from the ``is_superseded`` flag; a superseded
    row keeps its values and stays readable by ID.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def create(self, snapshot: PortfolioSnapshot) -> PortfolioSnapshot:
        orm_snapshot = PortfolioSnapshotORM(
            snapshot_id=snapshot.snapshot_id,
            portfolio_id=snapshot.portfolio_id,
            snapshot_date=snapshot.snapshot_date,
            total_market_value=snapshot.total_market_value,
            total_cost_basis=snapshot.total_cost_basis,
            unrealized_gain=snapshot.unrealized_gain,
            realized_gain=snapshot.realized_gain,
            is_partial=snapshot.is_partial,
            supersedes_snapshot_id=snapshot.supersedes_snapshot_id,
            is_superseded=snapshot.is_superseded,
            created_at_est=to_naive_eastern(self._clock()),
        )
        self._db.add(orm_snapshot)
        self._db.flush()
        return self._to_domain(orm_snapshot)

    def get(self, portfolio_id: str, snapshot_date: date) -> Optional[PortfolioSnapshot]:
        orm_snapshot = (
            self._db.query(PortfolioSnapshotORM)
            .filter(
                PortfolioSnapshotORM.portfolio_id == portfolio_id,
                PortfolioSnapshotORM.snapshot_date == snapshot_date,
                PortfolioSnapshotORM.is_superseded.is_(False),
            )
            .first()
        )
        return self._to_domain(orm_snapshot) if orm_snapshot else None

    def get_by_id(self, snapshot_id: str) -> Optional[PortfolioSnapshot]:
        orm_snapshot = self._db.query(PortfolioSnapshotORM).filter(
            PortfolioSnapshotORM.snapshot_id == snapshot_id
        ).first()
        return self._to_domain(orm_snapshot) if orm_snapshot else None

    def mark_superseded(self, snapshot_id: str) -> None:
        """Flag a snapshot as replaced by a corrective record."""
        # Executed immediately so the replacement row for the same date can follow
        self._db.execute(
            update(PortfolioSnapshotORM)
            .where(PortfolioSnapshotORM.snapshot_id == snapshot_id)
            .values(is_superseded=True)
            .execution_options(synchronize_session=False)
        )
        self._db.expire_all()

    def list_by_portfolio(
        self,
        portfolio_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_superseded: bool = False,
    ) -> list[PortfolioSnapshot]:
        query = self._db.query(PortfolioSnapshotORM).filter(
            PortfolioSnapshotORM.portfolio_id == portfolio_id
        )
        if not include_superseded:
            query = query.filter(PortfolioSnapshotORM.is_superseded.is_(False))
        if start_date:
            query = query.filter(PortfolioSnapshotORM.snapshot_date >= start_date)
        if end_date:
            query = query.filter(PortfolioSnapshotORM.snapshot_date <= end_date)
        query = query.order_by(PortfolioSnapshotORM.snapshot_date, PortfolioSnapshotORM.created_at_est)
        return [self._to_domain(s) for s in query.all()]

    @staticmethod
    def _to_domain(orm: PortfolioSnapshotORM) -> PortfolioSnapshot:
        """Convert ORM model to domain model."""
        return PortfolioSnapshot(
            snapshot_id=orm.snapshot_id,
            portfolio_id=orm.portfolio_id,
            snapshot_date=orm.snapshot_date,
            total_market_value=to_decimal(orm.total_market_value),
            total_cost_basis=to_decimal(orm.total_cost_basis),
            unrealized_gain=to_decimal(orm.unrealized_gain),
            realized_gain=to_decimal(orm.realized_gain),
            is_partial=orm.is_partial,
            supersedes_snapshot_id=orm.supersedes_snapshot_id,
            is_superseded=orm.is_superseded,
            created_at_est=to_aware(orm.created_at_est),
        )
