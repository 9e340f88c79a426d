"""SQLAlchemy implementation of HoldingRepository."""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from portfolio_tracker.core.exceptions import PersistenceConflictError
from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import Holding
from portfolio_tracker.repositories.sqlalchemy.converters import to_aware, to_decimal
from portfolio_tracker.repositories.sqlalchemy.orm_models import HoldingORM


class SqlAlchemyHoldingRepository:
    """SQLAlchemy-backed holding repository with optimistic versioning."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def create(self, holding: Holding) -> Holding:
        """Persist a new holding (unique per portfolio and security)."""
        now = to_naive_eastern(self._clock())
        orm_holding = HoldingORM(
            holding_id=holding.holding_id,
            portfolio_id=holding.portfolio_id,
            security_id=holding.security_id,
            quantity=holding.quantity,
            average_cost=holding.average_cost,
            realized_gain=holding.realized_gain,
            total_fees=holding.total_fees,
            version=holding.version,
            created_at_est=now,
            updated_at_est=now,
        )
        self._db.add(orm_holding)
        self._db.flush()
        return self._to_domain(orm_holding)

    def get_by_id(self, holding_id: str) -> Optional[Holding]:
        orm_holding = self._db.query(HoldingORM).filter(
            HoldingORM.holding_id == holding_id
        ).first()
        return self._to_domain(orm_holding) if orm_holding else None

    def get_by_portfolio_and_security(
        self,
        portfolio_id: str,
        security_id: str,
    ) -> Optional[Holding]:
        orm_holding = (
            self._db.query(HoldingORM)
            .filter(
                HoldingORM.portfolio_id == portfolio_id,
                HoldingORM.security_id == security_id,
            )
            .first()
        )
        return self._to_domain(orm_holding) if orm_holding else None

    def list_by_portfolio(self, portfolio_id: str) -> list[Holding]:
        orm_holdings = (
            self._db.query(HoldingORM)
            .filter(HoldingORM.portfolio_id == portfolio_id)
            .order_by(HoldingORM.created_at_est, HoldingORM.holding_id)
            .all()
        )
        return [self._to_domain(h) for h in orm_holdings]

    def update_derived(self, holding: Holding, expected_version: int) -> Holding:
        """Write derived ledger fields if the stored version still matches."""
        result = self._db.execute(
            update(HoldingORM)
            .where(
                HoldingORM.holding_id == holding.holding_id,
                HoldingORM.version == expected_version,
            )
            .values(
                quantity=holding.quantity,
                average_cost=holding.average_cost,
                realized_gain=holding.realized_gain,
                total_fees=holding.total_fees,
                version=expected_version + 1,
                updated_at_est=to_naive_eastern(self._clock()),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise PersistenceConflictError("Holding", holding.holding_id)

        self._db.expire_all()
        return self.get_by_id(holding.holding_id)

    def delete(self, holding_id: str) -> None:
        self._db.execute(delete(HoldingORM).where(HoldingORM.holding_id == holding_id))

    @staticmethod
    def _to_domain(orm: HoldingORM) -> Holding:
        """Convert ORM model to domain model."""
        return Holding(
            holding_id=orm.holding_id,
            portfolio_id=orm.portfolio_id,
            security_id=orm.security_id,
            quantity=to_decimal(orm.quantity),
            average_cost=to_decimal(orm.average_cost),
            realized_gain=to_decimal(orm.realized_gain),
            total_fees=to_decimal(orm.total_fees),
            version=orm.version,
            created_at_est=to_aware(orm.created_at_est),
            updated_at_est=to_aware(orm.updated_at_est),
        )
