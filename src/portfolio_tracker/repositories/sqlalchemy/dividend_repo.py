"""SQLAlchemy implementation of DividendRepository."""

from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy import func
from sqlalchemy.orm import Session

from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import Dividend
from portfolio_tracker.repositories.sqlalchemy.converters import to_aware, to_decimal
from portfolio_tracker.repositories.sqlalchemy.orm_models import DividendORM


class SqlAlchemyDividendRepository:
    """SQLAlchemy-backed dividend repository."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def create(self, dividend: Dividend) -> Dividend:
        orm_dividend = DividendORM(
            dividend_id=dividend.dividend_id,
            holding_id=dividend.holding_id,
            amount_per_share=dividend.amount_per_share,
            total_amount=dividend.total_amount,
            payment_date=dividend.payment_date,
            ex_dividend_date=dividend.ex_dividend_date,
            created_at_est=to_naive_eastern(self._clock()),
        )
        self._db.add(orm_dividend)
        self._db.flush()
        return self._to_domain(orm_dividend)

    def list_by_holding(self, holding_id: str) -> list[Dividend]:
        orm_dividends = (
            self._db.query(DividendORM)
            .filter(DividendORM.holding_id == holding_id)
            .order_by(DividendORM.payment_date)
            .all()
        )
        return [self._to_domain(d) for d in orm_dividends]

    def total_by_holdings(self, holding_ids: list[str]) -> Decimal:
        if not holding_ids:
            return Decimal("0")
        total = (
            self._db.query(func.sum(DividendORM.total_amount))
            .filter(DividendORM.holding_id.in_(holding_ids))
            .scalar()
        )
        return to_decimal(total)

    @staticmethod
    def _to_domain(orm: DividendORM) -> Dividend:
        """Convert ORM model to domain model."""
        return Dividend(
            dividend_id=orm.dividend_id,
            holding_id=orm.holding_id,
            amount_per_share=to_decimal(orm.amount_per_share),
            total_amount=to_decimal(orm.total_amount),
            payment_date=orm.payment_date,
            ex_dividend_date=orm.ex_dividend_date,
            created_at_est=to_aware(orm.created_at_est),
        )
