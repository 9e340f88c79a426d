"""SQLAlchemy implementation of PriceHistoryRepository."""

from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import PriceHistory
from portfolio_tracker.repositories.sqlalchemy.converters import (
    to_aware,
    to_decimal,
    to_optional_decimal,
)
from portfolio_tracker.repositories.sqlalchemy.orm_models import PriceHistoryORM


class SqlAlchemyPriceHistoryRepository:
    """SQLAlchemy-backed archive of daily prices."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def upsert(self, record: PriceHistory) -> PriceHistory:
        """Insert or overwrite the record for (security, date)."""
        now = to_naive_eastern(self._clock())
        orm_record = self._find(record.security_id, record.price_date)

        if orm_record:
            orm_record.price = record.price
            orm_record.open_price = record.open_price
            orm_record.high_price = record.high_price
            orm_record.low_price = record.low_price
            orm_record.close_price = record.close_price
            orm_record.volume = record.volume
            orm_record.source = record.source
            orm_record.updated_at_est = now
        else:
            orm_record = PriceHistoryORM(
                security_id=record.security_id,
                price_date=record.price_date,
                price=record.price,
                open_price=record.open_price,
                high_price=record.high_price,
                low_price=record.low_price,
                close_price=record.close_price,
                volume=record.volume,
                source=record.source,
                created_at_est=now,
                updated_at_est=now,
            )
            self._db.add(orm_record)

        self._db.flush()
        return self._to_domain(orm_record)

    def get(self, security_id: str, price_date: date) -> Optional[PriceHistory]:
        orm_record = self._find(security_id, price_date)
        return self._to_domain(orm_record) if orm_record else None

    def list_by_security(
        self,
        security_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[PriceHistory]:
        query = self._db.query(PriceHistoryORM).filter(
            PriceHistoryORM.security_id == security_id
        )
        if start_date:
            query = query.filter(PriceHistoryORM.price_date >= start_date)
        if end_date:
            query = query.filter(PriceHistoryORM.price_date <= end_date)
        query = query.order_by(PriceHistoryORM.price_date)
        return [self._to_domain(r) for r in query.all()]

    def _find(self, security_id: str, price_date: date) -> Optional[PriceHistoryORM]:
        return (
            self._db.query(PriceHistoryORM)
            .filter(
                PriceHistoryORM.security_id == security_id,
                PriceHistoryORM.price_date == price_date,
            )
            .first()
        )

    @staticmethod
    def _to_domain(orm: PriceHistoryORM) -> PriceHistory:
        """Convert ORM model to domain model."""
        return PriceHistory(
            security_id=orm.security_id,
            price_date=orm.price_date,
            price=to_decimal(orm.price),
            source=orm.source,
            open_price=to_optional_decimal(orm.open_price),
            high_price=to_optional_decimal(orm.high_price),
            low_price=to_optional_decimal(orm.low_price),
            close_price=to_optional_decimal(orm.close_price),
            volume=orm.volume,
            created_at_est=to_aware(orm.created_at_est),
            updated_at_est=to_aware(orm.updated_at_est),
        )
