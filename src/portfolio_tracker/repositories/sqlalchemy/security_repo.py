"""SQLAlchemy implementation of SecurityRepository."""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from portfolio_tracker.core.exceptions import NotFoundError
from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import Security
from portfolio_tracker.repositories.sqlalchemy.converters import to_aware
from portfolio_tracker.repositories.sqlalchemy.orm_models import SecurityORM


class SqlAlchemySecurityRepository:
    """SQLAlchemy-backed security repository."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def create(self, security: Security) -> Security:
        """Persist a new security (symbol must be unique)."""
        now = to_naive_eastern(self._clock())
        orm_security = SecurityORM(
            security_id=security.security_id,
            symbol=security.symbol,
            name=security.name,
            exchange=security.exchange,
            currency=security.currency,
            security_type=security.security_type,
            metadata_refreshed_at_est=(
                to_naive_eastern(security.metadata_refreshed_at_est)
                if security.metadata_refreshed_at_est
                else None
            ),
            created_at_est=now,
            updated_at_est=now,
        )
        self._db.add(orm_security)
        self._db.flush()
        return self._to_domain(orm_security)

    def get_by_id(self, security_id: str) -> Optional[Security]:
        orm_security = self._db.query(SecurityORM).filter(
            SecurityORM.security_id == security_id
        ).first()
        return self._to_domain(orm_security) if orm_security else None

    def get_by_symbol(self, symbol: str) -> Optional[Security]:
        orm_security = self._db.query(SecurityORM).filter(
            SecurityORM.symbol == symbol.upper()
        ).first()
        return self._to_domain(orm_security) if orm_security else None

    def update_metadata(self, security: Security) -> Security:
        """Update display metadata; the symbol never changes."""
        orm_security = self._db.query(SecurityORM).filter(
            SecurityORM.security_id == security.security_id
        ).first()
        if not orm_security:
            raise NotFoundError("Security", security.security_id)

        orm_security.name = security.name
        orm_security.exchange = security.exchange
        orm_security.currency = security.currency
        orm_security.security_type = security.security_type
        if security.metadata_refreshed_at_est:
            orm_security.metadata_refreshed_at_est = to_naive_eastern(security.metadata_refreshed_at_est)
        orm_security.updated_at_est = to_naive_eastern(self._clock())

        self._db.flush()
        return self._to_domain(orm_security)

    @staticmethod
    def _to_domain(orm: SecurityORM) -> Security:
        """Convert ORM model to domain model."""
        return Security(
            security_id=orm.security_id,
            symbol=orm.symbol,
            name=orm.name,
            exchange=orm.exchange,
            currency=orm.currency,
            security_type=orm.security_type,
            metadata_refreshed_at_est=to_aware(orm.metadata_refreshed_at_est),
            created_at_est=to_aware(orm.created_at_est),
            updated_at_est=to_aware(orm.updated_at_est),
        )
