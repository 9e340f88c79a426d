"""SQLAlchemy implementation of PortfolioRepository."""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from portfolio_tracker.core.timezone import now_eastern, to_naive_eastern
from portfolio_tracker.domain.models import Portfolio
from portfolio_tracker.repositories.sqlalchemy.converters import to_aware
from portfolio_tracker.repositories.sqlalchemy.orm_models import PortfolioORM


class SqlAlchemyPortfolioRepository:
    """SQLAlchemy-backed portfolio repository."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = now_eastern):
        self._db = db
        self._clock = clock

    def create(self, portfolio: Portfolio) -> Portfolio:
        """Persist a new portfolio."""
        now = to_naive_eastern(self._clock())
        orm_portfolio = PortfolioORM(
            portfolio_id=portfolio.portfolio_id,
            name=portfolio.name,
            currency=portfolio.currency,
            created_at_est=now,
            updated_at_est=now,
        )
        self._db.add(orm_portfolio)
        self._db.flush()
        return self._to_domain(orm_portfolio)

    def get_by_id(self, portfolio_id: str) -> Optional[Portfolio]:
        """Retrieve portfolio by ID."""
        orm_portfolio = self._db.query(PortfolioORM).filter(
            PortfolioORM.portfolio_id == portfolio_id
        ).first()
        return self._to_domain(orm_portfolio) if orm_portfolio else None

    def list_all(self) -> list[Portfolio]:
        """List all portfolios."""
        orm_portfolios = self._db.query(PortfolioORM).order_by(PortfolioORM.name).all()
        return [self._to_domain(p) for p in orm_portfolios]

    @staticmethod
    def _to_domain(orm: PortfolioORM) -> Portfolio:
        """Convert ORM model to domain model."""
        return Portfolio(
            portfolio_id=orm.portfolio_id,
            name=orm.name,
            currency=orm.currency,
            created_at_est=to_aware(orm.created_at_est),
            updated_at_est=to_aware(orm.updated_at_est),
        )
