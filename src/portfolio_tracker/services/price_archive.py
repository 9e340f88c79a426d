"""Archives fetched quotes as daily PriceHistory rows."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from portfolio_tracker.core.timezone import now_eastern, to_eastern
from portfolio_tracker.domain.models import PriceHistory, Security
from portfolio_tracker.domain.views import Quote
from portfolio_tracker.repositories.sqlalchemy import (
    SessionFactory,
    SqlAlchemyPriceHistoryRepository,
    SqlAlchemySecurityRepository,
)

logger = logging.getLogger(__name__)


class QuoteArchive(Protocol):
    """Receives every quote the cache fetches from a provider."""

    def record(self, quote: Quote) -> None:
        ...


class PriceArchive:
    """
    Upserts one PriceHistory row per (security, calendar date).

    A second quote on the same US/Eastern date overwrites the first. An
    unknown symbol gets a placeholder Security row named after the symbol.
    Archiving is a side effect: database errors are logged, never raised
    to the quote reader.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        clock: Callable[[], datetime] = now_eastern,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def record(self, quote: Quote) -> None:
        try:
            with self._session_factory() as session:
                securities = SqlAlchemySecurityRepository(session, clock=self._clock)
                security = securities.get_by_symbol(quote.symbol)
                if security is None:
                    security = securities.create(
                        Security(
                            security_id=str(uuid.uuid4()),
                            symbol=quote.symbol,
                            name=quote.symbol,
                        )
                    )
                SqlAlchemyPriceHistoryRepository(session, clock=self._clock).upsert(
                    PriceHistory(
                        security_id=security.security_id,
                        price_date=to_eastern(quote.as_of).date(),
                        price=quote.price,
                        close_price=quote.price,
                        source=quote.source,
                    )
                )
        except SQLAlchemyError:
            logger.warning("Could not archive price for %s", quote.symbol, exc_info=True)
