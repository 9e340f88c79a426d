"""Security master data: get-or-create by symbol and metadata refresh."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from portfolio_tracker.core.exceptions import NotFoundError, QuoteUnavailableError, ValidationError
from portfolio_tracker.core.timezone import now_eastern
from portfolio_tracker.domain.models import Security
from portfolio_tracker.domain.views import SecurityMetadata
from portfolio_tracker.repositories.sqlalchemy import SessionFactory, SqlAlchemySecurityRepository
from portfolio_tracker.services.quote_cache import QuoteCache

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: Optional[str]) -> str:
    """Uppercase ticker; raises ValidationError when blank."""
    normalized = (symbol or "").strip().upper()
    if not normalized:
        raise ValidationError("Symbol is required")
    if len(normalized) > 20:
        raise ValidationError(f"Symbol too long: {normalized}")
    return normalized


class SecurityService:
    """
    Maintains Security rows.

    Display metadata comes from the quote cache when one is configured.
    When no metadata can be obtained the security is created with the
    symbol as its name and refreshed later.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        quote_cache: Optional[QuoteCache] = None,
        clock: Callable[[], datetime] = now_eastern,
    ):
        self._session_factory = session_factory
        self._quote_cache = quote_cache
        self._clock = clock

    def get_by_symbol(self, symbol: str) -> Security:
        symbol = normalize_symbol(symbol)
        with self._session_factory() as session:
            security = SqlAlchemySecurityRepository(session, clock=self._clock).get_by_symbol(symbol)
        if security is None:
            raise NotFoundError("Security", symbol)
        return security

    def ensure_security(self, symbol: str) -> Security:
        """Return the security for ``symbol``, creating it on first use."""
        symbol = normalize_symbol(symbol)
        with self._session_factory() as session:
            existing = SqlAlchemySecurityRepository(session, clock=self._clock).get_by_symbol(symbol)
        if existing is not None:
            return existing

        metadata = self._lookup_metadata(symbol)
        security = Security(
            security_id=str(uuid.uuid4()),
            symbol=symbol,
            name=metadata.name if metadata else symbol,
        )
        if metadata:
            security = self._with_metadata(security, metadata)

        try:
            with self._session_factory() as session:
                return SqlAlchemySecurityRepository(session, clock=self._clock).create(security)
        except IntegrityError:
            # Another writer created the symbol first
            with self._session_factory() as session:
                existing = SqlAlchemySecurityRepository(session, clock=self._clock).get_by_symbol(symbol)
            if existing is None:
                raise
            return existing

    def refresh_metadata(self, symbol: str) -> Security:
        """Pull current metadata through the quote cache and store it."""
        security = self.get_by_symbol(symbol)
        metadata = self._lookup_metadata(security.symbol)
        if metadata is None:
            return security
        with self._session_factory() as session:
            return SqlAlchemySecurityRepository(session, clock=self._clock).update_metadata(
                self._with_metadata(security, metadata)
            )

    def _lookup_metadata(self, symbol: str) -> Optional[SecurityMetadata]:
        if self._quote_cache is None:
            return None
        try:
            return self._quote_cache.get_metadata(symbol)
        except QuoteUnavailableError as exc:
            logger.info("No metadata for %s: %s", symbol, exc.reason)
            return None

    @staticmethod
    def _with_metadata(security: Security, metadata: SecurityMetadata) -> Security:
        security.name = metadata.name
        security.exchange = metadata.exchange
        security.currency = metadata.currency
        security.security_type = metadata.security_type
        security.metadata_refreshed_at_est = metadata.as_of
        return security
