"""Application context: wires settings, storage, quote sources and services.

Both the HTTP API and in-process callers go through one AppContext so the
quote cache (and its single-flight state) is shared by every request.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import Engine

from portfolio_tracker.config.settings import Settings, get_settings
from portfolio_tracker.core.timezone import now_eastern
from portfolio_tracker.providers import QuoteSource, build_quote_sources
from portfolio_tracker.repositories.sqlalchemy.database import (
    SessionFactory,
    create_db_engine,
    create_session_factory,
    init_db,
    make_sessionmaker,
)
from portfolio_tracker.services import (
    InMemoryQuoteStore,
    LedgerService,
    PriceArchive,
    QuoteCache,
    SecurityService,
    SnapshotScheduler,
    ValuationService,
)


class AppContext:
    """
    Application context providing in-process access to all services.

    Services are created lazily on first access and live as long as the
    context.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        quote_sources: Optional[tuple[QuoteSource, Optional[QuoteSource]]] = None,
        clock: Callable[[], datetime] = now_eastern,
    ):
        """
        Args:
            settings: Settings to use. Defaults to the global settings.
            quote_sources: (primary, secondary) quote sources. Built from
                settings when not provided.
            clock: Source of the current US/Eastern time.
        """
        self._settings = settings or get_settings()
        self._quote_sources = quote_sources
        self._clock = clock

        self._engine: Optional[Engine] = None
        self._session_factory: Optional[SessionFactory] = None
        self._quote_cache: Optional[QuoteCache] = None
        self._security_service: Optional[SecurityService] = None
        self._ledger_service: Optional[LedgerService] = None
        self._valuation_service: Optional[ValuationService] = None
        self._scheduler: Optional[SnapshotScheduler] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def initialize(self) -> None:
        """Create the engine and tables. Safe to call more than once."""
        if self._engine is not None:
            return
        self._engine = create_db_engine(self._settings.get_database_url())
        init_db(self._engine)
        self._session_factory = create_session_factory(make_sessionmaker(self._engine))

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def session_factory(self) -> SessionFactory:
        self.initialize()
        return self._session_factory

    # Service accessors
    @property
    def quote_cache(self) -> QuoteCache:
        """Get the QuoteCache instance."""
        if self._quote_cache is None:
            primary, secondary = self._quote_sources or build_quote_sources(self._settings)
            self._quote_cache = QuoteCache(
                primary=primary,
                secondary=secondary,
                store=InMemoryQuoteStore(self._settings.quote_cache_max_entries),
                archive=PriceArchive(self.session_factory, clock=self._clock),
                quote_ttl=timedelta(seconds=self._settings.quote_ttl_seconds),
                metadata_ttl=timedelta(seconds=self._settings.metadata_ttl_seconds),
                clock=self._clock,
            )
        return self._quote_cache

    @property
    def securities(self) -> SecurityService:
        """Get the SecurityService instance."""
        if self._security_service is None:
            self._security_service = SecurityService(
                self.session_factory,
                quote_cache=self.quote_cache,
                clock=self._clock,
            )
        return self._security_service

    @property
    def ledger(self) -> LedgerService:
        """Get the LedgerService instance."""
        if self._ledger_service is None:
            self._ledger_service = LedgerService(
                self.session_factory,
                security_service=self.securities,
                clock=self._clock,
            )
        return self._ledger_service

    @property
    def valuation(self) -> ValuationService:
        """Get the ValuationService instance."""
        if self._valuation_service is None:
            self._valuation_service = ValuationService(
                self.session_factory,
                quote_cache=self.quote_cache,
                max_workers=self._settings.valuation_max_workers,
                clock=self._clock,
            )
        return self._valuation_service

    @property
    def scheduler(self) -> SnapshotScheduler:
        """Get the SnapshotScheduler instance (not started)."""
        if self._scheduler is None:
            self._scheduler = SnapshotScheduler(
                self.valuation,
                hour=self._settings.snapshot_hour,
                minute=self._settings.snapshot_minute,
                clock=self._clock,
            )
        return self._scheduler

    def close(self) -> None:
        """Stop background work and release the engine."""
        if self._scheduler is not None:
            self._scheduler.stop()
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
        self._quote_cache = None
        self._security_service = None
        self._ledger_service = None
        self._valuation_service = None
        self._scheduler = None


# Global application context
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Get or create the global application context."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(context: Optional[AppContext]) -> None:
    """Set (or clear) the global application context."""
    global _app_context
    _app_context = context
