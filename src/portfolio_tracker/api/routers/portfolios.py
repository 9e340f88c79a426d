"""Portfolio, valuation and snapshot endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from portfolio_tracker.api.deps import get_ledger_service, get_valuation_service
from portfolio_tracker.core.exceptions import NotFoundError
from portfolio_tracker.api.schemas import (
    HoldingOpenRequest,
    HoldingStateResponse,
    PortfolioCreateRequest,
    PortfolioResponse,
    PortfolioValuationResponse,
    SnapshotCreateRequest,
    SnapshotListResponse,
    SnapshotResponse,
)
from portfolio_tracker.services import LedgerService, ValuationService

router = APIRouter(prefix="/portfolios", tags=["portfolios"])


@router.post("", response_model=PortfolioResponse, status_code=201)
def create_portfolio(
    data: PortfolioCreateRequest,
    ledger: LedgerService = Depends(get_ledger_service),
) -> PortfolioResponse:
    """Create a new portfolio."""
    portfolio = ledger.create_portfolio(data.name, data.currency)
    return PortfolioResponse.model_validate(portfolio)


@router.get("", response_model=list[PortfolioResponse])
def list_portfolios(ledger: LedgerService = Depends(get_ledger_service)) -> list[PortfolioResponse]:
    """List all portfolios."""
    return [PortfolioResponse.model_validate(p) for p in ledger.list_portfolios()]


@router.get("/{portfolio_id}", response_model=PortfolioResponse)
def get_portfolio(
    portfolio_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> PortfolioResponse:
    return PortfolioResponse.model_validate(ledger.get_portfolio(portfolio_id))


@router.get("/{portfolio_id}/holdings", response_model=list[HoldingStateResponse])
def list_holdings(
    portfolio_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> list[HoldingStateResponse]:
    """Derived state of every holding in the portfolio."""
    return [HoldingStateResponse.model_validate(h) for h in ledger.list_holdings(portfolio_id)]


@router.post("/{portfolio_id}/holdings", response_model=HoldingStateResponse, status_code=201)
def open_holding(
    portfolio_id: str,
    data: HoldingOpenRequest,
    ledger: LedgerService = Depends(get_ledger_service),
) -> HoldingStateResponse:
    """Open an empty holding (returns the existing one if present)."""
    return HoldingStateResponse.model_validate(ledger.open_holding(portfolio_id, data.symbol))


@router.get("/{portfolio_id}/valuation", response_model=PortfolioValuationResponse)
def value_portfolio(
    portfolio_id: str,
    valuation: ValuationService = Depends(get_valuation_service),
) -> PortfolioValuationResponse:
    """Value the portfolio at current quotes; ``partial`` marks missing prices."""
    return PortfolioValuationResponse.model_validate(valuation.value_portfolio(portfolio_id))


@router.post("/{portfolio_id}/snapshots", response_model=SnapshotResponse, status_code=201)
def create_snapshot(
    portfolio_id: str,
    data: SnapshotCreateRequest,
    valuation: ValuationService = Depends(get_valuation_service),
) -> SnapshotResponse:
    """Take the daily snapshot; an existing one is returned unless ``force``."""
    snapshot = valuation.create_daily_snapshot(portfolio_id, data.snapshot_date, force=data.force)
    return SnapshotResponse.model_validate(snapshot)


@router.get("/{portfolio_id}/snapshots", response_model=SnapshotListResponse)
def list_snapshots(
    portfolio_id: str,
    start_date: Optional[date] = Query(None, description="First date (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last date (inclusive)"),
    include_superseded: bool = Query(False, description="Also list records replaced by a forced snapshot"),
    valuation: ValuationService = Depends(get_valuation_service),
) -> SnapshotListResponse:
    snapshots = valuation.list_snapshots(
        portfolio_id, start_date, end_date, include_superseded=include_superseded
    )
    return SnapshotListResponse(
        snapshots=[SnapshotResponse.model_validate(s) for s in snapshots],
        count=len(snapshots),
    )


@router.get("/{portfolio_id}/snapshots/{snapshot_date}", response_model=SnapshotResponse)
def get_or_create_snapshot(
    portfolio_id: str,
    snapshot_date: date,
    valuation: ValuationService = Depends(get_valuation_service),
) -> SnapshotResponse:
    """Return the snapshot for a date, taking it first if missing."""
    return SnapshotResponse.model_validate(valuation.get_or_create_snapshot(portfolio_id, snapshot_date))


@router.get("/{portfolio_id}/snapshots/by-id/{snapshot_id}", response_model=SnapshotResponse)
def get_snapshot(
    portfolio_id: str,
    snapshot_id: str,
    valuation: ValuationService = Depends(get_valuation_service),
) -> SnapshotResponse:
    """Read one stored snapshot, superseded or not."""
    snapshot = valuation.get_snapshot(snapshot_id)
    if snapshot.portfolio_id != portfolio_id:
        raise NotFoundError("Snapshot", snapshot_id)
    return SnapshotResponse.model_validate(snapshot)
