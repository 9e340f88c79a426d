"""Holding, transaction and dividend endpoints."""

from fastapi import APIRouter, Depends

from portfolio_tracker.api.deps import get_ledger_service
from portfolio_tracker.api.schemas import (
    AppliedTransactionResponse,
    DividendCreateRequest,
    DividendResponse,
    HoldingStateResponse,
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionResponse,
)
from portfolio_tracker.services import LedgerService, TransactionCreate

router = APIRouter(prefix="/holdings", tags=["holdings"])


@router.post("/transactions", response_model=AppliedTransactionResponse, status_code=201)
def apply_transaction(
    data: TransactionCreateRequest,
    ledger: LedgerService = Depends(get_ledger_service),
) -> AppliedTransactionResponse:
    """Apply a BUY or SELL; creates the holding when addressed by symbol."""
    applied = ledger.apply_transaction(
        TransactionCreate(
            txn_type=data.txn_type,
            shares=data.shares,
            price_per_share=data.price_per_share,
            fees=data.fees,
            txn_time_est=data.txn_time_est,
            notes=data.notes,
            holding_id=data.holding_id,
            portfolio_id=data.portfolio_id,
            symbol=data.symbol,
        )
    )
    return AppliedTransactionResponse.model_validate(applied)


@router.get("/{holding_id}", response_model=HoldingStateResponse)
def get_holding_state(
    holding_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> HoldingStateResponse:
    return HoldingStateResponse.model_validate(ledger.get_holding_state(holding_id))


@router.delete("/{holding_id}", status_code=204)
def delete_holding(
    holding_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> None:
    """Delete a holding. Fails while it has transactions."""
    ledger.delete_holding(holding_id)


@router.get("/{holding_id}/transactions", response_model=TransactionListResponse)
def list_transactions(
    holding_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> TransactionListResponse:
    transactions = ledger.list_transactions(holding_id)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        count=len(transactions),
    )


@router.post("/{holding_id}/rebuild", response_model=HoldingStateResponse)
def rebuild_holding(
    holding_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> HoldingStateResponse:
    """Recompute derived fields from the transaction log."""
    return HoldingStateResponse.model_validate(ledger.rebuild_holding(holding_id))


@router.post("/{holding_id}/dividends", response_model=DividendResponse, status_code=201)
def record_dividend(
    holding_id: str,
    data: DividendCreateRequest,
    ledger: LedgerService = Depends(get_ledger_service),
) -> DividendResponse:
    dividend = ledger.record_dividend(
        holding_id,
        amount_per_share=data.amount_per_share,
        payment_date=data.payment_date,
        ex_dividend_date=data.ex_dividend_date,
    )
    return DividendResponse.model_validate(dividend)


@router.get("/{holding_id}/dividends", response_model=list[DividendResponse])
def list_dividends(
    holding_id: str,
    ledger: LedgerService = Depends(get_ledger_service),
) -> list[DividendResponse]:
    return [DividendResponse.model_validate(d) for d in ledger.list_dividends(holding_id)]
