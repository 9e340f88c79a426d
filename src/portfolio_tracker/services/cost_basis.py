"""
Weighted-average cost basis.

Pure functions that fold a holding's transactions into its derived state.
Nothing here touches storage or the network, so the same ordered input
always produces the same output and the state can be rebuilt from the
transaction log at any time.

Buy ``s`` shares at ``p`` with fee ``f``::

    quantity'     = quantity + s
    average_cost' = (quantity * average_cost + s * p) / quantity'
    total_fees'   = total_fees + f

Sell ``s`` shares at ``p`` with fee ``f`` (rejected if s > quantity)::

    realized_gain' = realized_gain + s * (p - average_cost) - f
    quantity'      = quantity - s
    average_cost'  = average_cost, or 0 once the position is closed
    total_fees'    = total_fees + f

Fees are kept out of the per-share average.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from portfolio_tracker.core.exceptions import InsufficientSharesError
from portfolio_tracker.domain.models import Transaction, TransactionType

ZERO = Decimal("0")


@dataclass(frozen=True)
class CostBasisState:
    """Derived ledger state of one holding."""

    quantity: Decimal = ZERO
    average_cost: Decimal = ZERO
    realized_gain: Decimal = ZERO
    total_fees: Decimal = ZERO

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.average_cost

    @property
    def is_open(self) -> bool:
        return self.quantity > ZERO


def replay_key(txn: Transaction) -> tuple[datetime, int]:
    """Sort key giving the deterministic replay order."""
    return (txn.txn_time_est, txn.sequence)


def apply_transaction(
    state: CostBasisState,
    txn: Transaction,
    symbol: Optional[str] = None,
) -> CostBasisState:
    """Return the state after ``txn``. ``state`` itself is never modified."""
    if txn.txn_type == TransactionType.BUY:
        quantity = state.quantity + txn.shares
        average_cost = (state.quantity * state.average_cost + txn.shares * txn.price_per_share) / quantity
        return CostBasisState(
            quantity=quantity,
            average_cost=average_cost,
            realized_gain=state.realized_gain,
            total_fees=state.total_fees + txn.fees,
        )

    if txn.txn_type == TransactionType.SELL:
        if txn.shares > state.quantity:
            raise InsufficientSharesError(
                symbol or txn.holding_id,
                requested=str(txn.shares),
                available=str(state.quantity),
            )
        quantity = state.quantity - txn.shares
        realized = txn.shares * (txn.price_per_share - state.average_cost) - txn.fees
        return CostBasisState(
            quantity=quantity,
            average_cost=state.average_cost if quantity > ZERO else ZERO,
            realized_gain=state.realized_gain + realized,
            total_fees=state.total_fees + txn.fees,
        )

    raise ValueError(f"Unsupported transaction type: {txn.txn_type}")


def replay(
    transactions: Iterable[Transaction],
    symbol: Optional[str] = None,
) -> CostBasisState:
    """Fold transactions, in replay order, starting from an empty holding."""
    state = CostBasisState()
    for txn in sorted(transactions, key=replay_key):
        state = apply_transaction(state, txn, symbol=symbol)
    return state
