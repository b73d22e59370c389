"""
Data Transfer Objects for the DCA application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.domain.dca.entities import (
    CatalogEntity,
    DCAOrder,
    Frequency,
    Gateway,
    PairListing,
    Token,
    Transaction,
    TransactionStats,
    User,
)


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one reconciliation pass.

    Attributes:
        success: False when the pass aborted (missing gateway, feed
            unreachable, store failure during deactivation).
        skipped: True when nothing was attempted (gateway disabled or
            another pass already running).
        reason: Machine-readable cause for a skip or failure.
        pairs_updated: Directed rows written with is_active forced on.
        pairs_skipped: Directed rows left alone because admin-disabled.
        pairs_deactivated: Stale rows switched off at the end of the pass.
        active_pairs: Active rows for the gateway after the pass.
        tokens_resolved: Distinct symbols usable in this pass.
        elapsed_seconds: Wall time of the pass.
        error: Human-readable failure detail.
    """

    success: bool
    skipped: bool = False
    reason: Optional[str] = None
    pairs_updated: int = 0
    pairs_skipped: int = 0
    pairs_deactivated: int = 0
    active_pairs: int = 0
    tokens_resolved: int = 0
    elapsed_seconds: float = 0.0
    error: Optional[str] = None


@dataclass(frozen=True)
class RegisterGatewayCommand:
    name: str
    slug: str
    fee_percentage: Decimal = Decimal("0.3")


@dataclass(frozen=True)
class AddTokenCommand:
    symbol: str
    name: str
    contract_address: Optional[str] = None
    decimals: int = 6
    logo_url: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class AddTradingPairCommand:
    """Input DTO for a hand-made directed pair.

    Attributes:
        token_from_id: Token paid.
        token_to_id: Token received.
        gateway_id: Gateway the pair trades on.
        is_active: Initial activation state.
    """

    token_from_id: int
    token_to_id: int
    gateway_id: int
    is_active: bool = True


@dataclass(frozen=True)
class AdminOverrideCommand:
    """Input DTO for a manual catalog override.

    Attributes:
        entity: Which catalog table the row lives in.
        entity_id: Row id.
        admin_disabled: New value of the override flag.
        is_active: Optional explicit activation state. When omitted,
            disabling also deactivates and enabling reactivates.
    """

    entity: CatalogEntity
    entity_id: int
    admin_disabled: bool
    is_active: Optional[bool] = None


@dataclass(frozen=True)
class SyncStatsResult:
    gateway_slug: str
    active_pairs: int
    inactive_pairs: int
    admin_disabled_pairs: int
    last_sync_at: Optional[datetime]


@dataclass(frozen=True)
class ActiveCatalog:
    tokens: list[Token] = field(default_factory=list)
    gateways: list[Gateway] = field(default_factory=list)
    pairs: list[PairListing] = field(default_factory=list)


@dataclass(frozen=True)
class BestPriceResult:
    """Cheapest active quote for one direction.

    Attributes:
        pair_id: Directed pair row id.
        gateway_name: Gateway offering the quote.
        fee_percentage: Gateway fee.
        price: Raw reserve ratio reserve0 / reserve1 (lower is better).
        rate: Units of token_to received per unit of token_from,
            adjusted for token decimals.
    """

    token_from: str
    token_to: str
    pair_id: int
    gateway_name: str
    fee_percentage: Decimal
    reserve0: Decimal
    reserve1: Decimal
    price: Decimal
    rate: Decimal


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


@dataclass(frozen=True)
class CreateOrderCommand:
    """Input DTO for creating a recurring order.

    Attributes:
        wallet_address: Owner wallet; the user is created on first use.
        token_from: Symbol spent on every execution.
        token_to: Symbol bought on every execution.
        amount: Amount of token_from per execution.
        frequency: Execution cadence.
    """

    wallet_address: str
    token_from: str
    token_to: str
    amount: Decimal
    frequency: Frequency


@dataclass(frozen=True)
class CancelOrderCommand:
    """Input DTO for cancelling an order.

    Attributes:
        order_id: Order to cancel.
        fee: Cancellation fee recorded on the audit row.
        refund_amount: Amount reported as refunded. Defaults to the
            order amount.
    """

    order_id: int
    fee: Decimal = Decimal("0")
    refund_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class CancelOrderResult:
    order: DCAOrder
    transaction: Transaction
    fee: Decimal
    refund_amount: Decimal


@dataclass(frozen=True)
class UserActivity:
    user: User
    orders: list[DCAOrder]
    recent_transactions: list[Transaction]
    stats: TransactionStats


@dataclass(frozen=True)
class TickResult:
    """Outcome of one scheduler tick.

    Attributes:
        orders_found: Due orders fetched for this tick.
        completed: Executions recorded as completed.
        failed: Executions recorded as failed.
        errors: Orders whose outcome could not be persisted.
        skipped: True when another tick was still running.
        elapsed_seconds: Wall time of the tick.
    """

    orders_found: int = 0
    completed: int = 0
    failed: int = 0
    errors: int = 0
    skipped: bool = False
    elapsed_seconds: float = 0.0
