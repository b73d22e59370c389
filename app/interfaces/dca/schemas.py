"""
Pydantic schemas for DCA API request/response validation.

These schemas enforce input validation and define the API contract.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domain.dca.entities import Frequency, TransactionStatus

SYMBOL_PATTERN = r"^[A-Za-z0-9]+$"
SYMBOL_MAX_LEN = 20


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    database: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: Optional[str] = None


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


class CreateOrderRequest(BaseModel):
    """Request schema for creating a DCA order.

    Attributes:
        wallet_address: Owner wallet; created on first use.
        token_from: Symbol spent on every execution.
        token_to: Symbol bought on every execution.
        amount: Amount spent per execution.
        frequency: hourly, daily, weekly or monthly.
    """

    wallet_address: str = Field(..., min_length=1, max_length=255)
    token_from: str = Field(
        ..., min_length=1, max_length=SYMBOL_MAX_LEN, pattern=SYMBOL_PATTERN
    )
    token_to: str = Field(
        ..., min_length=1, max_length=SYMBOL_MAX_LEN, pattern=SYMBOL_PATTERN
    )
    amount: Decimal = Field(..., gt=0)
    frequency: Frequency


class CancelOrderRequest(BaseModel):
    fee_amount: Decimal = Field(default=Decimal("0"), ge=0)
    refund_amount: Optional[Decimal] = Field(default=None, ge=0)


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    token_from: str
    token_to: str
    amount: Decimal
    frequency: Frequency
    next_execution: datetime
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: Optional[int]
    user_id: int
    tx_hash: Optional[str]
    amount: Decimal
    token_from: str
    token_to: str
    status: TransactionStatus
    gas_used: Optional[Decimal]
    error_message: Optional[str]
    executed_at: datetime


class CancelOrderResponse(BaseModel):
    order: OrderResponse
    transaction: TransactionResponse
    fee: Decimal
    refund_amount: Decimal


class ActivityStatsResponse(BaseModel):
    total: int
    completed: int
    failed: int
    completed_volume: Decimal
    completed_gas: Decimal


class UserActivityResponse(BaseModel):
    """A wallet's orders, most recent transactions and totals."""

    wallet_address: str
    orders: list[OrderResponse]
    recent_transactions: list[TransactionResponse]
    stats: ActivityStatsResponse


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


class TokenResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    symbol: str
    name: str
    contract_address: str
    decimals: int
    logo_url: Optional[str]


class GatewayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    fee_percentage: Decimal
    is_active: bool
    admin_disabled: bool


class PairListingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pair_id: int
    token_from_id: int
    token_from_symbol: str
    token_to_id: int
    token_to_symbol: str
    gateway_id: int
    gateway_name: str
    gateway_slug: str
    gateway_fee: Decimal


class ActiveCatalogResponse(BaseModel):
    tokens: list[TokenResponse]
    gateways: list[GatewayResponse]
    pairs: list[PairListingResponse]


class BestPriceResponse(BaseModel):
    """Cheapest active quote for one direction.

    ``price`` is the raw reserve ratio used for ranking, ``rate`` the
    decimal-adjusted amount of token_to per unit of token_from.
    """

    model_config = ConfigDict(from_attributes=True)

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
# Admin
# ------------------------------------------------------------------


class SyncResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    skipped: bool
    reason: Optional[str]
    pairs_updated: int
    pairs_skipped: int
    pairs_deactivated: int
    active_pairs: int
    tokens_resolved: int
    elapsed_seconds: float
    error: Optional[str]


class SyncStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gateway_slug: str
    active_pairs: int
    inactive_pairs: int
    admin_disabled_pairs: int
    last_sync_at: Optional[datetime]


class TickResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    orders_found: int
    completed: int
    failed: int
    errors: int
    skipped: bool
    elapsed_seconds: float


class JobsStatusResponse(BaseModel):
    running: bool
    jobs: list[dict[str, Any]]
    recent_tasks: list[dict[str, Any]]


class RegisterGatewayRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    fee_percentage: Decimal = Field(default=Decimal("0.3"), ge=0, le=100)


class AddTokenRequest(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=20, pattern=r"^[A-Za-z0-9]+$")
    name: str = Field(..., min_length=1, max_length=100)
    contract_address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    decimals: int = Field(default=6, ge=0, le=36)
    logo_url: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class AdminTokenResponse(TokenResponse):
    is_active: bool
    admin_disabled: bool


class AddTradingPairRequest(BaseModel):
    token_from_id: int = Field(..., gt=0)
    token_to_id: int = Field(..., gt=0)
    gateway_id: int = Field(..., gt=0)
    is_active: bool = True


class TradingPairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    token_from_id: int
    token_to_id: int
    gateway_id: int
    reserve0: Decimal
    reserve1: Decimal
    is_active: bool
    admin_disabled: bool


class AdminOverrideRequest(BaseModel):
    """Manual override of one catalog row.

    Attributes:
        admin_disabled: Freeze the row against automated activation changes.
        is_active: Explicit activation state. Omitted: follows the flag.
    """

    admin_disabled: bool
    is_active: Optional[bool] = None


class AdminOverrideResponse(BaseModel):
    entity: str
    entity_id: int
    admin_disabled: bool
    is_active: bool
