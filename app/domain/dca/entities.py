"""
Domain entities for the DCA bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
Timestamps are naive UTC.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Frequency(Enum):
    """Cadence of a recurring DCA order."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TransactionStatus(Enum):
    """Outcome recorded for one execution attempt or cancellation."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CatalogEntity(Enum):
    """Catalog entities that carry an admin override flag."""

    TOKEN = "token"
    GATEWAY = "gateway"
    PAIR = "pair"


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    """A tradable token known to the catalog."""

    id: int
    symbol: str
    name: str
    contract_address: str
    decimals: int
    logo_url: Optional[str]
    is_active: bool
    admin_disabled: bool


@dataclass(frozen=True)
class Gateway:
    """One external liquidity source whose pairs are synchronized."""

    id: int
    name: str
    slug: str
    fee_percentage: Decimal
    is_active: bool
    admin_disabled: bool


@dataclass(frozen=True)
class TradingPair:
    """A directed (token_from → token_to) pair on one gateway."""

    id: int
    token_from_id: int
    token_to_id: int
    gateway_id: int
    reserve0: Decimal
    reserve1: Decimal
    external_pair_id: Optional[str]
    is_active: bool
    admin_disabled: bool
    last_sync_at: Optional[datetime]


@dataclass(frozen=True)
class TokenUpsert:
    """Token fields reported by the feed for one upsert."""

    symbol: str
    name: str
    contract_address: str
    decimals: int
    logo_url: Optional[str] = None


@dataclass(frozen=True)
class PairUpsert:
    """Directed pair fields produced by one reconciliation step."""

    token_from_id: int
    token_to_id: int
    gateway_id: int
    external_pair_id: Optional[str]
    reserve0: Decimal
    reserve1: Decimal


@dataclass(frozen=True)
class UpsertOutcome:
    """Result of an override-aware upsert.

    ``skipped`` is True when the existing row is admin-disabled and its
    activation state was therefore left untouched.
    """

    id: int
    skipped: bool


@dataclass(frozen=True)
class DeactivationResult:
    """Rows switched to inactive by a stale-pair sweep."""

    count: int
    ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class CatalogStats:
    """Pair counters for one gateway."""

    active_pairs: int
    inactive_pairs: int
    admin_disabled_pairs: int
    last_sync_at: Optional[datetime]


@dataclass(frozen=True)
class PairListing:
    """An active pair joined with its token symbols and gateway."""

    pair_id: int
    token_from_id: int
    token_from_symbol: str
    token_to_id: int
    token_to_symbol: str
    gateway_id: int
    gateway_name: str
    gateway_slug: str
    gateway_fee: Decimal


@dataclass(frozen=True)
class PairQuote:
    """Best available quote for a directed pair."""

    pair_id: int
    gateway_name: str
    fee_percentage: Decimal
    reserve0: Decimal
    reserve1: Decimal
    decimals_from: int
    decimals_to: int


# ------------------------------------------------------------------
# Liquidity feed
# ------------------------------------------------------------------


@dataclass(frozen=True)
class TokenInfo:
    """Token metadata as reported by the liquidity feed."""

    external_id: str
    precision: Optional[int]
    logo_path: Optional[str]


@dataclass(frozen=True)
class RawPair:
    """An undirected pair as reported by the feed; reserves unparsed."""

    token0_id: str
    token1_id: str
    pair_id: str
    reserve0: object
    reserve1: object


@dataclass(frozen=True)
class LiquidPair:
    """A feed pair whose reserves parsed and passed the minimum threshold."""

    token0_id: str
    token1_id: str
    pair_id: str
    reserve0: Decimal
    reserve1: Decimal


@dataclass(frozen=True)
class FeedSnapshot:
    """One fetch of the liquidity feed."""

    tokens: dict[str, TokenInfo]
    pairs: list[RawPair]


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


@dataclass(frozen=True)
class User:
    """A wallet that owns DCA orders."""

    id: int
    wallet_address: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class DCAOrder:
    """A recurring conversion of a fixed amount at a fixed cadence."""

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


@dataclass(frozen=True)
class NewTransaction:
    """An execution record about to be appended to the audit trail."""

    user_id: int
    amount: Decimal
    token_from: str
    token_to: str
    status: TransactionStatus
    order_id: Optional[int] = None
    tx_hash: Optional[str] = None
    gas_used: Optional[Decimal] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """An immutable execution record."""

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


@dataclass(frozen=True)
class TransactionStats:
    """Aggregate execution figures for one user."""

    total: int
    completed: int
    failed: int
    completed_volume: Decimal
    completed_gas: Decimal


@dataclass(frozen=True)
class ExecutionReceipt:
    """What the settlement backend reports for a successful execution."""

    tx_hash: str
    gas_used: Decimal
