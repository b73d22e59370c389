"""
Port interfaces (ABCs) for the DCA bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.domain.dca.entities import (
    CatalogEntity,
    CatalogStats,
    DCAOrder,
    DeactivationResult,
    ExecutionReceipt,
    FeedSnapshot,
    Frequency,
    Gateway,
    LiquidPair,
    NewTransaction,
    PairListing,
    PairQuote,
    PairUpsert,
    RawPair,
    Token,
    TokenUpsert,
    TradingPair,
    Transaction,
    TransactionStats,
    UpsertOutcome,
    User,
)


class LiquidityFeedPort(ABC):
    """Port for reading pair and liquidity data from one external market."""

    @abstractmethod
    def fetch_pairs(self) -> FeedSnapshot:
        """Fetch all tokens and pairs in one request.

        Raises:
            FeedUnavailableError: On transport failure or a non-2xx status.
        """
        raise NotImplementedError

    @abstractmethod
    def extract_symbol(self, external_id: Optional[str]) -> Optional[str]:
        """Derive the canonical symbol of a feed token id, or None."""
        raise NotImplementedError

    @abstractmethod
    def filter_valid_pairs(
        self, pairs: list[RawPair], min_reserve: Decimal
    ) -> list[LiquidPair]:
        """Keep pairs whose reserves both parse and reach ``min_reserve``."""
        raise NotImplementedError

    @abstractmethod
    def build_logo_url(self, path: Optional[str]) -> Optional[str]:
        """Turn a feed logo path into an absolute URL."""
        raise NotImplementedError


class CatalogRepository(ABC):
    """Port for the token / gateway / trading pair catalog.

    Every write is a single-row, individually committed operation.
    Automated writes never change the activation state of a row whose
    ``admin_disabled`` flag is set.
    """

    @abstractmethod
    def get_gateway_by_slug(self, slug: str) -> Optional[Gateway]:
        """Return the gateway with this slug, or None.

        Raises:
            StoreReadError: If the lookup fails.
        """
        raise NotImplementedError

    @abstractmethod
    def get_gateway(self, gateway_id: int) -> Optional[Gateway]:
        """Return the gateway with this id, or None."""
        raise NotImplementedError

    @abstractmethod
    def add_gateway(
        self, name: str, slug: str, fee_percentage: Decimal
    ) -> Gateway:
        """Register a new active gateway."""
        raise NotImplementedError

    @abstractmethod
    def upsert_token(self, data: TokenUpsert) -> UpsertOutcome:
        """Insert or refresh a token keyed by its contract address.

        An admin-disabled row is not written at all and is reported
        as skipped.

        Raises:
            StoreWriteError: If the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    def get_token_by_symbol(self, symbol: str) -> Optional[Token]:
        """Return the token with this symbol (case-insensitive), or None.

        Raises:
            StoreReadError: If the lookup fails.
        """
        raise NotImplementedError

    @abstractmethod
    def get_token(self, token_id: int) -> Optional[Token]:
        """Return the token with this id, or None."""
        raise NotImplementedError

    @abstractmethod
    def add_token(
        self,
        symbol: str,
        name: str,
        contract_address: str,
        decimals: int = 6,
        logo_url: Optional[str] = None,
        is_active: bool = True,
    ) -> Token:
        """Create a token outside any sync pass."""
        raise NotImplementedError

    @abstractmethod
    def upsert_trading_pair(self, data: PairUpsert) -> UpsertOutcome:
        """Insert or refresh one directed pair keyed by its natural key.

        An admin-disabled row only gets its reserves, external id and
        sync timestamp refreshed and is reported as skipped.

        Raises:
            StoreWriteError: If the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    def deactivate_stale_pairs(
        self, gateway_id: int, keep_ids: set[int]
    ) -> DeactivationResult:
        """Deactivate active, non-admin-disabled pairs not in ``keep_ids``."""
        raise NotImplementedError

    @abstractmethod
    def get_sync_stats(self, gateway_id: int) -> CatalogStats:
        """Return pair counters for one gateway.

        Raises:
            StoreReadError: If the counters cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    def get_trading_pair(
        self, token_from_id: int, token_to_id: int, gateway_id: int
    ) -> Optional[TradingPair]:
        """Return one directed pair by its natural key, or None."""
        raise NotImplementedError

    @abstractmethod
    def add_trading_pair(
        self,
        token_from_id: int,
        token_to_id: int,
        gateway_id: int,
        is_active: bool = True,
    ) -> TradingPair:
        """Create one directed pair outside any sync pass."""
        raise NotImplementedError

    @abstractmethod
    def set_admin_override(
        self,
        entity: CatalogEntity,
        entity_id: int,
        admin_disabled: bool,
        is_active: Optional[bool] = None,
    ) -> None:
        """Apply a manual operator override to one catalog row.

        Raises:
            CatalogEntryNotFoundError: If the row does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def list_active_tokens(self) -> list[Token]:
        """Return active tokens ordered by symbol."""
        raise NotImplementedError

    @abstractmethod
    def list_active_gateways(self) -> list[Gateway]:
        """Return active gateways ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def list_active_pairs(self) -> list[PairListing]:
        """Return active pairs whose tokens and gateway are active."""
        raise NotImplementedError

    @abstractmethod
    def find_best_quote(
        self, token_from_symbol: str, token_to_symbol: str
    ) -> Optional[PairQuote]:
        """Return the cheapest active quote for this direction, or None."""
        raise NotImplementedError


class UserRepository(ABC):
    """Port for wallet owners."""

    @abstractmethod
    def find_or_create(self, wallet_address: str) -> User:
        """Return the user for a wallet, creating it on first use."""
        raise NotImplementedError

    @abstractmethod
    def find_by_wallet(self, wallet_address: str) -> Optional[User]:
        """Return the user for a wallet, or None."""
        raise NotImplementedError


class OrderRepository(ABC):
    """Port for persisting DCA orders."""

    @abstractmethod
    def create(
        self,
        user_id: int,
        token_from: str,
        token_to: str,
        amount: Decimal,
        frequency: Frequency,
        next_execution: datetime,
    ) -> DCAOrder:
        """Persist a new active order."""
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, order_id: int) -> Optional[DCAOrder]:
        """Return an order by id, or None."""
        raise NotImplementedError

    @abstractmethod
    def list_by_user(self, user_id: int) -> list[DCAOrder]:
        """Return a user's orders, newest first."""
        raise NotImplementedError

    @abstractmethod
    def get_due_orders(self, now: datetime, limit: int) -> list[DCAOrder]:
        """Return active orders due at ``now``, oldest due first."""
        raise NotImplementedError

    @abstractmethod
    def update_next_execution(
        self, order_id: int, next_execution: datetime
    ) -> None:
        """Move an order's next due time.

        Raises:
            StoreWriteError: If the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    def deactivate(self, order_id: int) -> bool:
        """Switch an active order off for good.

        Returns:
            True if the order was active and is now cancelled.
        """
        raise NotImplementedError


class TransactionRepository(ABC):
    """Port for the append-only execution audit trail."""

    @abstractmethod
    def append(self, record: NewTransaction) -> Transaction:
        """Append one record. Records are never updated or deleted.

        Raises:
            StoreWriteError: If the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_order(self, order_id: int) -> list[Transaction]:
        """Return an order's records in the order they were appended."""
        raise NotImplementedError

    @abstractmethod
    def list_by_user(self, user_id: int, limit: int = 50) -> list[Transaction]:
        """Return a user's most recent records, newest first."""
        raise NotImplementedError

    @abstractmethod
    def get_stats(self, user_id: int) -> TransactionStats:
        """Return aggregate execution figures for a user."""
        raise NotImplementedError


class SettlementPort(ABC):
    """Port for executing one DCA conversion on the settlement backend."""

    @abstractmethod
    def execute(self, order: DCAOrder) -> ExecutionReceipt:
        """Execute one conversion for ``order``.

        Raises:
            ExecutionFailedError: If the backend rejects the execution.
        """
        raise NotImplementedError
