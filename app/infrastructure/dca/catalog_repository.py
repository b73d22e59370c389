"""
Adapter: Catalog repository.

Implements CatalogRepository port.
Persists tokens, gateways and directed trading pairs with SQLAlchemy Core.

Every method opens its own transaction, so each upsert is committed on
its own and a failed row never rolls back the rows written before it.
Upserts use ON CONFLICT on the natural keys; the PostgreSQL and SQLite
dialects share the same statement shape.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, func, select, true, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.schema import Table

from app.domain.dca.entities import (
    CatalogEntity,
    CatalogStats,
    DeactivationResult,
    Gateway,
    PairListing,
    PairQuote,
    PairUpsert,
    Token,
    TokenUpsert,
    TradingPair,
    UpsertOutcome,
)
from app.domain.dca.errors import (
    CatalogEntryNotFoundError,
    DuplicateCatalogEntryError,
    StoreReadError,
    StoreWriteError,
)
from app.domain.dca.ports import CatalogRepository
from app.domain.dca.scheduling import utcnow
from app.infrastructure.persistence.tables import gateways, tokens, trading_pairs

logger = logging.getLogger(__name__)

_OVERRIDE_TABLES = {
    CatalogEntity.TOKEN: tokens,
    CatalogEntity.GATEWAY: gateways,
    CatalogEntity.PAIR: trading_pairs,
}


def _to_token(row: Row) -> Token:
    return Token(
        id=row.id,
        symbol=row.symbol,
        name=row.name,
        contract_address=row.contract_address,
        decimals=row.decimals,
        logo_url=row.logo_url,
        is_active=bool(row.is_active),
        admin_disabled=bool(row.admin_disabled),
    )


def _to_gateway(row: Row) -> Gateway:
    return Gateway(
        id=row.id,
        name=row.name,
        slug=row.slug,
        fee_percentage=Decimal(str(row.fee_percentage)),
        is_active=bool(row.is_active),
        admin_disabled=bool(row.admin_disabled),
    )


def _to_pair(row: Row) -> TradingPair:
    return TradingPair(
        id=row.id,
        token_from_id=row.token_from_id,
        token_to_id=row.token_to_id,
        gateway_id=row.gateway_id,
        reserve0=Decimal(str(row.reserve0)),
        reserve1=Decimal(str(row.reserve1)),
        external_pair_id=row.pair_id_external,
        is_active=bool(row.is_active),
        admin_disabled=bool(row.admin_disabled),
        last_sync_at=row.last_sync_at,
    )


class CatalogRepositoryAdapter(CatalogRepository):
    """SQL implementation of the override-aware catalog store.

    Implements the CatalogRepository port defined in the domain layer.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _insert(self, table: Table):
        """Return a dialect insert that supports ON CONFLICT."""
        if self._engine.dialect.name == "postgresql":
            return pg_insert(table)
        return sqlite_insert(table)

    # ------------------------------------------------------------------
    # Gateways
    # ------------------------------------------------------------------

    def get_gateway_by_slug(self, slug: str) -> Optional[Gateway]:
        """Return the gateway with this slug, or None."""
        query = select(gateways).where(gateways.c.slug == slug.lower())
        try:
            with self._engine.connect() as conn:
                row = conn.execute(query).first()
        except SQLAlchemyError as exc:
            raise StoreReadError("get_gateway_by_slug", str(exc)) from exc
        return _to_gateway(row) if row is not None else None

    def get_gateway(self, gateway_id: int) -> Optional[Gateway]:
        query = select(gateways).where(gateways.c.id == gateway_id)
        with self._engine.connect() as conn:
            row = conn.execute(query).first()
        return _to_gateway(row) if row is not None else None

    def add_gateway(
        self, name: str, slug: str, fee_percentage: Decimal
    ) -> Gateway:
        """Register a new active gateway.

        Raises:
            StoreWriteError: If the slug is taken or the write fails.
        """
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    gateways.insert().values(
                        name=name,
                        slug=slug.lower(),
                        fee_percentage=fee_percentage,
                        is_active=True,
                        admin_disabled=False,
                        created_at=utcnow(),
                    )
                )
                gateway_id = result.inserted_primary_key[0]
                row = conn.execute(
                    select(gateways).where(gateways.c.id == gateway_id)
                ).one()
        except SQLAlchemyError as exc:
            raise StoreWriteError("add_gateway", str(exc)) from exc

        logger.info("Gateway registered: %s (id=%d)", row.slug, row.id)
        return _to_gateway(row)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def upsert_token(self, data: TokenUpsert) -> UpsertOutcome:
        """Insert or refresh a token keyed by its contract address.

        An admin-disabled row is left entirely untouched and reported
        as skipped. Otherwise logo and decimals are refreshed and the
        token is forced active.

        Args:
            data: Token fields reported by the feed.

        Returns:
            The row id and whether it was skipped.
        """
        now = utcnow()
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(
                    select(tokens.c.id, tokens.c.admin_disabled).where(
                        tokens.c.contract_address == data.contract_address
                    )
                ).first()

                if existing is not None and existing.admin_disabled:
                    return UpsertOutcome(id=existing.id, skipped=True)

                stmt = self._insert(tokens).values(
                    symbol=data.symbol,
                    name=data.name,
                    contract_address=data.contract_address,
                    decimals=data.decimals,
                    logo_url=data.logo_url,
                    is_active=True,
                    admin_disabled=False,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["contract_address"],
                    set_={
                        "logo_url": func.coalesce(
                            stmt.excluded.logo_url, tokens.c.logo_url
                        ),
                        "decimals": func.coalesce(
                            stmt.excluded.decimals, tokens.c.decimals
                        ),
                        "is_active": case(
                            (tokens.c.admin_disabled, tokens.c.is_active),
                            else_=true(),
                        ),
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                conn.execute(stmt)

                token_id = conn.execute(
                    select(tokens.c.id).where(
                        tokens.c.contract_address == data.contract_address
                    )
                ).scalar_one()
        except SQLAlchemyError as exc:
            raise StoreWriteError("upsert_token", str(exc)) from exc

        return UpsertOutcome(id=token_id, skipped=False)

    def get_token_by_symbol(self, symbol: str) -> Optional[Token]:
        """Return the token with this symbol (case-insensitive), or None."""
        query = select(tokens).where(func.upper(tokens.c.symbol) == symbol.upper())
        try:
            with self._engine.connect() as conn:
                row = conn.execute(query).first()
        except SQLAlchemyError as exc:
            raise StoreReadError("get_token_by_symbol", str(exc)) from exc
        return _to_token(row) if row is not None else None

    def get_token(self, token_id: int) -> Optional[Token]:
        query = select(tokens).where(tokens.c.id == token_id)
        with self._engine.connect() as conn:
            row = conn.execute(query).first()
        return _to_token(row) if row is not None else None

    def add_token(
        self,
        symbol: str,
        name: str,
        contract_address: str,
        decimals: int = 6,
        logo_url: Optional[str] = None,
        is_active: bool = True,
    ) -> Token:
        """Create a token by hand, outside any sync pass.

        Raises:
            DuplicateCatalogEntryError: If the symbol or contract is taken.
            StoreWriteError: If the write fails.
        """
        now = utcnow()
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    tokens.insert().values(
                        symbol=symbol,
                        name=name,
                        contract_address=contract_address,
                        decimals=decimals,
                        logo_url=logo_url,
                        is_active=is_active,
                        admin_disabled=False,
                        created_at=now,
                        updated_at=now,
                    )
                )
                token_id = result.inserted_primary_key[0]
                row = conn.execute(select(tokens).where(tokens.c.id == token_id)).one()
        except IntegrityError as exc:
            raise DuplicateCatalogEntryError(
                CatalogEntity.TOKEN.value, f"{symbol} / {contract_address}"
            ) from exc
        except SQLAlchemyError as exc:
            raise StoreWriteError("add_token", str(exc)) from exc

        logger.info("Token created: %s (id=%d)", row.symbol, row.id)
        return _to_token(row)

    # ------------------------------------------------------------------
    # Trading pairs
    # ------------------------------------------------------------------

    def upsert_trading_pair(self, data: PairUpsert) -> UpsertOutcome:
        """Insert or refresh one directed pair keyed by its natural key.

        For an admin-disabled row only reserves, external id and the
        sync timestamp are written; ``is_active`` is never touched.

        Args:
            data: Directed pair fields.

        Returns:
            The row id and whether it was skipped.
        """
        now = utcnow()
        natural_key = (
            (trading_pairs.c.token_from_id == data.token_from_id)
            & (trading_pairs.c.token_to_id == data.token_to_id)
            & (trading_pairs.c.gateway_id == data.gateway_id)
        )
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(
                    select(trading_pairs.c.id, trading_pairs.c.admin_disabled).where(
                        natural_key
                    )
                ).first()

                if existing is not None and existing.admin_disabled:
                    conn.execute(
                        update(trading_pairs)
                        .where(trading_pairs.c.id == existing.id)
                        .values(
                            reserve0=data.reserve0,
                            reserve1=data.reserve1,
                            last_sync_at=now,
                            pair_id_external=data.external_pair_id,
                        )
                    )
                    return UpsertOutcome(id=existing.id, skipped=True)

                stmt = self._insert(trading_pairs).values(
                    token_from_id=data.token_from_id,
                    token_to_id=data.token_to_id,
                    gateway_id=data.gateway_id,
                    pair_id_external=data.external_pair_id,
                    reserve0=data.reserve0,
                    reserve1=data.reserve1,
                    is_active=True,
                    admin_disabled=False,
                    last_sync_at=now,
                    created_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["token_from_id", "token_to_id", "gateway_id"],
                    set_={
                        "reserve0": stmt.excluded.reserve0,
                        "reserve1": stmt.excluded.reserve1,
                        "is_active": case(
                            (trading_pairs.c.admin_disabled, trading_pairs.c.is_active),
                            else_=true(),
                        ),
                        "last_sync_at": stmt.excluded.last_sync_at,
                        "pair_id_external": func.coalesce(
                            stmt.excluded.pair_id_external,
                            trading_pairs.c.pair_id_external,
                        ),
                    },
                )
                conn.execute(stmt)

                pair_id = conn.execute(
                    select(trading_pairs.c.id).where(natural_key)
                ).scalar_one()
        except SQLAlchemyError as exc:
            raise StoreWriteError("upsert_trading_pair", str(exc)) from exc

        return UpsertOutcome(id=pair_id, skipped=False)

    def get_trading_pair(
        self, token_from_id: int, token_to_id: int, gateway_id: int
    ) -> Optional[TradingPair]:
        """Return one directed pair by its natural key, or None."""
        query = select(trading_pairs).where(
            (trading_pairs.c.token_from_id == token_from_id)
            & (trading_pairs.c.token_to_id == token_to_id)
            & (trading_pairs.c.gateway_id == gateway_id)
        )
        with self._engine.connect() as conn:
            row = conn.execute(query).first()
        return _to_pair(row) if row is not None else None

    def add_trading_pair(
        self,
        token_from_id: int,
        token_to_id: int,
        gateway_id: int,
        is_active: bool = True,
    ) -> TradingPair:
        """Create one directed pair by hand with empty reserves.

        The pair is not admin-disabled, so a later sync pass deactivates
        it if the gateway's feed does not list it.

        Raises:
            DuplicateCatalogEntryError: If the direction already exists.
            StoreWriteError: If the write fails.
        """
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    trading_pairs.insert().values(
                        token_from_id=token_from_id,
                        token_to_id=token_to_id,
                        gateway_id=gateway_id,
                        reserve0=0,
                        reserve1=0,
                        is_active=is_active,
                        admin_disabled=False,
                        created_at=utcnow(),
                    )
                )
                pair_id = result.inserted_primary_key[0]
                row = conn.execute(
                    select(trading_pairs).where(trading_pairs.c.id == pair_id)
                ).one()
        except IntegrityError as exc:
            raise DuplicateCatalogEntryError(
                CatalogEntity.PAIR.value,
                f"{token_from_id}->{token_to_id} on gateway {gateway_id}",
            ) from exc
        except SQLAlchemyError as exc:
            raise StoreWriteError("add_trading_pair", str(exc)) from exc

        logger.info(
            "Trading pair created: %d -> %d on gateway %d (id=%d)",
            token_from_id,
            token_to_id,
            gateway_id,
            row.id,
        )
        return _to_pair(row)

    def deactivate_stale_pairs(
        self, gateway_id: int, keep_ids: set[int]
    ) -> DeactivationResult:
        """Deactivate active pairs of a gateway that were not kept.

        Admin-disabled rows are never touched. An empty ``keep_ids``
        deactivates nothing, so a pass that resolved no pair cannot
        empty the catalog.

        Args:
            gateway_id: Gateway whose pairs are swept.
            keep_ids: Ids touched by the current pass.

        Returns:
            Count and ids of the rows switched off.
        """
        if not keep_ids:
            return DeactivationResult(count=0, ids=[])

        try:
            with self._engine.begin() as conn:
                stale_ids = list(
                    conn.execute(
                        select(trading_pairs.c.id).where(
                            (trading_pairs.c.gateway_id == gateway_id)
                            & trading_pairs.c.id.not_in(sorted(keep_ids))
                            & trading_pairs.c.is_active.is_(True)
                            & trading_pairs.c.admin_disabled.is_(False)
                        )
                    ).scalars()
                )
                if stale_ids:
                    conn.execute(
                        update(trading_pairs)
                        .where(trading_pairs.c.id.in_(stale_ids))
                        .values(is_active=False)
                    )
        except SQLAlchemyError as exc:
            raise StoreWriteError("deactivate_stale_pairs", str(exc)) from exc

        return DeactivationResult(count=len(stale_ids), ids=stale_ids)

    def get_sync_stats(self, gateway_id: int) -> CatalogStats:
        """Return pair counters for one gateway."""

        def _count(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        query = select(
            _count(trading_pairs.c.is_active.is_(True)).label("active_pairs"),
            _count(trading_pairs.c.is_active.is_(False)).label("inactive_pairs"),
            _count(trading_pairs.c.admin_disabled.is_(True)).label(
                "admin_disabled_pairs"
            ),
            func.max(trading_pairs.c.last_sync_at).label("last_sync_at"),
        ).where(trading_pairs.c.gateway_id == gateway_id)

        try:
            with self._engine.connect() as conn:
                row = conn.execute(query).one()
        except SQLAlchemyError as exc:
            raise StoreReadError("get_sync_stats", str(exc)) from exc

        return CatalogStats(
            active_pairs=int(row.active_pairs),
            inactive_pairs=int(row.inactive_pairs),
            admin_disabled_pairs=int(row.admin_disabled_pairs),
            last_sync_at=row.last_sync_at,
        )

    # ------------------------------------------------------------------
    # Operator overrides
    # ------------------------------------------------------------------

    def set_admin_override(
        self,
        entity: CatalogEntity,
        entity_id: int,
        admin_disabled: bool,
        is_active: Optional[bool] = None,
    ) -> None:
        """Apply a manual operator override to one catalog row.

        Args:
            entity: Which catalog table the row lives in.
            entity_id: Row id.
            admin_disabled: New value of the override flag.
            is_active: New activation state, or None to leave it.
        """
        table = _OVERRIDE_TABLES[entity]
        values: dict = {"admin_disabled": admin_disabled}
        if is_active is not None:
            values["is_active"] = is_active
        if "updated_at" in table.c:
            values["updated_at"] = utcnow()

        with self._engine.begin() as conn:
            result = conn.execute(
                update(table).where(table.c.id == entity_id).values(**values)
            )
            if result.rowcount == 0:
                raise CatalogEntryNotFoundError(entity.value, entity_id)

        logger.info(
            "Admin override on %s %d: admin_disabled=%s is_active=%s",
            entity.value,
            entity_id,
            admin_disabled,
            is_active,
        )

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def list_active_tokens(self) -> list[Token]:
        """Return active tokens ordered by symbol."""
        query = (
            select(tokens)
            .where(tokens.c.is_active.is_(True))
            .order_by(tokens.c.symbol.asc())
        )
        with self._engine.connect() as conn:
            return [_to_token(row) for row in conn.execute(query)]

    def list_active_gateways(self) -> list[Gateway]:
        """Return active gateways ordered by name."""
        query = (
            select(gateways)
            .where(gateways.c.is_active.is_(True))
            .order_by(gateways.c.name.asc())
        )
        with self._engine.connect() as conn:
            return [_to_gateway(row) for row in conn.execute(query)]

    def list_active_pairs(self) -> list[PairListing]:
        """Return active pairs whose tokens and gateway are also active."""
        token_from = tokens.alias("tf")
        token_to = tokens.alias("tt")
        query = (
            select(
                trading_pairs.c.id.label("pair_id"),
                token_from.c.id.label("token_from_id"),
                token_from.c.symbol.label("token_from_symbol"),
                token_to.c.id.label("token_to_id"),
                token_to.c.symbol.label("token_to_symbol"),
                gateways.c.id.label("gateway_id"),
                gateways.c.name.label("gateway_name"),
                gateways.c.slug.label("gateway_slug"),
                gateways.c.fee_percentage.label("gateway_fee"),
            )
            .select_from(
                trading_pairs.join(
                    token_from,
                    (trading_pairs.c.token_from_id == token_from.c.id)
                    & token_from.c.is_active.is_(True),
                )
                .join(
                    token_to,
                    (trading_pairs.c.token_to_id == token_to.c.id)
                    & token_to.c.is_active.is_(True),
                )
                .join(
                    gateways,
                    (trading_pairs.c.gateway_id == gateways.c.id)
                    & gateways.c.is_active.is_(True),
                )
            )
            .where(trading_pairs.c.is_active.is_(True))
            .order_by(token_from.c.symbol, token_to.c.symbol)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).fetchall()

        return [
            PairListing(
                pair_id=row.pair_id,
                token_from_id=row.token_from_id,
                token_from_symbol=row.token_from_symbol,
                token_to_id=row.token_to_id,
                token_to_symbol=row.token_to_symbol,
                gateway_id=row.gateway_id,
                gateway_name=row.gateway_name,
                gateway_slug=row.gateway_slug,
                gateway_fee=Decimal(str(row.gateway_fee)),
            )
            for row in rows
        ]

    def find_best_quote(
        self, token_from_symbol: str, token_to_symbol: str
    ) -> Optional[PairQuote]:
        """Return the cheapest active quote for one direction.

        Ranks by ``reserve0 / reserve1`` ascending. Pairs that are
        admin-disabled, inactive, on an inactive gateway or with an
        empty ``reserve1`` are ignored.
        """
        token_from = tokens.alias("tf")
        token_to = tokens.alias("tt")
        query = (
            select(
                trading_pairs.c.id,
                trading_pairs.c.reserve0,
                trading_pairs.c.reserve1,
                gateways.c.name.label("gateway_name"),
                gateways.c.fee_percentage,
                token_from.c.decimals.label("decimals_from"),
                token_to.c.decimals.label("decimals_to"),
            )
            .select_from(
                trading_pairs.join(
                    token_from, trading_pairs.c.token_from_id == token_from.c.id
                )
                .join(token_to, trading_pairs.c.token_to_id == token_to.c.id)
                .join(gateways, trading_pairs.c.gateway_id == gateways.c.id)
            )
            .where(
                (func.upper(token_from.c.symbol) == token_from_symbol.upper())
                & (func.upper(token_to.c.symbol) == token_to_symbol.upper())
                & trading_pairs.c.is_active.is_(True)
                & trading_pairs.c.admin_disabled.is_(False)
                & gateways.c.is_active.is_(True)
                & (trading_pairs.c.reserve1 > 0)
            )
            .order_by((trading_pairs.c.reserve0 / trading_pairs.c.reserve1).asc())
            .limit(1)
        )
        with self._engine.connect() as conn:
            row = conn.execute(query).first()

        if row is None:
            return None

        return PairQuote(
            pair_id=row.id,
            gateway_name=row.gateway_name,
            fee_percentage=Decimal(str(row.fee_percentage)),
            reserve0=Decimal(str(row.reserve0)),
            reserve1=Decimal(str(row.reserve1)),
            decimals_from=row.decimals_from,
            decimals_to=row.decimals_to,
        )
