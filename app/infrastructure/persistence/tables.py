"""
Relational schema for the DCA service.

Tables:
    - ``users``            wallet owners
    - ``dca_orders``       recurring orders
    - ``transactions``     append-only execution audit trail
    - ``tokens``           catalog tokens (admin override aware)
    - ``gateways``         liquidity sources (admin override aware)
    - ``trading_pairs``    directed pairs, one row per (from, to, gateway)

Works on PostgreSQL in production and SQLite in tests.
All timestamps are naive UTC.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

AMOUNT = Numeric(18, 8)
RESERVE = Numeric(78, 18)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("wallet_address", String(255), nullable=False, unique=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

dca_orders = Table(
    "dca_orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("token_from", String(20), nullable=False),
    Column("token_to", String(20), nullable=False),
    Column("amount", AMOUNT, nullable=False),
    Column("frequency", String(20), nullable=False),
    Column("next_execution", DateTime, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    CheckConstraint("amount > 0", name="ck_dca_orders_amount_positive"),
    CheckConstraint(
        "frequency IN ('hourly', 'daily', 'weekly', 'monthly')",
        name="ck_dca_orders_frequency",
    ),
    Index("ix_dca_orders_due", "is_active", "next_execution"),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "dca_order_id",
        Integer,
        ForeignKey("dca_orders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    ),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("tx_hash", String(255), nullable=True, unique=True),
    Column("amount", AMOUNT, nullable=False),
    Column("token_from", String(20), nullable=False),
    Column("token_to", String(20), nullable=False),
    Column("status", String(20), nullable=False),
    Column("gas_used", AMOUNT, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("executed_at", DateTime, nullable=False),
    CheckConstraint(
        "status IN ('pending', 'completed', 'failed', 'cancelled')",
        name="ck_transactions_status",
    ),
    Index("ix_transactions_executed_at", "executed_at"),
)

tokens = Table(
    "tokens",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("symbol", String(20), nullable=False, unique=True),
    Column("name", String(100), nullable=False),
    Column("contract_address", String(255), nullable=False, unique=True),
    Column("decimals", Integer, nullable=False, default=6),
    Column("logo_url", String(500), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("admin_disabled", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

gateways = Table(
    "gateways",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("slug", String(50), nullable=False, unique=True),
    Column("fee_percentage", Numeric(6, 3), nullable=False, default=0.3),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("admin_disabled", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
)

trading_pairs = Table(
    "trading_pairs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token_from_id", Integer, ForeignKey("tokens.id"), nullable=False),
    Column("token_to_id", Integer, ForeignKey("tokens.id"), nullable=False),
    Column("gateway_id", Integer, ForeignKey("gateways.id"), nullable=False),
    Column("pair_id_external", String(100), nullable=True),
    Column("reserve0", RESERVE, nullable=False, default=0),
    Column("reserve1", RESERVE, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("admin_disabled", Boolean, nullable=False, default=False),
    Column("last_sync_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False),
    # Load-bearing for the ON CONFLICT clause of the pair upsert.
    UniqueConstraint(
        "token_from_id",
        "token_to_id",
        "gateway_id",
        name="uq_trading_pairs_direction",
    ),
    Index("ix_trading_pairs_gateway_active", "gateway_id", "is_active"),
)
