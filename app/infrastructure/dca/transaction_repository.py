"""
Adapter: Transaction repository.

Implements TransactionRepository port.
Append-only audit trail of execution attempts and cancellations.
Rows are inserted, never updated or deleted.
"""

import logging
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from app.domain.dca.entities import (
    NewTransaction,
    Transaction,
    TransactionStats,
    TransactionStatus,
)
from app.domain.dca.errors import StoreWriteError
from app.domain.dca.ports import TransactionRepository
from app.domain.dca.scheduling import utcnow
from app.infrastructure.persistence.tables import transactions

logger = logging.getLogger(__name__)


def _to_transaction(row: Row) -> Transaction:
    return Transaction(
        id=row.id,
        order_id=row.dca_order_id,
        user_id=row.user_id,
        tx_hash=row.tx_hash,
        amount=Decimal(str(row.amount)),
        token_from=row.token_from,
        token_to=row.token_to,
        status=TransactionStatus(row.status),
        gas_used=Decimal(str(row.gas_used)) if row.gas_used is not None else None,
        error_message=row.error_message,
        executed_at=row.executed_at,
    )


class TransactionRepositoryAdapter(TransactionRepository):
    """SQL implementation of the execution audit trail."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def append(self, record: NewTransaction) -> Transaction:
        """Append one record.

        Args:
            record: The execution outcome to persist.

        Returns:
            The stored record with its id and timestamp.
        """
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    transactions.insert().values(
                        dca_order_id=record.order_id,
                        user_id=record.user_id,
                        tx_hash=record.tx_hash,
                        amount=record.amount,
                        token_from=record.token_from,
                        token_to=record.token_to,
                        status=record.status.value,
                        gas_used=record.gas_used,
                        error_message=record.error_message,
                        executed_at=utcnow(),
                    )
                )
                tx_id = result.inserted_primary_key[0]
                row = conn.execute(
                    select(transactions).where(transactions.c.id == tx_id)
                ).one()
        except SQLAlchemyError as exc:
            raise StoreWriteError("append_transaction", str(exc)) from exc

        return _to_transaction(row)

    def list_by_order(self, order_id: int) -> list[Transaction]:
        """Return an order's records in append order."""
        query = (
            select(transactions)
            .where(transactions.c.dca_order_id == order_id)
            .order_by(transactions.c.id.asc())
        )
        with self._engine.connect() as conn:
            return [_to_transaction(row) for row in conn.execute(query)]

    def list_by_user(self, user_id: int, limit: int = 50) -> list[Transaction]:
        """Return a user's most recent records, newest first."""
        query = (
            select(transactions)
            .where(transactions.c.user_id == user_id)
            .order_by(transactions.c.executed_at.desc(), transactions.c.id.desc())
            .limit(limit)
        )
        with self._engine.connect() as conn:
            return [_to_transaction(row) for row in conn.execute(query)]

    def get_stats(self, user_id: int) -> TransactionStats:
        """Return aggregate execution figures for a user."""
        completed = transactions.c.status == TransactionStatus.COMPLETED.value
        failed = transactions.c.status == TransactionStatus.FAILED.value
        query = select(
            func.count(transactions.c.id).label("total"),
            func.coalesce(func.sum(case((completed, 1), else_=0)), 0).label(
                "completed"
            ),
            func.coalesce(func.sum(case((failed, 1), else_=0)), 0).label("failed"),
            func.coalesce(
                func.sum(case((completed, transactions.c.amount), else_=0)), 0
            ).label("completed_volume"),
            func.coalesce(
                func.sum(case((completed, transactions.c.gas_used), else_=0)), 0
            ).label("completed_gas"),
        ).where(transactions.c.user_id == user_id)

        with self._engine.connect() as conn:
            row = conn.execute(query).one()

        return TransactionStats(
            total=int(row.total),
            completed=int(row.completed),
            failed=int(row.failed),
            completed_volume=Decimal(str(row.completed_volume)),
            completed_gas=Decimal(str(row.completed_gas)),
        )
