"""
Adapter: Order and user repositories.

Implements the OrderRepository and UserRepository ports.
Persists wallet owners and recurring DCA orders with SQLAlchemy Core.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.domain.dca.entities import DCAOrder, Frequency, User
from app.domain.dca.errors import StoreWriteError
from app.domain.dca.ports import OrderRepository, UserRepository
from app.domain.dca.scheduling import utcnow
from app.infrastructure.persistence.tables import dca_orders, users

logger = logging.getLogger(__name__)


def _to_user(row: Row) -> User:
    return User(
        id=row.id,
        wallet_address=row.wallet_address,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_order(row: Row) -> DCAOrder:
    return DCAOrder(
        id=row.id,
        user_id=row.user_id,
        token_from=row.token_from,
        token_to=row.token_to,
        amount=Decimal(str(row.amount)),
        frequency=Frequency(row.frequency),
        next_execution=row.next_execution,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class UserRepositoryAdapter(UserRepository):
    """SQL implementation of the user repository."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def find_or_create(self, wallet_address: str) -> User:
        """Return the user for a wallet, creating it on first use.

        A repeat call only refreshes ``updated_at``.
        """
        now = utcnow()
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    update(users)
                    .where(users.c.wallet_address == wallet_address)
                    .values(updated_at=now)
                )
                if result.rowcount == 0:
                    conn.execute(
                        users.insert().values(
                            wallet_address=wallet_address,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                row = conn.execute(
                    select(users).where(users.c.wallet_address == wallet_address)
                ).one()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same wallet.
            found = self.find_by_wallet(wallet_address)
            if found is None:
                raise
            return found
        except SQLAlchemyError as exc:
            raise StoreWriteError("find_or_create_user", str(exc)) from exc

        return _to_user(row)

    def find_by_wallet(self, wallet_address: str) -> Optional[User]:
        """Return the user for a wallet, or None."""
        query = select(users).where(users.c.wallet_address == wallet_address)
        with self._engine.connect() as conn:
            row = conn.execute(query).first()
        return _to_user(row) if row is not None else None


class OrderRepositoryAdapter(OrderRepository):
    """SQL implementation of the DCA order repository.

    Implements the OrderRepository port defined in the domain layer.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def create(
        self,
        user_id: int,
        token_from: str,
        token_to: str,
        amount: Decimal,
        frequency: Frequency,
        next_execution: datetime,
    ) -> DCAOrder:
        """Persist a new active order.

        Args:
            user_id: Owning user.
            token_from: Symbol of the token spent.
            token_to: Symbol of the token bought.
            amount: Amount spent per execution.
            frequency: Execution cadence.
            next_execution: First due time.

        Returns:
            The stored order.
        """
        now = utcnow()
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    dca_orders.insert().values(
                        user_id=user_id,
                        token_from=token_from,
                        token_to=token_to,
                        amount=amount,
                        frequency=frequency.value,
                        next_execution=next_execution,
                        is_active=True,
                        created_at=now,
                        updated_at=now,
                    )
                )
                order_id = result.inserted_primary_key[0]
                row = conn.execute(
                    select(dca_orders).where(dca_orders.c.id == order_id)
                ).one()
        except SQLAlchemyError as exc:
            raise StoreWriteError("create_order", str(exc)) from exc

        return _to_order(row)

    def get_by_id(self, order_id: int) -> Optional[DCAOrder]:
        """Return an order by id, or None."""
        query = select(dca_orders).where(dca_orders.c.id == order_id)
        with self._engine.connect() as conn:
            row = conn.execute(query).first()
        return _to_order(row) if row is not None else None

    def list_by_user(self, user_id: int) -> list[DCAOrder]:
        """Return a user's orders, newest first."""
        query = (
            select(dca_orders)
            .where(dca_orders.c.user_id == user_id)
            .order_by(dca_orders.c.created_at.desc(), dca_orders.c.id.desc())
        )
        with self._engine.connect() as conn:
            return [_to_order(row) for row in conn.execute(query)]

    def get_due_orders(self, now: datetime, limit: int) -> list[DCAOrder]:
        """Return active orders due at ``now``, oldest due first.

        Args:
            now: Reference time; orders with next_execution <= now are due.
            limit: Batch size.
        """
        query = (
            select(dca_orders)
            .where(
                dca_orders.c.is_active.is_(True)
                & (dca_orders.c.next_execution <= now)
            )
            .order_by(dca_orders.c.next_execution.asc(), dca_orders.c.id.asc())
            .limit(limit)
        )
        with self._engine.connect() as conn:
            return [_to_order(row) for row in conn.execute(query)]

    def update_next_execution(
        self, order_id: int, next_execution: datetime
    ) -> None:
        """Move an order's next due time."""
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    update(dca_orders)
                    .where(dca_orders.c.id == order_id)
                    .values(next_execution=next_execution, updated_at=utcnow())
                )
        except SQLAlchemyError as exc:
            raise StoreWriteError("update_next_execution", str(exc)) from exc

    def deactivate(self, order_id: int) -> bool:
        """Switch an active order off for good.

        Only an active row is updated, so a cancelled order can never
        be cancelled (or reactivated) a second time.
        """
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    update(dca_orders)
                    .where(
                        (dca_orders.c.id == order_id)
                        & dca_orders.c.is_active.is_(True)
                    )
                    .values(is_active=False, updated_at=utcnow())
                )
        except SQLAlchemyError as exc:
            raise StoreWriteError("deactivate_order", str(exc)) from exc

        return result.rowcount == 1
