"""
Use case: Execute due DCA orders (one scheduler tick).

Fetches a bounded batch of active orders whose next_execution has
passed, executes each one through the settlement port and appends
exactly one audit record per attempt. A failing order never stops the
rest of the batch.

Input:  none (batch size is constructor config)
Output: TickResult
Side effects: Appends transactions, advances next_execution.
"""

import logging
import threading
import time

from app.application.dca.dtos import TickResult
from app.domain.dca.entities import DCAOrder, NewTransaction, TransactionStatus
from app.domain.dca.errors import StoreWriteError
from app.domain.dca.ports import (
    OrderRepository,
    SettlementPort,
    TransactionRepository,
)
from app.domain.dca.scheduling import next_execution_after, utcnow

logger = logging.getLogger(__name__)


class ExecuteDueOrdersUseCase:
    """Processes due orders sequentially, one tick at a time.

    Overlapping ticks are coalesced: a tick started while another is
    running returns ``TickResult(skipped=True)`` without touching the
    store.
    """

    def __init__(
        self,
        orders: OrderRepository,
        transactions: TransactionRepository,
        settlement: SettlementPort,
        batch_size: int = 10,
    ) -> None:
        self._orders = orders
        self._transactions = transactions
        self._settlement = settlement
        self._batch_size = batch_size
        self._lock = threading.Lock()

    def execute(self) -> TickResult:
        if not self._lock.acquire(blocking=False):
            logger.info("Scheduler tick already running, skipping")
            return TickResult(skipped=True)
        try:
            return self._tick()
        finally:
            self._lock.release()

    def _tick(self) -> TickResult:
        started = time.monotonic()
        due = self._orders.get_due_orders(utcnow(), self._batch_size)
        if due:
            logger.info("Scheduler found %d due orders", len(due))

        completed = failed = errors = 0
        for order in due:
            status = self._process(order)
            if status is TransactionStatus.COMPLETED:
                completed += 1
            elif status is TransactionStatus.FAILED:
                failed += 1
            else:
                errors += 1

        return TickResult(
            orders_found=len(due),
            completed=completed,
            failed=failed,
            errors=errors,
            elapsed_seconds=time.monotonic() - started,
        )

    def _process(self, order: DCAOrder):
        """Execute one order and record the attempt.

        Returns:
            The recorded status, or None if the outcome could not be
            persisted.
        """
        try:
            receipt = self._settlement.execute(order)
        except Exception as exc:
            logger.warning("Order %d execution failed: %s", order.id, exc)
            record = NewTransaction(
                order_id=order.id,
                user_id=order.user_id,
                amount=order.amount,
                token_from=order.token_from,
                token_to=order.token_to,
                status=TransactionStatus.FAILED,
                error_message=str(exc) or exc.__class__.__name__,
            )
        else:
            record = NewTransaction(
                order_id=order.id,
                user_id=order.user_id,
                amount=order.amount,
                token_from=order.token_from,
                token_to=order.token_to,
                status=TransactionStatus.COMPLETED,
                tx_hash=receipt.tx_hash,
                gas_used=receipt.gas_used,
            )

        try:
            self._transactions.append(record)
            self._orders.update_next_execution(
                order.id, next_execution_after(order.frequency, utcnow())
            )
        except StoreWriteError:
            logger.exception("Could not record execution of order %d", order.id)
            return None

        if record.status is TransactionStatus.COMPLETED:
            logger.info("Order %d executed: %s", order.id, record.tx_hash)
        return record.status
