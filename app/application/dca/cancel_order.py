"""
Use case: Cancel a DCA order.

Cancellation is terminal. The order is switched off and one
``cancelled`` record is appended carrying the fee and refund figures
supplied by the caller. Fee policy is not computed here.

Input:  CancelOrderCommand
Output: CancelOrderResult
Side effects: Deactivates the order, appends one transaction.
"""

import logging

from app.application.dca.dtos import CancelOrderCommand, CancelOrderResult
from app.domain.dca.entities import NewTransaction, TransactionStatus
from app.domain.dca.errors import OrderNotActiveError, OrderNotFoundError
from app.domain.dca.ports import OrderRepository, TransactionRepository

logger = logging.getLogger(__name__)


class CancelOrderUseCase:
    def __init__(
        self, orders: OrderRepository, transactions: TransactionRepository
    ) -> None:
        self._orders = orders
        self._transactions = transactions

    def execute(self, command: CancelOrderCommand) -> CancelOrderResult:
        """Cancel the order.

        Raises:
            OrderNotFoundError: If the order does not exist.
            OrderNotActiveError: If it was already cancelled.
        """
        order = self._orders.get_by_id(command.order_id)
        if order is None:
            raise OrderNotFoundError(command.order_id)
        # Conditional update: a concurrent cancel loses here.
        if not order.is_active or not self._orders.deactivate(order.id):
            raise OrderNotActiveError(order.id)

        refund = (
            command.refund_amount
            if command.refund_amount is not None
            else order.amount
        )
        record = self._transactions.append(
            NewTransaction(
                order_id=order.id,
                user_id=order.user_id,
                amount=order.amount,
                token_from=order.token_from,
                token_to=order.token_to,
                status=TransactionStatus.CANCELLED,
                error_message=(
                    f"Cancelled by user. Fee: {command.fee} {order.token_from}. "
                    f"Refund: {refund} {order.token_from}"
                ),
            )
        )
        logger.info(
            "Order %d cancelled (fee=%s, refund=%s)", order.id, command.fee, refund
        )
        return CancelOrderResult(
            order=self._orders.get_by_id(order.id) or order,
            transaction=record,
            fee=command.fee,
            refund_amount=refund,
        )
