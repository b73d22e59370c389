"""
Use case: Create a recurring DCA order.

Input:  CreateOrderCommand
Output: DCAOrder (active, first run one frequency unit from now)
Side effects: Creates the user on first use, inserts the order.
"""

import logging
from decimal import Decimal

from app.application.dca.dtos import CreateOrderCommand
from app.domain.dca.entities import DCAOrder
from app.domain.dca.errors import InvalidOrderError
from app.domain.dca.ports import OrderRepository, UserRepository
from app.domain.dca.scheduling import next_execution_after, utcnow

logger = logging.getLogger(__name__)


class CreateOrderUseCase:
    """Validates and stores a new order.

    Args:
        users: User repository (wallet owners are created on demand).
        orders: Order repository.
        min_amount: Smallest amount accepted per execution.
        max_amount: Largest amount accepted per execution.
    """

    def __init__(
        self,
        users: UserRepository,
        orders: OrderRepository,
        min_amount: Decimal,
        max_amount: Decimal,
    ) -> None:
        self._users = users
        self._orders = orders
        self._min_amount = min_amount
        self._max_amount = max_amount

    def execute(self, command: CreateOrderCommand) -> DCAOrder:
        """Create the order.

        Raises:
            InvalidOrderError: On an empty wallet or symbol, identical
                tokens, or an amount outside the configured bounds.
        """
        wallet = command.wallet_address.strip()
        token_from = command.token_from.strip().upper()
        token_to = command.token_to.strip().upper()

        if not wallet:
            raise InvalidOrderError("wallet_address is required")
        if not token_from or not token_to:
            raise InvalidOrderError("token_from and token_to are required")
        if token_from == token_to:
            raise InvalidOrderError("token_from and token_to must differ")
        if not (self._min_amount <= command.amount <= self._max_amount):
            raise InvalidOrderError(
                f"amount must be between {self._min_amount} and {self._max_amount}"
            )

        user = self._users.find_or_create(wallet)
        order = self._orders.create(
            user_id=user.id,
            token_from=token_from,
            token_to=token_to,
            amount=command.amount,
            frequency=command.frequency,
            next_execution=next_execution_after(command.frequency, utcnow()),
        )
        logger.info(
            "Created %s order %d for user %d: %s %s -> %s",
            order.frequency.value,
            order.id,
            user.id,
            order.amount,
            token_from,
            token_to,
        )
        return order
