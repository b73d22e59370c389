"""
Use case: Summarize a wallet's orders and execution history.

Input:  wallet address, history limit
Output: UserActivity
Side effects: None (read-only).
"""

from app.application.dca.dtos import UserActivity
from app.domain.dca.errors import UserNotFoundError
from app.domain.dca.ports import (
    OrderRepository,
    TransactionRepository,
    UserRepository,
)


class GetUserActivityUseCase:
    def __init__(
        self,
        users: UserRepository,
        orders: OrderRepository,
        transactions: TransactionRepository,
    ) -> None:
        self._users = users
        self._orders = orders
        self._transactions = transactions

    def execute(self, wallet_address: str, limit: int = 50) -> UserActivity:
        """Return orders, recent transactions and totals for a wallet.

        Raises:
            UserNotFoundError: If the wallet never created an order.
        """
        user = self._users.find_by_wallet(wallet_address.strip())
        if user is None:
            raise UserNotFoundError(wallet_address)
        return UserActivity(
            user=user,
            orders=self._orders.list_by_user(user.id),
            recent_transactions=self._transactions.list_by_user(user.id, limit),
            stats=self._transactions.get_stats(user.id),
        )
