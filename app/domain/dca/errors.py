"""
Domain-specific errors for the DCA bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional


class DcaDomainError(Exception):
    """Base error for all DCA domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class FeedUnavailableError(DcaDomainError):
    """Raised when the liquidity feed cannot be fetched or decoded.

    Fatal to the reconciliation pass that triggered the fetch.
    """

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Liquidity feed unavailable: {reason}")
        self.reason = reason
        self.status_code = status_code


class GatewayNotFoundError(DcaDomainError):
    """Raised when the configured gateway slug has no catalog row."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Gateway not found: {slug}")
        self.slug = slug


class StoreWriteError(DcaDomainError):
    """Raised when a single-row write to the store fails.

    Recoverable: engines count it and continue with the next row.
    """

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Store write failed during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class ExecutionFailedError(DcaDomainError):
    """Raised by the settlement backend when an order cannot be executed."""

    def __init__(self, order_id: int, reason: str) -> None:
        super().__init__(f"Execution of order {order_id} failed: {reason}")
        self.order_id = order_id
        self.reason = reason


class OrderNotFoundError(DcaDomainError):
    """Raised when a DCA order cannot be found."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class OrderNotActiveError(DcaDomainError):
    """Raised when cancelling an order that is already cancelled."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order is not active: {order_id}")
        self.order_id = order_id


class InvalidOrderError(DcaDomainError):
    """Raised when order parameters are rejected."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid order: {reason}")
        self.reason = reason


class UserNotFoundError(DcaDomainError):
    """Raised when no user is registered for a wallet address."""

    def __init__(self, wallet_address: str) -> None:
        super().__init__(f"User not found: {wallet_address}")
        self.wallet_address = wallet_address


class CatalogEntryNotFoundError(DcaDomainError):
    """Raised when an operator action targets an unknown catalog row."""

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class PairNotListedError(DcaDomainError):
    """Raised when no active pair exists for the requested direction."""

    def __init__(self, token_from: str, token_to: str) -> None:
        super().__init__(f"No active pair for {token_from} -> {token_to}")
        self.token_from = token_from
        self.token_to = token_to


class DuplicateGatewayError(DcaDomainError):
    """Raised when registering a gateway whose slug is already taken."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Gateway already exists: {slug}")
        self.slug = slug


class StoreReadError(DcaDomainError):
    """Raised when a store lookup fails.

    Inside a sync pass a failed lookup for one token only drops that
    token; a failed gateway or stats lookup ends the pass.
    """

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Store read failed during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class DuplicateCatalogEntryError(DcaDomainError):
    """Raised when creating a token or pair that already exists."""

    def __init__(self, entity: str, key: str) -> None:
        super().__init__(f"{entity.capitalize()} already exists: {key}")
        self.entity = entity
        self.key = key


class InvalidCatalogEntryError(DcaDomainError):
    """Raised when an operator-created catalog row is rejected."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid catalog entry: {reason}")
        self.reason = reason
