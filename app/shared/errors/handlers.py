"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.dca.errors import (
    CatalogEntryNotFoundError,
    DcaDomainError,
    DuplicateCatalogEntryError,
    DuplicateGatewayError,
    GatewayNotFoundError,
    InvalidCatalogEntryError,
    InvalidOrderError,
    OrderNotActiveError,
    OrderNotFoundError,
    PairNotListedError,
    StoreReadError,
    StoreWriteError,
    UserNotFoundError,
)
from app.shared.security.admin_key import AdminAccessError

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(AdminAccessError)
    async def handle_admin_access(
        _request: Request, exc: AdminAccessError
    ) -> JSONResponse:
        return _error_response(exc.status_code, exc.error, exc.detail)

    @app.exception_handler(OrderNotFoundError)
    async def handle_order_not_found(
        _request: Request, exc: OrderNotFoundError
    ) -> JSONResponse:
        logger.warning("Order not found: %d", exc.order_id)
        return _error_response(HTTP_404, "Order not found")

    @app.exception_handler(UserNotFoundError)
    async def handle_user_not_found(
        _request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return _error_response(HTTP_404, "User not found")

    @app.exception_handler(CatalogEntryNotFoundError)
    async def handle_catalog_entry_not_found(
        _request: Request, exc: CatalogEntryNotFoundError
    ) -> JSONResponse:
        logger.warning("Catalog entry not found: %s %d", exc.entity, exc.entity_id)
        return _error_response(HTTP_404, "Catalog entry not found", exc.message)

    @app.exception_handler(GatewayNotFoundError)
    async def handle_gateway_not_found(
        _request: Request, exc: GatewayNotFoundError
    ) -> JSONResponse:
        logger.warning("Gateway not found: %s", exc.slug)
        return _error_response(HTTP_404, "Gateway not found", exc.message)

    @app.exception_handler(PairNotListedError)
    async def handle_pair_not_listed(
        _request: Request, exc: PairNotListedError
    ) -> JSONResponse:
        return _error_response(HTTP_404, "Pair not listed", exc.message)

    @app.exception_handler(InvalidOrderError)
    async def handle_invalid_order(
        _request: Request, exc: InvalidOrderError
    ) -> JSONResponse:
        logger.warning("Invalid order: %s", exc.reason)
        return _error_response(HTTP_422, "Invalid order", exc.reason)

    @app.exception_handler(OrderNotActiveError)
    async def handle_order_not_active(
        _request: Request, exc: OrderNotActiveError
    ) -> JSONResponse:
        logger.warning("Order not active: %d", exc.order_id)
        return _error_response(HTTP_409, "Order is not active", exc.message)

    @app.exception_handler(DuplicateGatewayError)
    async def handle_duplicate_gateway(
        _request: Request, exc: DuplicateGatewayError
    ) -> JSONResponse:
        return _error_response(HTTP_409, "Gateway already exists", exc.message)

    @app.exception_handler(DuplicateCatalogEntryError)
    async def handle_duplicate_catalog_entry(
        _request: Request, exc: DuplicateCatalogEntryError
    ) -> JSONResponse:
        return _error_response(HTTP_409, "Catalog entry already exists", exc.message)

    @app.exception_handler(InvalidCatalogEntryError)
    async def handle_invalid_catalog_entry(
        _request: Request, exc: InvalidCatalogEntryError
    ) -> JSONResponse:
        return _error_response(HTTP_422, "Invalid catalog entry", exc.reason)

    @app.exception_handler(StoreWriteError)
    async def handle_store_write(
        _request: Request, exc: StoreWriteError
    ) -> JSONResponse:
        logger.error("Store write failed during %s: %s", exc.operation, exc.reason)
        return _error_response(HTTP_503, "Storage unavailable")

    @app.exception_handler(StoreReadError)
    async def handle_store_read(
        _request: Request, exc: StoreReadError
    ) -> JSONResponse:
        logger.error("Store read failed during %s: %s", exc.operation, exc.reason)
        return _error_response(HTTP_503, "Storage unavailable")

    @app.exception_handler(DcaDomainError)
    async def handle_dca_domain(
        _request: Request, exc: DcaDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled DCA domain errors."""
        logger.error("Unhandled DCA domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
