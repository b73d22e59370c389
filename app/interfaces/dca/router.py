"""
FastAPI routers for the DCA bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.application.dca.cancel_order import CancelOrderUseCase
from app.application.dca.create_order import CreateOrderUseCase
from app.application.dca.dtos import (
    AddTokenCommand,
    AddTradingPairCommand,
    AdminOverrideCommand,
    CancelOrderCommand,
    CreateOrderCommand,
    RegisterGatewayCommand,
)
from app.application.dca.execute_due_orders import ExecuteDueOrdersUseCase
from app.application.dca.get_best_price import GetBestPriceUseCase
from app.application.dca.get_user_activity import GetUserActivityUseCase
from app.application.dca.manage_catalog import (
    AddTokenUseCase,
    AddTradingPairUseCase,
    GetSyncStatsUseCase,
    ListActiveCatalogUseCase,
    RegisterGatewayUseCase,
    SetAdminOverrideUseCase,
)
from app.application.dca.sync_catalog import SyncCatalogUseCase
from app.domain.dca.entities import CatalogEntity
from app.infrastructure.scheduling.jobs import BackgroundJobs
from app.interfaces.dca.dependencies import (
    get_add_token_use_case,
    get_add_trading_pair_use_case,
    get_background_jobs,
    get_best_price_use_case,
    get_cancel_order_use_case,
    get_create_order_use_case,
    get_execute_due_orders_use_case,
    get_list_active_catalog_use_case,
    get_register_gateway_use_case,
    get_set_admin_override_use_case,
    get_sync_catalog_use_case,
    get_sync_stats_use_case,
    get_user_activity_use_case,
)
from app.interfaces.dca.schemas import (
    ActiveCatalogResponse,
    ActivityStatsResponse,
    AddTokenRequest,
    AddTradingPairRequest,
    AdminOverrideRequest,
    AdminOverrideResponse,
    AdminTokenResponse,
    BestPriceResponse,
    CancelOrderRequest,
    CancelOrderResponse,
    CreateOrderRequest,
    ErrorResponse,
    GatewayResponse,
    JobsStatusResponse,
    OrderResponse,
    PairListingResponse,
    RegisterGatewayRequest,
    SyncResultResponse,
    SyncStatsResponse,
    TickResultResponse,
    TokenResponse,
    TradingPairResponse,
    TransactionResponse,
    UserActivityResponse,
)
from app.shared.security.admin_key import require_admin_key
from app.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

router = APIRouter(prefix="/dca", tags=["dca"])
admin_router = APIRouter(
    prefix="/dca/admin",
    tags=["dca-admin"],
    dependencies=[Depends(require_admin_key)],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


@router.post(
    "/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
    summary="Create a DCA order",
)
def create_order(
    request: CreateOrderRequest,
    use_case: CreateOrderUseCase = Depends(get_create_order_use_case),
) -> OrderResponse:
    """Create a recurring order; the wallet is registered on first use."""
    order = use_case.execute(
        CreateOrderCommand(
            wallet_address=request.wallet_address,
            token_from=request.token_from,
            token_to=request.token_to,
            amount=request.amount,
            frequency=request.frequency,
        )
    )
    return OrderResponse.model_validate(order)


@router.get(
    "/users/{wallet_address}/activity",
    response_model=UserActivityResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Orders and execution history of a wallet",
)
def get_user_activity(
    wallet_address: str,
    limit: int = Query(default=50, ge=1, le=500),
    use_case: GetUserActivityUseCase = Depends(get_user_activity_use_case),
) -> UserActivityResponse:
    activity = use_case.execute(wallet_address, limit=limit)
    return UserActivityResponse(
        wallet_address=activity.user.wallet_address,
        orders=[OrderResponse.model_validate(o) for o in activity.orders],
        recent_transactions=[
            TransactionResponse.model_validate(t)
            for t in activity.recent_transactions
        ],
        stats=ActivityStatsResponse(
            total=activity.stats.total,
            completed=activity.stats.completed,
            failed=activity.stats.failed,
            completed_volume=activity.stats.completed_volume,
            completed_gas=activity.stats.completed_gas,
        ),
    )


@router.delete(
    "/orders/{order_id}",
    response_model=CancelOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Cancel a DCA order",
)
def cancel_order(
    order_id: int,
    body: Optional[CancelOrderRequest] = None,
    use_case: CancelOrderUseCase = Depends(get_cancel_order_use_case),
) -> CancelOrderResponse:
    """Cancel an active order. Cancellation cannot be undone."""
    body = body or CancelOrderRequest()
    result = use_case.execute(
        CancelOrderCommand(
            order_id=order_id,
            fee=body.fee_amount,
            refund_amount=body.refund_amount,
        )
    )
    return CancelOrderResponse(
        order=OrderResponse.model_validate(result.order),
        transaction=TransactionResponse.model_validate(result.transaction),
        fee=result.fee,
        refund_amount=result.refund_amount,
    )


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


@router.get(
    "/catalog/active",
    response_model=ActiveCatalogResponse,
    summary="Tradable tokens, gateways and pairs",
)
def list_active_catalog(
    use_case: ListActiveCatalogUseCase = Depends(get_list_active_catalog_use_case),
) -> ActiveCatalogResponse:
    catalog = use_case.execute()
    return ActiveCatalogResponse(
        tokens=[TokenResponse.model_validate(t) for t in catalog.tokens],
        gateways=[GatewayResponse.model_validate(g) for g in catalog.gateways],
        pairs=[PairListingResponse.model_validate(p) for p in catalog.pairs],
    )


@router.get(
    "/catalog/best-price",
    response_model=BestPriceResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Cheapest active quote for a direction",
)
def get_best_price(
    token_from: str = Query(..., min_length=1, max_length=20),
    token_to: str = Query(..., min_length=1, max_length=20),
    use_case: GetBestPriceUseCase = Depends(get_best_price_use_case),
) -> BestPriceResponse:
    return BestPriceResponse.model_validate(use_case.execute(token_from, token_to))


# ------------------------------------------------------------------
# Admin
# ------------------------------------------------------------------


@admin_router.post(
    "/sync",
    response_model=SyncResultResponse,
    summary="Run a catalog reconciliation pass now",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def run_sync(
    request: Request,
    use_case: SyncCatalogUseCase = Depends(get_sync_catalog_use_case),
) -> SyncResultResponse:
    """Run one pass and return its summary. Returns a skip if one is running."""
    return SyncResultResponse.model_validate(use_case.execute())


@admin_router.get(
    "/sync/stats",
    response_model=SyncStatsResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Pair counters for the synced gateway",
)
def get_sync_stats(
    use_case: GetSyncStatsUseCase = Depends(get_sync_stats_use_case),
) -> SyncStatsResponse:
    return SyncStatsResponse.model_validate(use_case.execute())


@admin_router.post(
    "/scheduler/tick",
    response_model=TickResultResponse,
    summary="Execute due orders now",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def run_scheduler_tick(
    request: Request,
    use_case: ExecuteDueOrdersUseCase = Depends(get_execute_due_orders_use_case),
) -> TickResultResponse:
    return TickResultResponse.model_validate(use_case.execute())


@admin_router.get(
    "/jobs",
    response_model=JobsStatusResponse,
    summary="Background job status and recent runs",
)
def get_jobs_status(
    jobs: BackgroundJobs = Depends(get_background_jobs),
) -> JobsStatusResponse:
    return JobsStatusResponse(**jobs.get_status())


@admin_router.post(
    "/gateways",
    response_model=GatewayResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a liquidity gateway",
)
def register_gateway(
    request: RegisterGatewayRequest,
    use_case: RegisterGatewayUseCase = Depends(get_register_gateway_use_case),
) -> GatewayResponse:
    gateway = use_case.execute(
        RegisterGatewayCommand(
            name=request.name,
            slug=request.slug,
            fee_percentage=request.fee_percentage,
        )
    )
    return GatewayResponse.model_validate(gateway)


@admin_router.patch(
    "/{entity}/{entity_id}/override",
    response_model=AdminOverrideResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Pin a token, gateway or pair on or off",
)
def set_admin_override(
    entity: CatalogEntity,
    entity_id: int,
    request: AdminOverrideRequest,
    use_case: SetAdminOverrideUseCase = Depends(get_set_admin_override_use_case),
) -> AdminOverrideResponse:
    """Apply a manual override that later sync passes will respect."""
    is_active = use_case.execute(
        AdminOverrideCommand(
            entity=entity,
            entity_id=entity_id,
            admin_disabled=request.admin_disabled,
            is_active=request.is_active,
        )
    )
    return AdminOverrideResponse(
        entity=entity.value,
        entity_id=entity_id,
        admin_disabled=request.admin_disabled,
        is_active=is_active,
    )


@admin_router.post(
    "/tokens",
    response_model=AdminTokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Create a token by hand",
)
def add_token(
    request: AddTokenRequest,
    use_case: AddTokenUseCase = Depends(get_add_token_use_case),
) -> AdminTokenResponse:
    token = use_case.execute(
        AddTokenCommand(
            symbol=request.symbol,
            name=request.name,
            contract_address=request.contract_address,
            decimals=request.decimals,
            logo_url=request.logo_url,
            is_active=request.is_active,
        )
    )
    return AdminTokenResponse.model_validate(token)


@admin_router.post(
    "/pairs",
    response_model=TradingPairResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Create one directed trading pair by hand",
)
def add_trading_pair(
    request: AddTradingPairRequest,
    use_case: AddTradingPairUseCase = Depends(get_add_trading_pair_use_case),
) -> TradingPairResponse:
    """Create a pair with empty reserves.

    Unless it is also admin-disabled, the next sync pass deactivates a
    pair the gateway's feed does not list.
    """
    pair = use_case.execute(
        AddTradingPairCommand(
            token_from_id=request.token_from_id,
            token_to_id=request.token_to_id,
            gateway_id=request.gateway_id,
            is_active=request.is_active,
        )
    )
    return TradingPairResponse.model_validate(pair)
