"""
Dependency injection for the DCA bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the DCA context.

The sync engine, the scheduler tick and the background jobs are
process-wide singletons: their single-flight guards only work if the
API and the timers share one instance.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.engine import Engine

from app.application.dca.cancel_order import CancelOrderUseCase
from app.application.dca.create_order import CreateOrderUseCase
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
from app.core.config import settings
from app.infrastructure.dca.catalog_repository import CatalogRepositoryAdapter
from app.infrastructure.dca.order_repository import (
    OrderRepositoryAdapter,
    UserRepositoryAdapter,
)
from app.infrastructure.dca.simulated_settlement import SimulatedSettlementAdapter
from app.infrastructure.dca.swopus_feed_client import SwopusFeedClient
from app.infrastructure.dca.transaction_repository import (
    TransactionRepositoryAdapter,
)
from app.infrastructure.persistence.database import get_engine
from app.infrastructure.scheduling.jobs import BackgroundJobs


def get_db_engine() -> Engine:
    """Return the shared SQLAlchemy engine."""
    return get_engine()


# ------------------------------------------------------------------
# Singletons
# ------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_sync_catalog_use_case() -> SyncCatalogUseCase:
    """Build the process-wide reconciliation engine."""
    return SyncCatalogUseCase(
        feed=SwopusFeedClient(
            base_url=settings.feed_base_url,
            timeout=settings.feed_timeout_seconds,
        ),
        catalog=CatalogRepositoryAdapter(engine=get_engine()),
        gateway_slug=settings.gateway_slug,
        min_reserve=settings.min_reserve,
    )


@lru_cache(maxsize=1)
def get_execute_due_orders_use_case() -> ExecuteDueOrdersUseCase:
    """Build the process-wide scheduler tick."""
    engine = get_engine()
    return ExecuteDueOrdersUseCase(
        orders=OrderRepositoryAdapter(engine=engine),
        transactions=TransactionRepositoryAdapter(engine=engine),
        settlement=SimulatedSettlementAdapter(),
        batch_size=settings.scheduler_batch_size,
    )


@lru_cache(maxsize=1)
def get_background_jobs() -> BackgroundJobs:
    """Build the timer owner around the two singletons above."""
    return BackgroundJobs(
        sync_catalog=get_sync_catalog_use_case(),
        execute_due_orders=get_execute_due_orders_use_case(),
        sync_interval_minutes=settings.sync_interval_minutes,
        tick_interval_minutes=settings.scheduler_interval_minutes,
        initial_delay_seconds=settings.sync_initial_delay_seconds,
    )


# ------------------------------------------------------------------
# Per-request use cases
# ------------------------------------------------------------------


def get_create_order_use_case(
    engine: Engine = Depends(get_db_engine),
) -> CreateOrderUseCase:
    """Build CreateOrderUseCase with its infrastructure dependencies."""
    return CreateOrderUseCase(
        users=UserRepositoryAdapter(engine=engine),
        orders=OrderRepositoryAdapter(engine=engine),
        min_amount=settings.min_order_amount,
        max_amount=settings.max_order_amount,
    )


def get_cancel_order_use_case(
    engine: Engine = Depends(get_db_engine),
) -> CancelOrderUseCase:
    """Build CancelOrderUseCase with its infrastructure dependencies."""
    return CancelOrderUseCase(
        orders=OrderRepositoryAdapter(engine=engine),
        transactions=TransactionRepositoryAdapter(engine=engine),
    )


def get_user_activity_use_case(
    engine: Engine = Depends(get_db_engine),
) -> GetUserActivityUseCase:
    """Build GetUserActivityUseCase with its infrastructure dependencies."""
    return GetUserActivityUseCase(
        users=UserRepositoryAdapter(engine=engine),
        orders=OrderRepositoryAdapter(engine=engine),
        transactions=TransactionRepositoryAdapter(engine=engine),
    )


def get_list_active_catalog_use_case(
    engine: Engine = Depends(get_db_engine),
) -> ListActiveCatalogUseCase:
    return ListActiveCatalogUseCase(catalog=CatalogRepositoryAdapter(engine=engine))


def get_best_price_use_case(
    engine: Engine = Depends(get_db_engine),
) -> GetBestPriceUseCase:
    return GetBestPriceUseCase(catalog=CatalogRepositoryAdapter(engine=engine))


def get_sync_stats_use_case(
    engine: Engine = Depends(get_db_engine),
) -> GetSyncStatsUseCase:
    return GetSyncStatsUseCase(
        catalog=CatalogRepositoryAdapter(engine=engine),
        gateway_slug=settings.gateway_slug,
    )


def get_register_gateway_use_case(
    engine: Engine = Depends(get_db_engine),
) -> RegisterGatewayUseCase:
    return RegisterGatewayUseCase(catalog=CatalogRepositoryAdapter(engine=engine))


def get_add_token_use_case(
    engine: Engine = Depends(get_db_engine),
) -> AddTokenUseCase:
    return AddTokenUseCase(catalog=CatalogRepositoryAdapter(engine=engine))


def get_add_trading_pair_use_case(
    engine: Engine = Depends(get_db_engine),
) -> AddTradingPairUseCase:
    return AddTradingPairUseCase(catalog=CatalogRepositoryAdapter(engine=engine))


def get_set_admin_override_use_case(
    engine: Engine = Depends(get_db_engine),
) -> SetAdminOverrideUseCase:
    return SetAdminOverrideUseCase(catalog=CatalogRepositoryAdapter(engine=engine))
