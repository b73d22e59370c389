"""
Shared fixtures for the DCA test suite.

Persistence runs against a real SQLAlchemy engine on in-memory SQLite.
The liquidity feed runs through the real client over httpx.MockTransport.
"""

from decimal import Decimal
from typing import Callable, Iterable, Optional

import httpx
import pytest

from app.domain.dca.entities import Gateway
from app.infrastructure.dca.catalog_repository import CatalogRepositoryAdapter
from app.infrastructure.dca.order_repository import (
    OrderRepositoryAdapter,
    UserRepositoryAdapter,
)
from app.infrastructure.dca.swopus_feed_client import SwopusFeedClient
from app.infrastructure.dca.transaction_repository import (
    TransactionRepositoryAdapter,
)
from app.infrastructure.persistence.database import create_db_engine, ensure_schema

FEED_URL = "https://feed.test"

FeedPairRow = tuple[str, str, str, object, object]


def feed_payload(
    pairs: Iterable[FeedPairRow],
    extra_tokens: Optional[dict] = None,
) -> dict:
    """Build a /pairs body from (token0, token1, pair_id, reserve0, reserve1)."""
    tokens: dict = {}
    body_pairs = []
    for token0, token1, pair_id, reserve0, reserve1 in pairs:
        for external_id in (token0, token1):
            tokens.setdefault(
                external_id,
                {"precision": 6, "logoUrlProxy": f"/token-logos/{external_id}"},
            )
        body_pairs.append(
            {
                "token0_id": token0,
                "token1_id": token1,
                "pair_id": pair_id,
                "reserve0": reserve0,
                "reserve1": reserve1,
            }
        )
    tokens.update(extra_tokens or {})
    return {"tokens": tokens, "pairs": body_pairs}


def make_feed(
    source: Callable[[], dict] | dict,
    status_code: int = 200,
) -> SwopusFeedClient:
    """Return a feed client answering from ``source`` on every fetch."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = source() if callable(source) else source
        return httpx.Response(status_code, json=body)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SwopusFeedClient(base_url=FEED_URL, client=client)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite:///:memory:")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def catalog(engine) -> CatalogRepositoryAdapter:
    return CatalogRepositoryAdapter(engine=engine)


@pytest.fixture
def users(engine) -> UserRepositoryAdapter:
    return UserRepositoryAdapter(engine=engine)


@pytest.fixture
def orders(engine) -> OrderRepositoryAdapter:
    return OrderRepositoryAdapter(engine=engine)


@pytest.fixture
def transactions(engine) -> TransactionRepositoryAdapter:
    return TransactionRepositoryAdapter(engine=engine)


@pytest.fixture
def gateway(catalog) -> Gateway:
    return catalog.add_gateway("Swopus", "swopus", Decimal("0.3"))
