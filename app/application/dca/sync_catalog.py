"""
Use case: Reconcile the local catalog against the liquidity feed.

One pass fetches the feed for a single gateway, upserts every token and
both directions of every liquid pair, then deactivates the gateway's
pairs the feed no longer reports. Rows an operator has admin-disabled
never change activation state.

Each write commits on its own. A pass interrupted half way leaves the
committed rows in place and the next pass redoes the rest.

Input:  none (gateway slug and reserve threshold are constructor config)
Output: SyncResult
Side effects: Upserts tokens and trading_pairs, deactivates stale pairs.
"""

import logging
import threading
import time
from decimal import Decimal
from enum import Enum
from typing import Optional

from app.application.dca.dtos import SyncResult
from app.domain.dca.entities import LiquidPair, PairUpsert, TokenInfo, TokenUpsert
from app.domain.dca.errors import (
    FeedUnavailableError,
    StoreReadError,
    StoreWriteError,
)
from app.domain.dca.ports import CatalogRepository, LiquidityFeedPort

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 6


class SyncState(Enum):
    """Lifecycle of the reconciliation engine."""

    IDLE = "idle"
    RUNNING = "running"


class SyncCatalogUseCase:
    """Runs reconciliation passes, one at a time.

    A call made while a pass is in progress returns immediately with
    ``skipped=True, reason="already_running"``. Concurrent triggers
    are coalesced, never queued.
    """

    def __init__(
        self,
        feed: LiquidityFeedPort,
        catalog: CatalogRepository,
        gateway_slug: str,
        min_reserve: Decimal,
    ) -> None:
        self._feed = feed
        self._catalog = catalog
        self._gateway_slug = gateway_slug
        self._min_reserve = min_reserve
        self._lock = threading.Lock()
        self._state = SyncState.IDLE
        self._last_result: Optional[SyncResult] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_result(self) -> Optional[SyncResult]:
        return self._last_result

    def execute(self) -> SyncResult:
        """Run one reconciliation pass unless one is already running.

        Returns:
            SyncResult describing the pass. Fatal problems (missing
            gateway, feed down, store failure on a gateway lookup or
            while wrapping up, anything unexpected) come back as
            ``success=False`` rather than as exceptions.
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Catalog sync already running, skipping trigger")
            return SyncResult(success=False, skipped=True, reason="already_running")

        self._state = SyncState.RUNNING
        try:
            try:
                result = self._run_pass()
            except Exception as exc:
                logger.exception("Catalog sync aborted by an unexpected error")
                result = SyncResult(
                    success=False, reason="unexpected_error", error=str(exc)
                )
            self._last_result = result
            return result
        finally:
            self._state = SyncState.IDLE
            self._lock.release()

    def _run_pass(self) -> SyncResult:
        started = time.monotonic()
        logger.info("Catalog sync started for gateway '%s'", self._gateway_slug)

        try:
            gateway = self._catalog.get_gateway_by_slug(self._gateway_slug)
        except StoreReadError as exc:
            logger.error("Gateway lookup failed, aborting sync: %s", exc.message)
            return SyncResult(
                success=False,
                reason="store_error",
                error=exc.message,
                elapsed_seconds=time.monotonic() - started,
            )
        if gateway is None:
            logger.error("Gateway '%s' not found, aborting sync", self._gateway_slug)
            return SyncResult(
                success=False,
                reason="gateway_not_found",
                error=f"Gateway '{self._gateway_slug}' not found",
                elapsed_seconds=time.monotonic() - started,
            )
        if gateway.admin_disabled:
            logger.info("Gateway '%s' disabled by admin, skipping sync", gateway.slug)
            return SyncResult(
                success=True,
                skipped=True,
                reason="gateway_disabled",
                elapsed_seconds=time.monotonic() - started,
            )

        try:
            snapshot = self._feed.fetch_pairs()
        except FeedUnavailableError as exc:
            logger.error("Feed unavailable, aborting sync: %s", exc.message)
            return SyncResult(
                success=False,
                reason="feed_unavailable",
                error=exc.message,
                elapsed_seconds=time.monotonic() - started,
            )
        logger.info(
            "Feed returned %d tokens, %d pairs",
            len(snapshot.tokens),
            len(snapshot.pairs),
        )

        valid_pairs = self._feed.filter_valid_pairs(snapshot.pairs, self._min_reserve)
        logger.info("Pairs with sufficient liquidity: %d", len(valid_pairs))

        token_ids = self._resolve_tokens(snapshot.tokens)
        logger.info("Tokens resolved: %d", len(token_ids))

        touched: set[int] = set()
        updated = 0
        skipped = 0
        for pair in valid_pairs:
            outcome = self._sync_pair(pair, token_ids, gateway.id)
            if outcome is None:
                continue
            pair_ids, pair_skipped = outcome
            touched.update(pair_ids)
            skipped += pair_skipped
            updated += len(pair_ids) - pair_skipped

        try:
            deactivated = self._catalog.deactivate_stale_pairs(gateway.id, touched)
            stats = self._catalog.get_sync_stats(gateway.id)
        except (StoreWriteError, StoreReadError) as exc:
            logger.error("Pass wrap-up failed: %s", exc.message)
            return SyncResult(
                success=False,
                reason="store_error",
                error=exc.message,
                pairs_updated=updated,
                pairs_skipped=skipped,
                tokens_resolved=len(token_ids),
                elapsed_seconds=time.monotonic() - started,
            )

        elapsed = time.monotonic() - started
        logger.info(
            "Catalog sync finished in %.2fs: updated=%d skipped=%d "
            "deactivated=%d active=%d",
            elapsed,
            updated,
            skipped,
            deactivated.count,
            stats.active_pairs,
        )
        return SyncResult(
            success=True,
            pairs_updated=updated,
            pairs_skipped=skipped,
            pairs_deactivated=deactivated.count,
            active_pairs=stats.active_pairs,
            tokens_resolved=len(token_ids),
            elapsed_seconds=elapsed,
        )

    def _resolve_tokens(self, tokens: dict[str, TokenInfo]) -> dict[str, int]:
        """Upsert feed tokens and map each usable symbol to a row id.

        The first external id seen for a symbol wins. A token whose
        upsert fails falls back to an existing row with that symbol.
        If that lookup fails too, the token is left out of this pass
        and the remaining tokens are still resolved.
        """
        cache: dict[str, int] = {}
        for external_id, info in tokens.items():
            symbol = self._feed.extract_symbol(external_id)
            if not symbol or symbol in cache:
                continue

            data = TokenUpsert(
                symbol=symbol,
                name=symbol,
                contract_address=external_id,
                decimals=info.precision or DEFAULT_DECIMALS,
                logo_url=self._feed.build_logo_url(info.logo_path),
            )
            try:
                outcome = self._catalog.upsert_token(data)
            except Exception as exc:
                logger.warning("Token %s upsert failed: %s", external_id, exc)
            else:
                cache[symbol] = outcome.id
                continue

            try:
                existing = self._catalog.get_token_by_symbol(symbol)
            except Exception as exc:
                logger.warning(
                    "Token %s lookup failed, dropped for this pass: %s",
                    external_id,
                    exc,
                )
                continue
            if existing is not None:
                cache[symbol] = existing.id
        return cache

    def _sync_pair(
        self, pair: LiquidPair, token_ids: dict[str, int], gateway_id: int
    ) -> Optional[tuple[list[int], int]]:
        """Upsert both directions of one feed pair.

        Returns:
            (ids written, how many of them were admin-disabled skips),
            or None when an endpoint is unresolved. A direction whose
            write fails is logged and left out.
        """
        symbol0 = self._feed.extract_symbol(pair.token0_id)
        symbol1 = self._feed.extract_symbol(pair.token1_id)
        token0 = token_ids.get(symbol0) if symbol0 else None
        token1 = token_ids.get(symbol1) if symbol1 else None
        if token0 is None or token1 is None:
            return None

        directions = (
            PairUpsert(
                token_from_id=token0,
                token_to_id=token1,
                gateway_id=gateway_id,
                external_pair_id=str(pair.pair_id),
                reserve0=pair.reserve0,
                reserve1=pair.reserve1,
            ),
            PairUpsert(
                token_from_id=token1,
                token_to_id=token0,
                gateway_id=gateway_id,
                external_pair_id=str(pair.pair_id),
                reserve0=pair.reserve1,
                reserve1=pair.reserve0,
            ),
        )
        ids: list[int] = []
        skipped = 0
        for data in directions:
            try:
                outcome = self._catalog.upsert_trading_pair(data)
            except Exception as exc:
                logger.warning("Pair %s/%s upsert failed: %s", symbol0, symbol1, exc)
                continue
            ids.append(outcome.id)
            if outcome.skipped:
                skipped += 1
        return ids, skipped
