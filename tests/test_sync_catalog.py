"""
Tests for the catalog reconciliation engine (SyncCatalogUseCase).

The real SQL catalog and the real feed client are used; only the HTTP
transport is mocked.
"""

import random
import threading
from decimal import Decimal
from unittest import mock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.application.dca.sync_catalog import SyncCatalogUseCase, SyncState
from app.domain.dca.entities import CatalogEntity
from app.domain.dca.errors import StoreReadError, StoreWriteError
from app.infrastructure.persistence.tables import tokens, trading_pairs
from tests.conftest import feed_payload, make_feed

MIN_RESERVE = Decimal("1000000")


def _engine_for(feed, catalog, slug: str = "swopus") -> SyncCatalogUseCase:
    return SyncCatalogUseCase(
        feed=feed, catalog=catalog, gateway_slug=slug, min_reserve=MIN_RESERVE
    )


def _snapshot(engine) -> list[tuple]:
    with engine.connect() as conn:
        pair_rows = conn.execute(
            select(trading_pairs).order_by(trading_pairs.c.id)
        ).fetchall()
        token_rows = conn.execute(select(tokens).order_by(tokens.c.id)).fetchall()
    return [tuple(r) for r in pair_rows] + [tuple(r) for r in token_rows]


def _active_map(engine) -> dict[int, bool]:
    with engine.connect() as conn:
        rows = conn.execute(
            select(trading_pairs.c.id, trading_pairs.c.is_active)
        ).fetchall()
    return {row.id: bool(row.is_active) for row in rows}


def _token_active_map(engine) -> dict[int, bool]:
    with engine.connect() as conn:
        rows = conn.execute(select(tokens.c.id, tokens.c.is_active)).fetchall()
    return {row.id: bool(row.is_active) for row in rows}


def _locked_database() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("database is locked"))


class TestFatalOutcomes:
    """Missing gateway, disabled gateway and feed failure."""

    def test_missing_gateway_fails_without_fetching(self, catalog) -> None:
        calls: list[int] = []

        def source() -> dict:
            calls.append(1)
            return feed_payload([])

        result = _engine_for(make_feed(source), catalog).execute()

        assert result.success is False
        assert result.reason == "gateway_not_found"
        assert calls == []

    def test_disabled_gateway_skips_and_leaves_store_unmodified(
        self, engine, catalog, gateway
    ) -> None:
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)]))
        sync = _engine_for(feed, catalog)
        sync.execute()
        catalog.set_admin_override(CatalogEntity.GATEWAY, gateway.id, True)
        before = _snapshot(engine)

        result = _engine_for(make_feed(feed_payload([])), catalog).execute()

        assert result.success is True
        assert result.skipped is True
        assert result.reason == "gateway_disabled"
        assert _snapshot(engine) == before

    def test_feed_failure_aborts_pass(self, engine, catalog, gateway) -> None:
        sync = _engine_for(make_feed({"error": "down"}, status_code=503), catalog)

        result = sync.execute()

        assert result.success is False
        assert result.reason == "feed_unavailable"
        assert _snapshot(engine) == []

    def test_gateway_lookup_store_error_is_a_structured_failure(
        self, engine, catalog, gateway
    ) -> None:
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)]))
        with mock.patch.object(
            catalog,
            "get_gateway_by_slug",
            side_effect=StoreReadError("get_gateway_by_slug", "connection refused"),
        ):
            result = _engine_for(feed, catalog).execute()

        assert result.success is False
        assert result.reason == "store_error"
        assert "connection refused" in result.error
        assert _snapshot(engine) == []

    def test_stats_read_error_is_a_structured_failure(self, catalog, gateway) -> None:
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)]))
        with mock.patch.object(
            catalog,
            "get_sync_stats",
            side_effect=StoreReadError("get_sync_stats", "timeout"),
        ):
            result = _engine_for(feed, catalog).execute()

        assert result.success is False
        assert result.reason == "store_error"
        assert result.pairs_updated == 2

    def test_raw_driver_error_never_escapes(self, catalog, gateway) -> None:
        feed = make_feed(feed_payload([]))
        sync = _engine_for(feed, catalog)
        with mock.patch.object(
            catalog, "get_gateway_by_slug", side_effect=_locked_database()
        ):
            result = sync.execute()

        assert result.success is False
        assert result.reason == "unexpected_error"
        assert sync.state is SyncState.IDLE
        assert sync.last_result is result


class TestPairMaterialization:
    """Directed rows, reserve filtering and idempotence."""

    def test_feed_pair_yields_two_directed_rows(self, catalog, gateway) -> None:
        feed = make_feed(feed_payload([("AAA", "BBB-1X", 42, "2000000", "5000000")]))

        result = _engine_for(feed, catalog).execute()

        a = catalog.get_token_by_symbol("AAA").id
        b = catalog.get_token_by_symbol("BBB").id
        forward = catalog.get_trading_pair(a, b, gateway.id)
        backward = catalog.get_trading_pair(b, a, gateway.id)
        assert result.success is True
        assert result.pairs_updated == 2
        assert (forward.reserve0, forward.reserve1) == (Decimal(2_000_000), Decimal(5_000_000))
        assert (backward.reserve0, backward.reserve1) == (Decimal(5_000_000), Decimal(2_000_000))
        assert forward.external_pair_id == backward.external_pair_id == "42"
        assert forward.is_active and backward.is_active

    def test_thin_pair_is_never_upserted(self, catalog, gateway) -> None:
        """reserve0=500 against a 1_000_000 minimum filters the pair out."""
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 500, 2_000_000)]))

        result = _engine_for(feed, catalog).execute()

        assert result.pairs_updated == 0
        assert catalog.get_sync_stats(gateway.id).active_pairs == 0

    def test_second_identical_pass_is_idempotent(self, catalog, gateway) -> None:
        payload = feed_payload(
            [
                ("AAA", "BBB", 1, 2_000_000, 3_000_000),
                ("BBB", "CCC", 2, 4_000_000, 1_500_000),
                ("AAA", "CCC", 3, 9_000_000, 9_000_000),
            ]
        )
        sync = _engine_for(make_feed(payload), catalog)

        first = sync.execute()
        second = sync.execute()

        assert first.pairs_updated == 6
        assert second.pairs_updated == 6
        assert second.pairs_deactivated == 0
        assert second.active_pairs == 6

    def test_pair_with_unresolved_token_is_skipped(self, catalog, gateway) -> None:
        """A pair whose endpoint has no derivable symbol is ignored."""
        payload = feed_payload(
            [("AAA", "BBB", 1, 2_000_000, 3_000_000), ("AAA", "-X", 2, 2_000_000, 3_000_000)]
        )

        result = _engine_for(make_feed(payload), catalog).execute()

        assert result.pairs_updated == 2
        assert result.tokens_resolved == 2


class TestStaleDeactivation:
    """Pairs that disappear from the feed."""

    def test_absent_pair_is_deactivated_unless_admin_disabled(
        self, catalog, gateway
    ) -> None:
        payload = {
            "body": feed_payload(
                [
                    ("AAA", "BBB", 1, 2_000_000, 3_000_000),
                    ("AAA", "CCC", 2, 2_000_000, 3_000_000),
                    ("BBB", "CCC", 3, 2_000_000, 3_000_000),
                ]
            )
        }
        sync = _engine_for(make_feed(lambda: payload["body"]), catalog)
        sync.execute()
        a = catalog.get_token_by_symbol("AAA").id
        b = catalog.get_token_by_symbol("BBB").id
        c = catalog.get_token_by_symbol("CCC").id
        pinned = catalog.get_trading_pair(b, c, gateway.id)
        catalog.set_admin_override(CatalogEntity.PAIR, pinned.id, True, is_active=True)

        payload["body"] = feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)])
        result = sync.execute()

        assert result.pairs_deactivated == 3
        assert catalog.get_trading_pair(a, c, gateway.id).is_active is False
        assert catalog.get_trading_pair(c, a, gateway.id).is_active is False
        assert catalog.get_trading_pair(c, b, gateway.id).is_active is False
        assert catalog.get_trading_pair(b, c, gateway.id).is_active is True

    def test_empty_feed_does_not_wipe_catalog(self, catalog, gateway) -> None:
        payload = {"body": feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)])}
        sync = _engine_for(make_feed(lambda: payload["body"]), catalog)
        sync.execute()

        payload["body"] = {"tokens": {}, "pairs": []}
        result = sync.execute()

        assert result.success is True
        assert result.pairs_deactivated == 0
        assert catalog.get_sync_stats(gateway.id).active_pairs == 2

    def test_reappearing_pair_is_reactivated(self, catalog, gateway) -> None:
        payload = {
            "body": feed_payload(
                [("AAA", "BBB", 1, 2_000_000, 3_000_000), ("AAA", "CCC", 2, 2_000_000, 3_000_000)]
            )
        }
        sync = _engine_for(make_feed(lambda: payload["body"]), catalog)
        sync.execute()
        full = payload["body"]
        payload["body"] = feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)])
        sync.execute()

        payload["body"] = full
        result = sync.execute()

        assert result.active_pairs == 4


class TestTokenResolution:
    """Symbol cache, first-wins dedup and store-error fallback."""

    def test_first_external_id_per_symbol_wins(self, catalog, gateway) -> None:
        payload = feed_payload(
            [("AAA", "DVK-1AB2", 1, 2_000_000, 3_000_000)],
            extra_tokens={"DVK-9ZZZ": {"precision": 8}},
        )

        result = _engine_for(make_feed(payload), catalog).execute()

        token = catalog.get_token_by_symbol("DVK")
        assert token.contract_address == "DVK-1AB2"
        assert token.decimals == 6
        assert result.tokens_resolved == 2

    def test_token_store_error_falls_back_to_symbol_lookup(
        self, catalog, gateway
    ) -> None:
        """A failing token upsert still resolves through an existing row."""
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)]))
        sync = _engine_for(feed, catalog)
        sync.execute()

        real_upsert = catalog.upsert_token

        def flaky(data):
            if data.symbol == "BBB":
                raise StoreWriteError("upsert_token", "deadlock")
            return real_upsert(data)

        with mock.patch.object(catalog, "upsert_token", side_effect=flaky):
            result = sync.execute()

        assert result.tokens_resolved == 2
        assert result.pairs_updated == 2

    def test_unresolvable_token_drops_its_pairs(self, catalog, gateway) -> None:
        real_upsert = catalog.upsert_token

        def flaky(data):
            if data.symbol == "BBB":
                raise StoreWriteError("upsert_token", "deadlock")
            return real_upsert(data)

        feed = make_feed(
            feed_payload(
                [("AAA", "BBB", 1, 2_000_000, 3_000_000), ("AAA", "CCC", 2, 2_000_000, 3_000_000)]
            )
        )
        with mock.patch.object(catalog, "upsert_token", side_effect=flaky):
            result = _engine_for(feed, catalog).execute()

        assert result.success is True
        assert result.tokens_resolved == 2
        assert result.pairs_updated == 2

    @pytest.mark.parametrize(
        "lookup_error",
        [_locked_database(), StoreReadError("get_token_by_symbol", "timeout")],
        ids=["driver-error", "store-read-error"],
    )
    def test_failed_fallback_lookup_drops_only_that_token(
        self, catalog, gateway, lookup_error
    ) -> None:
        real_upsert = catalog.upsert_token

        def flaky(data):
            if data.symbol == "AAA":
                raise StoreWriteError("upsert_token", "deadlock")
            return real_upsert(data)

        feed = make_feed(
            feed_payload(
                [("AAA", "BBB", 1, 2_000_000, 3_000_000), ("CCC", "DDD", 2, 2_000_000, 3_000_000)]
            )
        )
        with mock.patch.object(catalog, "upsert_token", side_effect=flaky), \
                mock.patch.object(catalog, "get_token_by_symbol", side_effect=lookup_error):
            result = _engine_for(feed, catalog).execute()

        assert result.success is True
        assert result.tokens_resolved == 3
        assert result.pairs_updated == 2
        assert catalog.get_token_by_symbol("AAA") is None
        ccc = catalog.get_token_by_symbol("CCC").id
        ddd = catalog.get_token_by_symbol("DDD").id
        assert catalog.get_trading_pair(ccc, ddd, gateway.id).is_active is True

    def test_admin_disabled_token_keeps_state_but_pairs_sync(
        self, catalog, gateway
    ) -> None:
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)]))
        sync = _engine_for(feed, catalog)
        sync.execute()
        bbb = catalog.get_token_by_symbol("BBB")
        catalog.set_admin_override(CatalogEntity.TOKEN, bbb.id, True, is_active=False)

        result = sync.execute()

        assert catalog.get_token_by_symbol("BBB").is_active is False
        assert result.pairs_updated == 2


class TestPartialFailure:
    """Per-row store errors never abort the pass."""

    def test_pair_store_error_is_absorbed(self, catalog, gateway) -> None:
        real_upsert = catalog.upsert_trading_pair
        failures = {"left": 1}

        def flaky(data):
            if failures["left"]:
                failures["left"] -= 1
                raise StoreWriteError("upsert_trading_pair", "timeout")
            return real_upsert(data)

        feed = make_feed(
            feed_payload(
                [("AAA", "BBB", 1, 2_000_000, 3_000_000), ("AAA", "CCC", 2, 2_000_000, 3_000_000)]
            )
        )
        with mock.patch.object(catalog, "upsert_trading_pair", side_effect=flaky):
            result = _engine_for(feed, catalog).execute()

        assert result.success is True
        assert result.pairs_updated == 3
        assert catalog.get_sync_stats(gateway.id).active_pairs == 3

    def test_deactivation_failure_is_a_structured_failure(
        self, catalog, gateway
    ) -> None:
        feed = make_feed(feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)]))
        with mock.patch.object(
            catalog,
            "deactivate_stale_pairs",
            side_effect=StoreWriteError("deactivate_stale_pairs", "lost connection"),
        ):
            result = _engine_for(feed, catalog).execute()

        assert result.success is False
        assert result.reason == "store_error"
        assert result.pairs_updated == 2


class TestAdminOverrideInvariant:
    """Randomized passes never flip is_active on admin-disabled tokens or pairs."""

    SYMBOLS = ["AAA", "BBB", "CCC", "DDD", "EEE"]

    def _random_payload(self, rng: random.Random) -> dict:
        pairs = []
        for i, token0 in enumerate(self.SYMBOLS):
            for token1 in self.SYMBOLS[i + 1:]:
                if rng.random() < 0.6:
                    reserve0 = rng.choice([100, 999_999, 2_000_000, "x", 50_000_000])
                    reserve1 = rng.choice([100, 1_000_000, 3_000_000, None, 70_000_000])
                    pairs.append((token0, token1, f"{token0}{token1}", reserve0, reserve1))
        return feed_payload(pairs)

    @pytest.mark.parametrize("seed", range(8))
    def test_disabled_rows_keep_activation_state(self, engine, catalog, gateway, seed) -> None:
        rng = random.Random(seed)
        everything = feed_payload(
            [
                (t0, t1, f"{t0}{t1}", 5_000_000, 5_000_000)
                for i, t0 in enumerate(self.SYMBOLS)
                for t1 in self.SYMBOLS[i + 1:]
            ]
        )
        payload = {"body": everything}
        sync = _engine_for(make_feed(lambda: payload["body"]), catalog)
        sync.execute()

        pinned: dict[int, bool] = {}
        for pair_id in _active_map(engine):
            if rng.random() < 0.4:
                state = rng.random() < 0.5
                catalog.set_admin_override(CatalogEntity.PAIR, pair_id, True, is_active=state)
                pinned[pair_id] = state

        pinned_tokens: dict[int, bool] = {}
        for token_id in _token_active_map(engine):
            if rng.random() < 0.4:
                state = rng.random() < 0.5
                catalog.set_admin_override(
                    CatalogEntity.TOKEN, token_id, True, is_active=state
                )
                pinned_tokens[token_id] = state

        for _ in range(5):
            payload["body"] = self._random_payload(rng)
            result = sync.execute()
            assert result.success is True
            states = _active_map(engine)
            for pair_id, expected in pinned.items():
                assert states[pair_id] is expected
            token_states = _token_active_map(engine)
            for token_id, expected in pinned_tokens.items():
                assert token_states[token_id] is expected


class TestSingleFlight:
    """Overlapping triggers are coalesced into a skip."""

    def test_trigger_during_running_pass_is_skipped(self, catalog, gateway) -> None:
        entered = threading.Event()
        release = threading.Event()

        def slow_source() -> dict:
            entered.set()
            release.wait(timeout=5)
            return feed_payload([("AAA", "BBB", 1, 2_000_000, 3_000_000)])

        sync = _engine_for(make_feed(slow_source), catalog)
        results = []
        worker = threading.Thread(target=lambda: results.append(sync.execute()))
        worker.start()
        assert entered.wait(timeout=5)

        assert sync.state is SyncState.RUNNING
        overlapping = sync.execute()
        release.set()
        worker.join(timeout=5)

        assert overlapping.skipped is True
        assert overlapping.reason == "already_running"
        assert results[0].success is True
        assert sync.state is SyncState.IDLE
        assert sync.last_result is results[0]
