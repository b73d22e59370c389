"""
Tests for the SQL catalog repository.

Covers the override-aware upserts, stale pair deactivation and the
read models, against in-memory SQLite.
"""

from decimal import Decimal

import pytest

from app.domain.dca.entities import CatalogEntity, PairUpsert, TokenUpsert
from app.domain.dca.errors import (
    CatalogEntryNotFoundError,
    DuplicateCatalogEntryError,
    StoreReadError,
    StoreWriteError,
)
from app.infrastructure.dca.catalog_repository import CatalogRepositoryAdapter
from app.infrastructure.persistence.database import create_db_engine


def _token(symbol: str, contract: str | None = None, **kwargs) -> TokenUpsert:
    return TokenUpsert(
        symbol=symbol,
        name=symbol,
        contract_address=contract or symbol,
        decimals=kwargs.pop("decimals", 6),
        logo_url=kwargs.pop("logo_url", None),
    )


def _pair(from_id: int, to_id: int, gateway_id: int, r0=2_000_000, r1=3_000_000) -> PairUpsert:
    return PairUpsert(
        token_from_id=from_id,
        token_to_id=to_id,
        gateway_id=gateway_id,
        external_pair_id="1",
        reserve0=Decimal(r0),
        reserve1=Decimal(r1),
    )


class TestUpsertToken:
    """Tests for CatalogRepositoryAdapter.upsert_token."""

    def test_insert_creates_active_token(self, catalog) -> None:
        outcome = catalog.upsert_token(_token("KLV", logo_url="https://x/klv.png"))

        assert outcome.skipped is False
        token = catalog.get_token_by_symbol("klv")
        assert token.id == outcome.id
        assert token.is_active is True
        assert token.logo_url == "https://x/klv.png"

    def test_update_refreshes_fields_and_reactivates(self, catalog) -> None:
        """A non-disabled row gets new decimals/logo and is forced active."""
        first = catalog.upsert_token(_token("KLV"))
        catalog.set_admin_override(CatalogEntity.TOKEN, first.id, False, is_active=False)

        second = catalog.upsert_token(_token("KLV", decimals=8, logo_url="https://x/new.png"))

        token = catalog.get_token_by_symbol("KLV")
        assert second.id == first.id
        assert token.is_active is True
        assert token.decimals == 8
        assert token.logo_url == "https://x/new.png"

    def test_admin_disabled_token_is_not_written(self, catalog) -> None:
        """An admin-disabled token is reported skipped and keeps every column."""
        first = catalog.upsert_token(_token("SCAM", decimals=6))
        catalog.set_admin_override(CatalogEntity.TOKEN, first.id, True, is_active=False)

        outcome = catalog.upsert_token(_token("SCAM", decimals=18, logo_url="https://x/s.png"))

        token = catalog.get_token_by_symbol("SCAM")
        assert outcome.skipped is True
        assert outcome.id == first.id
        assert token.is_active is False
        assert token.decimals == 6
        assert token.logo_url is None

    def test_symbol_collision_raises_store_write_error(self, catalog) -> None:
        """Two contracts mapping to one symbol violate the unique symbol."""
        catalog.upsert_token(_token("DVK", contract="DVK-1AB2"))
        with pytest.raises(StoreWriteError):
            catalog.upsert_token(_token("DVK", contract="DVK-9ZZZ"))


class TestUpsertTradingPair:
    """Tests for CatalogRepositoryAdapter.upsert_trading_pair."""

    def test_insert_then_update_keeps_one_row(self, catalog, gateway) -> None:
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id

        first = catalog.upsert_trading_pair(_pair(a, b, gateway.id))
        second = catalog.upsert_trading_pair(_pair(a, b, gateway.id, r0=5_000_000))

        assert first.id == second.id
        pair = catalog.get_trading_pair(a, b, gateway.id)
        assert pair.reserve0 == Decimal(5_000_000)
        assert pair.is_active is True
        assert pair.last_sync_at is not None

    def test_admin_disabled_pair_only_refreshes_reserves(self, catalog, gateway) -> None:
        """Reserves move, activation state does not, outcome is skipped."""
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id
        pair_id = catalog.upsert_trading_pair(_pair(a, b, gateway.id)).id
        catalog.set_admin_override(CatalogEntity.PAIR, pair_id, True, is_active=False)

        outcome = catalog.upsert_trading_pair(_pair(a, b, gateway.id, r0=7_000_000))

        pair = catalog.get_trading_pair(a, b, gateway.id)
        assert outcome.skipped is True
        assert outcome.id == pair_id
        assert pair.is_active is False
        assert pair.admin_disabled is True
        assert pair.reserve0 == Decimal(7_000_000)


class TestDeactivateStalePairs:
    """Tests for CatalogRepositoryAdapter.deactivate_stale_pairs."""

    def _three_pairs(self, catalog, gateway):
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id
        c = catalog.upsert_token(_token("CCC")).id
        return [
            catalog.upsert_trading_pair(_pair(a, b, gateway.id)).id,
            catalog.upsert_trading_pair(_pair(b, c, gateway.id)).id,
            catalog.upsert_trading_pair(_pair(a, c, gateway.id)).id,
        ]

    def test_pairs_not_kept_are_deactivated(self, catalog, gateway) -> None:
        keep, stale, disabled = self._three_pairs(catalog, gateway)
        catalog.set_admin_override(CatalogEntity.PAIR, disabled, True, is_active=True)

        result = catalog.deactivate_stale_pairs(gateway.id, {keep})

        assert result.count == 1
        assert result.ids == [stale]
        stats = catalog.get_sync_stats(gateway.id)
        assert stats.active_pairs == 2
        assert stats.inactive_pairs == 1
        assert stats.admin_disabled_pairs == 1

    def test_empty_keep_set_is_a_no_op(self, catalog, gateway) -> None:
        self._three_pairs(catalog, gateway)

        result = catalog.deactivate_stale_pairs(gateway.id, set())

        assert result.count == 0
        assert catalog.get_sync_stats(gateway.id).active_pairs == 3

    def test_other_gateways_are_untouched(self, catalog, gateway) -> None:
        other = catalog.add_gateway("Other", "other", Decimal("0.1"))
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id
        keep = catalog.upsert_trading_pair(_pair(a, b, gateway.id)).id
        catalog.upsert_trading_pair(_pair(a, b, other.id))

        catalog.deactivate_stale_pairs(gateway.id, {keep})

        assert catalog.get_sync_stats(other.id).active_pairs == 1


class TestAdminOverride:
    """Tests for CatalogRepositoryAdapter.set_admin_override."""

    def test_unknown_row_raises(self, catalog) -> None:
        with pytest.raises(CatalogEntryNotFoundError):
            catalog.set_admin_override(CatalogEntity.TOKEN, 999, True)

    def test_gateway_override(self, catalog, gateway) -> None:
        catalog.set_admin_override(CatalogEntity.GATEWAY, gateway.id, True)

        refreshed = catalog.get_gateway_by_slug("SWOPUS")
        assert refreshed.admin_disabled is True
        assert refreshed.is_active is True


class TestReadModels:
    """Tests for the active catalog listings and best quote lookup."""

    def test_active_pairs_require_active_tokens(self, catalog, gateway) -> None:
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id
        catalog.upsert_trading_pair(_pair(a, b, gateway.id))
        catalog.upsert_trading_pair(_pair(b, a, gateway.id))
        assert len(catalog.list_active_pairs()) == 2

        catalog.set_admin_override(CatalogEntity.TOKEN, b, True, is_active=False)

        assert catalog.list_active_pairs() == []
        assert [t.symbol for t in catalog.list_active_tokens()] == ["AAA"]
        assert [g.slug for g in catalog.list_active_gateways()] == ["swopus"]

    def test_best_quote_picks_lowest_reserve_ratio(self, catalog, gateway) -> None:
        other = catalog.add_gateway("Other", "other", Decimal("0.1"))
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id
        catalog.upsert_trading_pair(_pair(a, b, gateway.id, r0=2_000_000, r1=2_000_000))
        cheap = catalog.upsert_trading_pair(
            _pair(a, b, other.id, r0=1_000_000, r1=4_000_000)
        ).id

        quote = catalog.find_best_quote("aaa", "BBB")

        assert quote.pair_id == cheap
        assert quote.gateway_name == "Other"
        assert quote.decimals_from == 6

    def test_best_quote_ignores_admin_disabled_pairs(self, catalog, gateway) -> None:
        a = catalog.upsert_token(_token("AAA")).id
        b = catalog.upsert_token(_token("BBB")).id
        pair_id = catalog.upsert_trading_pair(_pair(a, b, gateway.id)).id
        catalog.set_admin_override(CatalogEntity.PAIR, pair_id, True, is_active=True)

        assert catalog.find_best_quote("AAA", "BBB") is None
        assert catalog.find_best_quote("BBB", "AAA") is None


class TestManualEntries:
    """Tests for hand-created tokens and pairs."""

    def test_add_token_then_lookup(self, catalog) -> None:
        created = catalog.add_token("KLV", "Klever", "KLV", decimals=6)

        assert created.is_active is True
        assert created.admin_disabled is False
        assert catalog.get_token(created.id) == created
        assert catalog.get_token_by_symbol("klv").id == created.id
        assert catalog.get_token(999) is None

    @pytest.mark.parametrize(
        "symbol,contract",
        [("KLV", "OTHER-1"), ("OTHER", "KLV")],
        ids=["same-symbol", "same-contract"],
    )
    def test_add_token_collision(self, catalog, symbol, contract) -> None:
        catalog.add_token("KLV", "Klever", "KLV")
        with pytest.raises(DuplicateCatalogEntryError):
            catalog.add_token(symbol, symbol, contract)

    def test_add_trading_pair_starts_empty(self, catalog, gateway) -> None:
        a = catalog.add_token("AAA", "AAA", "AAA").id
        b = catalog.add_token("BBB", "BBB", "BBB").id

        pair = catalog.add_trading_pair(a, b, gateway.id)

        assert pair.reserve0 == 0
        assert pair.reserve1 == 0
        assert pair.is_active is True
        assert pair.external_pair_id is None
        assert catalog.get_gateway(gateway.id) == gateway

    def test_add_trading_pair_twice_raises(self, catalog, gateway) -> None:
        a = catalog.add_token("AAA", "AAA", "AAA").id
        b = catalog.add_token("BBB", "BBB", "BBB").id
        catalog.add_trading_pair(a, b, gateway.id)

        with pytest.raises(DuplicateCatalogEntryError):
            catalog.add_trading_pair(a, b, gateway.id)
        # The reverse direction is a distinct row.
        assert catalog.add_trading_pair(b, a, gateway.id).token_from_id == b


class TestReadFailures:
    """Reads against an unreachable database raise StoreReadError."""

    @pytest.fixture
    def broken(self, tmp_path) -> CatalogRepositoryAdapter:
        engine = create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'dca.sqlite'}")
        yield CatalogRepositoryAdapter(engine=engine)
        engine.dispose()

    def test_gateway_by_slug(self, broken) -> None:
        with pytest.raises(StoreReadError) as info:
            broken.get_gateway_by_slug("swopus")
        assert info.value.operation == "get_gateway_by_slug"

    def test_token_by_symbol(self, broken) -> None:
        with pytest.raises(StoreReadError):
            broken.get_token_by_symbol("KLV")

    def test_sync_stats(self, broken) -> None:
        with pytest.raises(StoreReadError):
            broken.get_sync_stats(1)
