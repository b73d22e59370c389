"""
Use cases: Operator actions and read models over the catalog.

- RegisterGatewayUseCase:   add a liquidity source.
- AddTokenUseCase:          create a token by hand.
- AddTradingPairUseCase:    create one directed pair by hand.
- SetAdminOverrideUseCase:  pin a token / gateway / pair on or off.
- GetSyncStatsUseCase:      pair counters for the synced gateway.
- ListActiveCatalogUseCase: everything a client may trade right now.
"""

from app.application.dca.dtos import (
    ActiveCatalog,
    AddTokenCommand,
    AddTradingPairCommand,
    AdminOverrideCommand,
    RegisterGatewayCommand,
    SyncStatsResult,
)
from app.domain.dca.entities import CatalogEntity, Gateway, Token, TradingPair
from app.domain.dca.errors import (
    CatalogEntryNotFoundError,
    DuplicateCatalogEntryError,
    DuplicateGatewayError,
    GatewayNotFoundError,
    InvalidCatalogEntryError,
)
from app.domain.dca.ports import CatalogRepository


class RegisterGatewayUseCase:
    """Creates an active gateway. Slugs are stored lower-case."""

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def execute(self, command: RegisterGatewayCommand) -> Gateway:
        slug = command.slug.strip().lower()
        if self._catalog.get_gateway_by_slug(slug) is not None:
            raise DuplicateGatewayError(slug)
        gateway = self._catalog.add_gateway(
            name=command.name.strip(),
            slug=slug,
            fee_percentage=command.fee_percentage,
        )
        return gateway


class AddTokenUseCase:
    """Creates a token outside the feed. Symbols are stored upper-case.

    Without a contract address the symbol stands in for it, as the
    feed does for native tokens.
    """

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def execute(self, command: AddTokenCommand) -> Token:
        symbol = command.symbol.strip().upper()
        if not symbol:
            raise InvalidCatalogEntryError("symbol must not be empty")
        if self._catalog.get_token_by_symbol(symbol) is not None:
            raise DuplicateCatalogEntryError(CatalogEntity.TOKEN.value, symbol)
        return self._catalog.add_token(
            symbol=symbol,
            name=command.name.strip(),
            contract_address=(command.contract_address or symbol).strip(),
            decimals=command.decimals,
            logo_url=command.logo_url,
            is_active=command.is_active,
        )


class AddTradingPairUseCase:
    """Creates one directed pair between existing tokens on a gateway."""

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def execute(self, command: AddTradingPairCommand) -> TradingPair:
        """Create the pair.

        Raises:
            InvalidCatalogEntryError: If both ends are the same token.
            CatalogEntryNotFoundError: If a token or the gateway is unknown.
            DuplicateCatalogEntryError: If this direction already exists
                on the gateway.
        """
        if command.token_from_id == command.token_to_id:
            raise InvalidCatalogEntryError("tokens must differ")
        for token_id in (command.token_from_id, command.token_to_id):
            if self._catalog.get_token(token_id) is None:
                raise CatalogEntryNotFoundError(CatalogEntity.TOKEN.value, token_id)
        if self._catalog.get_gateway(command.gateway_id) is None:
            raise CatalogEntryNotFoundError(
                CatalogEntity.GATEWAY.value, command.gateway_id
            )
        existing = self._catalog.get_trading_pair(
            command.token_from_id, command.token_to_id, command.gateway_id
        )
        if existing is not None:
            raise DuplicateCatalogEntryError(
                CatalogEntity.PAIR.value,
                f"{command.token_from_id}->{command.token_to_id}"
                f" on gateway {command.gateway_id}",
            )
        return self._catalog.add_trading_pair(
            token_from_id=command.token_from_id,
            token_to_id=command.token_to_id,
            gateway_id=command.gateway_id,
            is_active=command.is_active,
        )


class SetAdminOverrideUseCase:
    """Applies a manual override to one catalog row.

    When ``is_active`` is not given, it follows the flag: disabling a
    row deactivates it and lifting the override reactivates it. The
    next sync pass may then deactivate a re-enabled pair again if the
    feed no longer lists it.
    """

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def execute(self, command: AdminOverrideCommand) -> bool:
        """Apply the override and return the resulting is_active value."""
        is_active = command.is_active
        if is_active is None:
            is_active = not command.admin_disabled
        self._catalog.set_admin_override(
            command.entity,
            command.entity_id,
            admin_disabled=command.admin_disabled,
            is_active=is_active,
        )
        return is_active


class GetSyncStatsUseCase:
    def __init__(self, catalog: CatalogRepository, gateway_slug: str) -> None:
        self._catalog = catalog
        self._gateway_slug = gateway_slug

    def execute(self) -> SyncStatsResult:
        """Return pair counters for the configured gateway.

        Raises:
            GatewayNotFoundError: If the gateway row does not exist.
        """
        gateway = self._catalog.get_gateway_by_slug(self._gateway_slug)
        if gateway is None:
            raise GatewayNotFoundError(self._gateway_slug)
        stats = self._catalog.get_sync_stats(gateway.id)
        return SyncStatsResult(
            gateway_slug=gateway.slug,
            active_pairs=stats.active_pairs,
            inactive_pairs=stats.inactive_pairs,
            admin_disabled_pairs=stats.admin_disabled_pairs,
            last_sync_at=stats.last_sync_at,
        )


class ListActiveCatalogUseCase:
    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def execute(self) -> ActiveCatalog:
        return ActiveCatalog(
            tokens=self._catalog.list_active_tokens(),
            gateways=self._catalog.list_active_gateways(),
            pairs=self._catalog.list_active_pairs(),
        )
