"""
Use case: Find the cheapest active quote for one direction.

Input:  token_from, token_to symbols (case-insensitive)
Output: BestPriceResult
Side effects: None (read-only).
"""

from app.application.dca.dtos import BestPriceResult
from app.domain.dca.errors import PairNotListedError
from app.domain.dca.ports import CatalogRepository
from app.domain.dca.pricing import calculate_price, reserve_ratio


class GetBestPriceUseCase:
    """Picks the active directed pair with the lowest reserve0 / reserve1."""

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def execute(self, token_from: str, token_to: str) -> BestPriceResult:
        """Return the best quote.

        Raises:
            PairNotListedError: If no active pair trades this direction.
        """
        from_symbol = token_from.strip().upper()
        to_symbol = token_to.strip().upper()
        quote = self._catalog.find_best_quote(from_symbol, to_symbol)
        if quote is None:
            raise PairNotListedError(from_symbol, to_symbol)

        return BestPriceResult(
            token_from=from_symbol,
            token_to=to_symbol,
            pair_id=quote.pair_id,
            gateway_name=quote.gateway_name,
            fee_percentage=quote.fee_percentage,
            reserve0=quote.reserve0,
            reserve1=quote.reserve1,
            price=reserve_ratio(quote.reserve0, quote.reserve1),
            rate=calculate_price(
                quote.reserve0,
                quote.reserve1,
                quote.decimals_from,
                quote.decimals_to,
            ),
        )
