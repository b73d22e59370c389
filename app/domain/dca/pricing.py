"""
Domain rules: reserve-based pricing.

Pure arithmetic over pool reserves. No IO.
"""

from decimal import Decimal


def calculate_price(
    reserve0: Decimal,
    reserve1: Decimal,
    decimals0: int = 6,
    decimals1: int = 6,
) -> Decimal:
    """Return how much token1 one unit of token0 buys.

    Args:
        reserve0: Reserve of the token being paid.
        reserve1: Reserve of the token being received.
        decimals0: Decimals of the paid token.
        decimals1: Decimals of the received token.

    Returns:
        The decimal-adjusted price, or 0 when either reserve is empty.
    """
    if reserve0 == 0 or reserve1 == 0:
        return Decimal(0)
    return (reserve1 / reserve0) * (Decimal(10) ** (decimals1 - decimals0))


def reserve_ratio(reserve0: Decimal, reserve1: Decimal) -> Decimal:
    """Return ``reserve0 / reserve1``, the cost ranking used for best price."""
    if reserve1 == 0:
        return Decimal(0)
    return reserve0 / reserve1
