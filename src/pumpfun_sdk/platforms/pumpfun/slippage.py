"""
Slippage bounds for pump.fun trades.

Both bounds move against the trader: the buy ceiling is rounded up by adding
the floored tolerance, the sell floor is rounded down and clamped to 1.
"""

from pumpfun_sdk.core.errors import SlippageUnsatisfiable
from pumpfun_sdk.core.pubkeys import BASIS_POINTS_DIVISOR, U64_MAX

DEFAULT_SLIPPAGE_BPS = 500
MIN_SELL_OUTPUT = 1


def _check(amount: int, basis_points: int) -> None:
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if basis_points < 0:
        raise ValueError(f"slippage basis points must be non-negative, got {basis_points}")


def calculate_with_slippage_buy(amount: int, basis_points: int) -> int:
    """Maximum SOL cost: ``amount + floor(amount * bps / 10000)``.

    Raises:
        SlippageUnsatisfiable: If the bound does not fit in u64
    """
    _check(amount, basis_points)
    bound = amount + (amount * basis_points) // BASIS_POINTS_DIVISOR
    if bound > U64_MAX:
        raise SlippageUnsatisfiable(
            "Max SOL cost overflows u64", amount=amount, basis_points=basis_points
        )
    return bound


def calculate_with_slippage_sell(amount: int, basis_points: int) -> int:
    """Minimum SOL output: ``amount - floor(amount * bps / 10000)``, at least 1."""
    _check(amount, basis_points)
    bound = amount - (amount * basis_points) // BASIS_POINTS_DIVISOR
    return max(bound, MIN_SELL_OUTPUT)
