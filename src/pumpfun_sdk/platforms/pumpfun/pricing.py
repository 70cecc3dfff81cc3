"""
Pump.fun bonding curve pricing.

Integer-only constant-product arithmetic that mirrors the on-chain program.
Python ints are unbounded, so intermediate products never overflow; results
are checked against the u64 range before they are returned, since anything
wider could not be encoded into an instruction.
"""

from typing import TYPE_CHECKING

from pumpfun_sdk.core.errors import CurveCompleted, PricingError, SlippageUnsatisfiable
from pumpfun_sdk.core.pubkeys import BASIS_POINTS_DIVISOR, U64_MAX

if TYPE_CHECKING:
    from pumpfun_sdk.platforms.pumpfun.layouts import BondingCurveState, GlobalConfig


def _check_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def _to_u64(name: str, value: int) -> int:
    if value > U64_MAX:
        raise PricingError(f"{name} overflows u64", {name: value})
    return value


def swap_output(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Constant-product output: floor(amount_in * reserve_out / (reserve_in + amount_in))."""
    _check_non_negative("amount_in", amount_in)
    if amount_in == 0:
        return 0
    denominator = reserve_in + amount_in
    return (amount_in * reserve_out) // denominator


def fee_amount(amount: int, fee_basis_points: int) -> int:
    """Protocol fee on ``amount``, floored."""
    _check_non_negative("fee_basis_points", fee_basis_points)
    return (amount * fee_basis_points) // BASIS_POINTS_DIVISOR


def ensure_tradable(curve: "BondingCurveState") -> None:
    """Reject a curve that has graduated before any pricing runs.

    Raises:
        CurveCompleted: If the curve is complete
    """
    if curve.complete:
        raise CurveCompleted()


def get_initial_buy_price(global_config: "GlobalConfig", sol_in: int) -> int:
    """Tokens out for ``sol_in`` lamports against the initial virtual reserves.

    Used for create-and-buy, where the curve does not exist on-chain yet.
    """
    tokens_out = swap_output(
        sol_in,
        global_config.initial_virtual_sol_reserves,
        global_config.initial_virtual_token_reserves,
    )
    return _to_u64("tokens_out", tokens_out)


def get_buy_price(curve: "BondingCurveState", sol_in: int) -> int:
    """Tokens out for ``sol_in`` lamports at the curve's current virtual reserves.

    Raises:
        CurveCompleted: If the curve is complete
    """
    ensure_tradable(curve)
    tokens_out = swap_output(
        sol_in, curve.virtual_sol_reserves, curve.virtual_token_reserves
    )
    return _to_u64("tokens_out", tokens_out)


def get_gross_sell_output(curve: "BondingCurveState", token_in: int) -> int:
    """Lamports out for ``token_in`` tokens before the protocol fee.

    Raises:
        CurveCompleted: If the curve is complete
    """
    ensure_tradable(curve)
    return swap_output(token_in, curve.virtual_token_reserves, curve.virtual_sol_reserves)


def get_sell_price(
    curve: "BondingCurveState", token_in: int, fee_basis_points: int
) -> int:
    """Net lamports out for ``token_in`` tokens after the protocol fee.

    Raises:
        CurveCompleted: If the curve is complete
    """
    gross = get_gross_sell_output(curve, token_in)
    net = gross - fee_amount(gross, fee_basis_points)
    return _to_u64("sol_out", net)


def get_market_cap_sol(curve: "BondingCurveState") -> int:
    """Market cap in lamports at the current virtual price."""
    if curve.virtual_token_reserves == 0:
        return 0
    return (
        curve.token_total_supply * curve.virtual_sol_reserves
    ) // curve.virtual_token_reserves


def get_buy_out_price(curve: "BondingCurveState", fee_basis_points: int) -> int:
    """Lamports, fee included, needed to buy every remaining real token."""
    remaining = curve.real_token_reserves
    denominator = curve.virtual_token_reserves - remaining
    if denominator <= 0:
        raise PricingError(
            "Real token reserves exhaust the virtual reserves",
            {"real_token_reserves": remaining},
        )
    cost = (remaining * curve.virtual_sol_reserves) // denominator + 1
    return cost + fee_amount(cost, fee_basis_points)


def get_final_market_cap_sol(curve: "BondingCurveState", fee_basis_points: int) -> int:
    """Market cap in lamports once the remaining real token reserves are bought."""
    total_virtual_tokens = curve.virtual_token_reserves - curve.real_token_reserves
    if total_virtual_tokens <= 0:
        return 0
    total_virtual_value = curve.virtual_sol_reserves + get_buy_out_price(
        curve, fee_basis_points
    )
    return (curve.token_total_supply * total_virtual_value) // total_virtual_tokens


def check_buy_within_reserves(tokens_out: int, real_token_reserves: int) -> None:
    """Reject a buy asking for more tokens than the curve custodies.

    Raises:
        SlippageUnsatisfiable: If ``tokens_out`` exceeds the real reserves
    """
    if tokens_out > real_token_reserves:
        raise SlippageUnsatisfiable(
            "Requested tokens exceed the curve's real token reserves",
            tokens_out=tokens_out,
            real_token_reserves=real_token_reserves,
        )


def check_sell_within_reserves(gross_sol_out: int, real_sol_reserves: int) -> None:
    """Reject a sell whose gross output exceeds the SOL the curve custodies.

    Raises:
        SlippageUnsatisfiable: If ``gross_sol_out`` exceeds the real reserves
    """
    if gross_sol_out > real_sol_reserves:
        raise SlippageUnsatisfiable(
            "Sell output exceeds the curve's real SOL reserves",
            gross_sol_out=gross_sol_out,
            real_sol_reserves=real_sol_reserves,
        )
