import pytest

from pumpfun_sdk.core.errors import SlippageUnsatisfiable
from pumpfun_sdk.core.pubkeys import U64_MAX
from pumpfun_sdk.platforms.pumpfun.slippage import (
    calculate_with_slippage_buy,
    calculate_with_slippage_sell,
)


@pytest.mark.parametrize(
    "amount,bps,expected",
    [
        (1_000_000_000, 500, 1_050_000_000),
        (1_000_000_000, 0, 1_000_000_000),
        (999, 100, 1_008),
        (0, 500, 0),
    ],
)
def test_buy_bound(amount, bps, expected):
    assert calculate_with_slippage_buy(amount, bps) == expected


@pytest.mark.parametrize(
    "amount,bps,expected",
    [
        (27_653_631, 500, 26_270_950),
        (1_000, 0, 1_000),
        (100, 10_000, 1),
        (100, 20_000, 1),
        (0, 500, 1),
    ],
)
def test_sell_bound(amount, bps, expected):
    assert calculate_with_slippage_sell(amount, bps) == expected


def test_buy_bound_beyond_u64_is_unsatisfiable():
    with pytest.raises(SlippageUnsatisfiable):
        calculate_with_slippage_buy(U64_MAX, 1)


@pytest.mark.parametrize("func", [calculate_with_slippage_buy, calculate_with_slippage_sell])
def test_negative_inputs_are_rejected(func):
    with pytest.raises(ValueError):
        func(-1, 100)
    with pytest.raises(ValueError):
        func(100, -1)


@pytest.mark.parametrize("amount", [0, 1, 77, 10**9, 10**15])
@pytest.mark.parametrize("bps", [0, 1, 500, 10_000, 25_000])
def test_bounds_move_against_the_trader(amount, bps):
    assert calculate_with_slippage_buy(amount, bps) >= amount
    assert 1 <= calculate_with_slippage_sell(amount, bps) <= max(amount, 1)
