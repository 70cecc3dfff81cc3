import pytest
from solders.keypair import Keypair

from pumpfun_sdk.core.errors import MalformedAccount
from pumpfun_sdk.interfaces.core import Platform
from pumpfun_sdk.platforms.pumpfun.layouts import (
    BONDING_CURVE_LAYOUT,
    GLOBAL_LAYOUT,
    decode_bonding_curve,
    decode_global_config,
)
from pumpfun_sdk.utils.idl_manager import get_idl_parser


def test_global_layout_offsets():
    assert GLOBAL_LAYOUT.field("initialized").offset == 8
    assert GLOBAL_LAYOUT.field("authority").offset == 9
    assert GLOBAL_LAYOUT.field("fee_recipient").offset == 41
    assert GLOBAL_LAYOUT.field("initial_virtual_token_reserves").offset == 73
    assert GLOBAL_LAYOUT.field("fee_basis_points").offset == 105
    assert GLOBAL_LAYOUT.size == 113


def test_bonding_curve_layout_is_packed():
    assert BONDING_CURVE_LAYOUT.field("virtual_token_reserves").offset == 8
    assert BONDING_CURVE_LAYOUT.field("token_total_supply").offset == 40
    assert BONDING_CURVE_LAYOUT.field("complete").offset == 48
    # No padding between the bool and the creator
    assert BONDING_CURVE_LAYOUT.field("creator").offset == 49
    assert BONDING_CURVE_LAYOUT.size == 81


def test_unknown_field_raises_key_error():
    with pytest.raises(KeyError):
        GLOBAL_LAYOUT.field("missing")


def test_decode_global_config(global_buffer, fee_recipient):
    authority = Keypair().pubkey()
    config = decode_global_config(global_buffer(fee_recipient, authority=authority))

    assert config.initialized is True
    assert config.authority == authority
    assert config.fee_recipient == fee_recipient
    assert config.initial_virtual_token_reserves == 1_073_000_000_000_000
    assert config.initial_virtual_sol_reserves == 30_000_000_000
    assert config.initial_real_token_reserves == 793_100_000_000_000
    assert config.token_total_supply == 1_000_000_000_000_000
    assert config.fee_basis_points == 100


def test_decode_bonding_curve(curve_buffer, creator):
    state = decode_bonding_curve(
        curve_buffer(
            creator.pubkey(),
            virtual_token_reserves=1_000,
            virtual_sol_reserves=2_000,
            real_token_reserves=3_000,
            real_sol_reserves=4_000,
            token_total_supply=5_000,
            complete=True,
        )
    )

    assert state.virtual_token_reserves == 1_000
    assert state.virtual_sol_reserves == 2_000
    assert state.real_token_reserves == 3_000
    assert state.real_sol_reserves == 4_000
    assert state.token_total_supply == 5_000
    assert state.complete is True
    assert state.creator == creator.pubkey()


def test_trailing_bytes_are_ignored(curve_buffer, creator):
    data = curve_buffer(creator.pubkey()) + bytes(70)
    assert decode_bonding_curve(data).creator == creator.pubkey()


def test_short_buffer_is_malformed(curve_buffer, creator):
    data = curve_buffer(creator.pubkey())[:80]
    with pytest.raises(MalformedAccount) as exc_info:
        decode_bonding_curve(data)
    assert exc_info.value.account_type == "BondingCurve"


def test_wrong_discriminator_is_malformed(global_buffer, fee_recipient):
    # A Global account decoded as a bonding curve
    with pytest.raises(MalformedAccount):
        decode_bonding_curve(global_buffer(fee_recipient))


def test_invalid_bool_byte_is_malformed(curve_buffer, creator):
    data = bytearray(curve_buffer(creator.pubkey()))
    data[48] = 2
    with pytest.raises(MalformedAccount):
        decode_bonding_curve(bytes(data))


def test_layouts_agree_with_idl(curve_buffer, global_buffer, creator, fee_recipient):
    parser = get_idl_parser(Platform.PUMP_FUN)

    curve_data = curve_buffer(creator.pubkey(), real_sol_reserves=123)
    from_idl = parser.decode_account_data(curve_data, "BondingCurve")
    assert from_idl == BONDING_CURVE_LAYOUT.decode(curve_data)

    global_data = global_buffer(fee_recipient)
    assert parser.decode_account_data(global_data, "Global") == GLOBAL_LAYOUT.decode(
        global_data
    )
