import base64
import struct

import pytest
from solders.keypair import Keypair

from pumpfun_sdk.core.errors import MalformedEvent
from pumpfun_sdk.interfaces.core import Platform
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddresses
from pumpfun_sdk.platforms.pumpfun.event_parser import (
    CompleteEvent,
    CreateEvent,
    PumpFunEventParser,
    SetParamsEvent,
    TradeEvent,
    decode_event,
)
from pumpfun_sdk.utils.idl_manager import get_idl_parser
from pumpfun_sdk.utils.idl_parser import calculate_discriminator


def borsh_string(value: str) -> bytes:
    encoded = value.encode()
    return struct.pack("<I", len(encoded)) + encoded


def create_payload(name, symbol, uri, mint, bonding_curve, user) -> bytes:
    return (
        calculate_discriminator("event", "CreateEvent")
        + borsh_string(name)
        + borsh_string(symbol)
        + borsh_string(uri)
        + bytes(mint)
        + bytes(bonding_curve)
        + bytes(user)
    )


def trade_payload(mint, user, is_buy=True) -> bytes:
    return (
        calculate_discriminator("event", "TradeEvent")
        + bytes(mint)
        + struct.pack("<QQ", 1_000_000_000, 34_612_903_225_806)
        + bytes([1 if is_buy else 0])
        + bytes(user)
        + struct.pack("<qQQ", 1_700_000_000, 31_000_000_000, 1_038_387_096_774_194)
    )


@pytest.fixture
def parser():
    return PumpFunEventParser()


def test_decode_create_event():
    mint, curve, user = (Keypair().pubkey() for _ in range(3))

    event = decode_event(create_payload("Token", "TKN", "ipfs://meta", mint, curve, user))

    assert event == CreateEvent(
        name="Token", symbol="TKN", uri="ipfs://meta", mint=mint, bonding_curve=curve, user=user
    )
    assert event.event_type == "createEvent"


def test_decode_trade_event():
    mint, user = Keypair().pubkey(), Keypair().pubkey()

    event = decode_event(trade_payload(mint, user, is_buy=False))

    assert event == TradeEvent(
        mint=mint,
        sol_amount=1_000_000_000,
        token_amount=34_612_903_225_806,
        is_buy=False,
        user=user,
        timestamp=1_700_000_000,
        virtual_sol_reserves=31_000_000_000,
        virtual_token_reserves=1_038_387_096_774_194,
    )


def test_decode_complete_event():
    user, mint, curve = (Keypair().pubkey() for _ in range(3))
    payload = (
        calculate_discriminator("event", "CompleteEvent")
        + bytes(user)
        + bytes(mint)
        + bytes(curve)
        + struct.pack("<q", 1_700_000_123)
    )

    assert decode_event(payload) == CompleteEvent(
        user=user, mint=mint, bonding_curve=curve, timestamp=1_700_000_123
    )


def test_decode_set_params_event():
    fee_recipient = Keypair().pubkey()
    payload = (
        calculate_discriminator("event", "SetParamsEvent")
        + bytes(fee_recipient)
        + struct.pack("<QQQQQ", 1, 2, 3, 4, 100)
    )

    event = decode_event(payload)

    assert isinstance(event, SetParamsEvent)
    assert event.fee_recipient == fee_recipient
    assert event.fee_basis_points == 100
    assert event.event_type == "setParamsEvent"


def test_appended_fields_are_ignored():
    mint, user = Keypair().pubkey(), Keypair().pubkey()
    payload = trade_payload(mint, user) + bytes(64)

    assert decode_event(payload).mint == mint


def test_unknown_discriminator_is_skipped():
    assert decode_event(b"\x01" * 8 + bytes(100)) is None
    assert decode_event(b"\x01\x02") is None


def test_truncated_body_is_malformed():
    payload = trade_payload(Keypair().pubkey(), Keypair().pubkey())[:60]

    with pytest.raises(MalformedEvent) as exc_info:
        decode_event(payload)
    assert exc_info.value.event_name == "TradeEvent"


def test_invalid_bool_is_malformed():
    payload = bytearray(trade_payload(Keypair().pubkey(), Keypair().pubkey()))
    payload[8 + 32 + 16] = 7

    with pytest.raises(MalformedEvent):
        decode_event(bytes(payload))


def test_string_length_past_end_is_malformed():
    payload = calculate_discriminator("event", "CreateEvent") + struct.pack("<I", 1_000)

    with pytest.raises(MalformedEvent):
        decode_event(payload + b"abc")


def test_event_discriminators_match_idl(parser):
    assert parser.get_event_discriminators() == get_idl_parser(
        Platform.PUMP_FUN
    ).get_event_discriminators()
    assert parser.get_program_id() == PumpFunAddresses.PROGRAM


def test_parse_events_from_logs(parser):
    mint, user = Keypair().pubkey(), Keypair().pubkey()
    curve = PumpFunAddresses.find_bonding_curve(mint)
    create = create_payload("Token", "TKN", "ipfs://meta", mint, curve, user)
    trade = trade_payload(mint, user)
    logs = [
        f"Program {PumpFunAddresses.PROGRAM} invoke [1]",
        "Program log: Instruction: Create",
        f"Program data: {base64.b64encode(create).decode()}",
        "Program data: not*base64",
        f"Program data: {base64.b64encode(b'x' * 16).decode()}",
        f"Program data: {base64.b64encode(trade).decode()}",
        f"Program {PumpFunAddresses.PROGRAM} success",
    ]

    envelopes = parser.parse_events_from_logs(logs, slot=123, signature="sig")

    assert [e.event_type for e in envelopes] == ["createEvent", "tradeEvent"]
    assert all(e.slot == 123 and e.signature == "sig" for e in envelopes)
    assert envelopes[0].event.mint == mint


def test_parse_events_from_logs_propagates_malformed(parser):
    truncated = trade_payload(Keypair().pubkey(), Keypair().pubkey())[:20]
    logs = [f"Program data: {base64.b64encode(truncated).decode()}"]

    with pytest.raises(MalformedEvent):
        parser.parse_events_from_logs(logs, slot=1, signature="sig")
