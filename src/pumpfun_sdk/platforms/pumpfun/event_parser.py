"""
Pump.Fun implementation of EventParser interface.

Anchor events are emitted as ``Program data: <base64>`` log lines. The payload
is an 8-byte event discriminator followed by the borsh-encoded event fields.
Logs also carry other programs' data, so an unknown discriminator is skipped
rather than treated as an error. Newer program versions append fields to
existing events; bytes past the known fields are ignored.
"""

import base64
import binascii
import struct
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from solders.pubkey import Pubkey

from pumpfun_sdk.core.errors import MalformedEvent
from pumpfun_sdk.interfaces.core import EventParser, Platform
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddresses
from pumpfun_sdk.utils.idl_parser import (
    DISCRIMINATOR_SIZE,
    PUBLIC_KEY_SIZE,
    STRING_LENGTH_PREFIX_SIZE,
    calculate_discriminator,
)
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)

PROGRAM_DATA_PREFIX: Final[str] = "Program data: "


@dataclass(frozen=True)
class CreateEvent:
    """A token and its bonding curve were created."""

    name: str
    symbol: str
    uri: str
    mint: Pubkey
    bonding_curve: Pubkey
    user: Pubkey

    event_type = "createEvent"


@dataclass(frozen=True)
class TradeEvent:
    """A buy or sell executed against a bonding curve."""

    mint: Pubkey
    sol_amount: int
    token_amount: int
    is_buy: bool
    user: Pubkey
    timestamp: int
    virtual_sol_reserves: int
    virtual_token_reserves: int

    event_type = "tradeEvent"


@dataclass(frozen=True)
class CompleteEvent:
    """A bonding curve sold out and stopped trading."""

    user: Pubkey
    mint: Pubkey
    bonding_curve: Pubkey
    timestamp: int

    event_type = "completeEvent"


@dataclass(frozen=True)
class SetParamsEvent:
    """The program authority changed the global parameters."""

    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int

    event_type = "setParamsEvent"


PumpFunEvent = CreateEvent | TradeEvent | CompleteEvent | SetParamsEvent

EVENT_TYPES: Final[dict[str, type]] = {
    "createEvent": CreateEvent,
    "tradeEvent": TradeEvent,
    "completeEvent": CompleteEvent,
    "setParamsEvent": SetParamsEvent,
}


@dataclass(frozen=True)
class EventEnvelope:
    """A decoded event with the transaction context it was observed in."""

    event: PumpFunEvent
    slot: int
    signature: str

    @property
    def event_type(self) -> str:
        return self.event.event_type


class _BorshReader:
    """Sequential little-endian reader over an event body."""

    def __init__(self, event_name: str, data: bytes):
        self.event_name = event_name
        self.data = data
        self.offset = 0

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            raise MalformedEvent(
                self.event_name,
                f"need {end} bytes, body has {len(self.data)}",
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def i64(self) -> int:
        return struct.unpack("<q", self._take(8))[0]

    def boolean(self) -> bool:
        raw = self._take(1)[0]
        if raw not in (0, 1):
            raise MalformedEvent(self.event_name, f"invalid bool byte {raw}")
        return raw == 1

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(bytes(self._take(PUBLIC_KEY_SIZE)))

    def string(self) -> str:
        length = struct.unpack("<I", self._take(STRING_LENGTH_PREFIX_SIZE))[0]
        raw = self._take(length)
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEvent(self.event_name, f"invalid UTF-8 string: {e}") from e


def _decode_create(r: _BorshReader) -> CreateEvent:
    return CreateEvent(
        name=r.string(),
        symbol=r.string(),
        uri=r.string(),
        mint=r.pubkey(),
        bonding_curve=r.pubkey(),
        user=r.pubkey(),
    )


def _decode_trade(r: _BorshReader) -> TradeEvent:
    return TradeEvent(
        mint=r.pubkey(),
        sol_amount=r.u64(),
        token_amount=r.u64(),
        is_buy=r.boolean(),
        user=r.pubkey(),
        timestamp=r.i64(),
        virtual_sol_reserves=r.u64(),
        virtual_token_reserves=r.u64(),
    )


def _decode_complete(r: _BorshReader) -> CompleteEvent:
    return CompleteEvent(
        user=r.pubkey(),
        mint=r.pubkey(),
        bonding_curve=r.pubkey(),
        timestamp=r.i64(),
    )


def _decode_set_params(r: _BorshReader) -> SetParamsEvent:
    return SetParamsEvent(
        fee_recipient=r.pubkey(),
        initial_virtual_token_reserves=r.u64(),
        initial_virtual_sol_reserves=r.u64(),
        initial_real_token_reserves=r.u64(),
        token_total_supply=r.u64(),
        fee_basis_points=r.u64(),
    )


# discriminator -> (event name, decoder)
_EVENT_DECODERS: Final[dict[bytes, tuple[str, Callable[[_BorshReader], PumpFunEvent]]]] = {
    calculate_discriminator("event", "CreateEvent"): ("CreateEvent", _decode_create),
    calculate_discriminator("event", "TradeEvent"): ("TradeEvent", _decode_trade),
    calculate_discriminator("event", "CompleteEvent"): ("CompleteEvent", _decode_complete),
    calculate_discriminator("event", "SetParamsEvent"): (
        "SetParamsEvent",
        _decode_set_params,
    ),
}


def decode_event(data: bytes) -> PumpFunEvent | None:
    """Decode one event payload (discriminator + body).

    Returns:
        The decoded event, or None if the discriminator is not a pump.fun event

    Raises:
        MalformedEvent: If the discriminator is known but the body is truncated
            or holds invalid values
    """
    if len(data) < DISCRIMINATOR_SIZE:
        return None

    entry = _EVENT_DECODERS.get(bytes(data[:DISCRIMINATOR_SIZE]))
    if entry is None:
        return None

    event_name, decoder = entry
    return decoder(_BorshReader(event_name, data[DISCRIMINATOR_SIZE:]))


class PumpFunEventParser(EventParser):
    """Pump.Fun implementation of EventParser interface."""

    @property
    def platform(self) -> Platform:
        """Get the platform this parser serves."""
        return Platform.PUMP_FUN

    def get_program_id(self) -> Pubkey:
        """Get the pump.fun program ID this parser monitors."""
        return PumpFunAddresses.PROGRAM

    def get_event_discriminators(self) -> dict[str, bytes]:
        """Get the discriminator of each known event.

        Returns:
            Dictionary mapping event names to discriminator bytes
        """
        return {name: disc for disc, (name, _) in _EVENT_DECODERS.items()}

    def decode_event(self, data: bytes) -> PumpFunEvent | None:
        """Decode one raw event payload, or None if it is not a pump.fun event."""
        return decode_event(data)

    def parse_events_from_logs(
        self, logs: list[str], slot: int, signature: str
    ) -> list[EventEnvelope]:
        """Decode every pump.fun event in a transaction's logs.

        Args:
            logs: Log lines of one transaction
            slot: Slot the transaction landed in
            signature: Transaction signature

        Returns:
            Envelopes in log order

        Raises:
            MalformedEvent: If a pump.fun event payload is truncated
        """
        envelopes = []
        for log in logs:
            if not log.startswith(PROGRAM_DATA_PREFIX):
                continue

            encoded_data = log[len(PROGRAM_DATA_PREFIX) :].strip()
            try:
                decoded_data = base64.b64decode(encoded_data, validate=True)
            except binascii.Error:
                logger.debug(f"Skipping non-base64 program data in {signature}")
                continue

            event = decode_event(decoded_data)
            if event is None:
                continue

            logger.debug(f"Decoded {event.event_type} from {signature} at slot {slot}")
            envelopes.append(EventEnvelope(event=event, slot=slot, signature=signature))
        return envelopes
