"""
Pump.fun account layouts and decoders.

Account buffers are Anchor accounts: an 8-byte discriminator followed by the
borsh-packed fields (little-endian integers, no padding). Each layout is a
versioned descriptor of (field name -> offset, width, kind), so a program
upgrade that moves a field is a single data change here.
"""

import struct
from dataclasses import dataclass
from typing import Any, Final

from solders.pubkey import Pubkey

from pumpfun_sdk.core.errors import MalformedAccount
from pumpfun_sdk.core.pubkeys import LAMPORTS_PER_SOL, TOKEN_DECIMALS
from pumpfun_sdk.platforms.pumpfun import pricing
from pumpfun_sdk.utils.idl_parser import DISCRIMINATOR_SIZE, calculate_discriminator
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)

_FIELD_WIDTHS: Final[dict[str, int]] = {"u64": 8, "bool": 1, "pubkey": 32}


@dataclass(frozen=True)
class FieldSpec:
    """Position of one field inside an account buffer."""

    name: str
    offset: int
    width: int
    kind: str

    def decode(self, data: bytes) -> Any:
        """Decode this field from a buffer already checked for length."""
        if self.kind == "u64":
            return struct.unpack_from("<Q", data, self.offset)[0]
        if self.kind == "bool":
            raw = data[self.offset]
            if raw not in (0, 1):
                raise ValueError(f"invalid bool byte {raw} for field {self.name}")
            return raw == 1
        if self.kind == "pubkey":
            return Pubkey.from_bytes(data[self.offset : self.offset + self.width])
        raise ValueError(f"unsupported field kind {self.kind}")


@dataclass(frozen=True)
class AccountLayout:
    """Versioned fixed layout of an Anchor account."""

    name: str
    version: int
    discriminator: bytes
    fields: tuple[FieldSpec, ...]

    @property
    def size(self) -> int:
        """Minimum buffer length covering the discriminator and every field."""
        return max(
            (f.offset + f.width for f in self.fields), default=DISCRIMINATOR_SIZE
        )

    def field(self, name: str) -> FieldSpec:
        """Look up a field descriptor by name."""
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.name} v{self.version} has no field {name}")

    def decode(self, data: bytes) -> dict[str, Any]:
        """Decode a raw buffer into a field dictionary.

        Raises:
            MalformedAccount: If the buffer is short, the discriminator does
                not match, or a field holds an invalid value
        """
        if len(data) < self.size:
            raise MalformedAccount(
                self.name, f"buffer is {len(data)} bytes, layout needs {self.size}"
            )
        if data[:DISCRIMINATOR_SIZE] != self.discriminator:
            raise MalformedAccount(
                self.name,
                f"discriminator {bytes(data[:DISCRIMINATOR_SIZE]).hex()} "
                f"!= expected {self.discriminator.hex()}",
            )
        try:
            return {spec.name: spec.decode(data) for spec in self.fields}
        except ValueError as e:
            raise MalformedAccount(self.name, str(e)) from e


def packed_layout(
    name: str, version: int, fields: list[tuple[str, str]]
) -> AccountLayout:
    """Build a layout whose fields follow the discriminator back to back."""
    offset = DISCRIMINATOR_SIZE
    specs = []
    for field_name, kind in fields:
        width = _FIELD_WIDTHS[kind]
        specs.append(FieldSpec(field_name, offset, width, kind))
        offset += width
    return AccountLayout(
        name=name,
        version=version,
        discriminator=calculate_discriminator("account", name),
        fields=tuple(specs),
    )


GLOBAL_LAYOUT_V1: Final[AccountLayout] = packed_layout(
    "Global",
    1,
    [
        ("initialized", "bool"),
        ("authority", "pubkey"),
        ("fee_recipient", "pubkey"),
        ("initial_virtual_token_reserves", "u64"),
        ("initial_virtual_sol_reserves", "u64"),
        ("initial_real_token_reserves", "u64"),
        ("token_total_supply", "u64"),
        ("fee_basis_points", "u64"),
    ],
)

BONDING_CURVE_LAYOUT_V1: Final[AccountLayout] = packed_layout(
    "BondingCurve",
    1,
    [
        ("virtual_token_reserves", "u64"),
        ("virtual_sol_reserves", "u64"),
        ("real_token_reserves", "u64"),
        ("real_sol_reserves", "u64"),
        ("token_total_supply", "u64"),
        ("complete", "bool"),
        ("creator", "pubkey"),
    ],
)

GLOBAL_LAYOUT: AccountLayout = GLOBAL_LAYOUT_V1
BONDING_CURVE_LAYOUT: AccountLayout = BONDING_CURVE_LAYOUT_V1


@dataclass(frozen=True)
class GlobalConfig:
    """Program-wide configuration (singleton ``global`` account)."""

    initialized: bool
    authority: Pubkey
    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int

    def get_initial_buy_price(self, sol_in: int) -> int:
        """Tokens received for ``sol_in`` lamports on a freshly created curve."""
        return pricing.get_initial_buy_price(self, sol_in)


@dataclass(frozen=True)
class BondingCurveState:
    """Represents the state of a pump.fun bonding curve."""

    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool
    creator: Pubkey

    @property
    def token_reserves(self) -> float:
        """Token reserves in decimal form."""
        return self.virtual_token_reserves / 10**TOKEN_DECIMALS

    @property
    def sol_reserves(self) -> float:
        """SOL reserves in decimal form."""
        return self.virtual_sol_reserves / LAMPORTS_PER_SOL

    def calculate_price(self) -> float:
        """Calculate current token price in SOL. Display only, never used for pricing."""
        if self.virtual_token_reserves <= 0:
            return 0.0

        price_lamports = self.virtual_sol_reserves / self.virtual_token_reserves
        return price_lamports * (10**TOKEN_DECIMALS) / LAMPORTS_PER_SOL

    def get_buy_price(self, sol_in: int) -> int:
        """Tokens received for ``sol_in`` lamports at the current reserves."""
        return pricing.get_buy_price(self, sol_in)

    def get_sell_price(self, token_in: int, fee_basis_points: int) -> int:
        """Net lamports received for ``token_in`` tokens after the protocol fee."""
        return pricing.get_sell_price(self, token_in, fee_basis_points)

    def get_market_cap_sol(self) -> int:
        """Market cap in lamports at the current virtual price."""
        return pricing.get_market_cap_sol(self)

    def get_final_market_cap_sol(self, fee_basis_points: int) -> int:
        """Market cap in lamports once the remaining real tokens are bought."""
        return pricing.get_final_market_cap_sol(self, fee_basis_points)


def decode_global_config(
    data: bytes, layout: AccountLayout = GLOBAL_LAYOUT
) -> GlobalConfig:
    """Decode the global config account.

    Args:
        data: Raw account data
        layout: Layout descriptor to decode with

    Returns:
        Decoded GlobalConfig

    Raises:
        MalformedAccount: If data is too short or not a Global account
    """
    return GlobalConfig(**layout.decode(data))


def decode_bonding_curve(
    data: bytes, layout: AccountLayout = BONDING_CURVE_LAYOUT
) -> BondingCurveState:
    """Decode bonding curve state from raw account data.

    Args:
        data: Raw account data
        layout: Layout descriptor to decode with

    Returns:
        Decoded BondingCurveState

    Raises:
        MalformedAccount: If data is too short or not a BondingCurve account
    """
    state = BondingCurveState(**layout.decode(data))
    logger.debug(
        f"Decoded bonding curve v{layout.version}: "
        f"vtok={state.virtual_token_reserves} vsol={state.virtual_sol_reserves} "
        f"complete={state.complete}"
    )
    return state
