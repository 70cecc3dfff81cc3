"""
Shared fixtures: an in-memory ledger transport and account buffer builders.
"""

import struct

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from pumpfun_sdk.interfaces.core import LedgerTransport, TransactionResult
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddresses
from pumpfun_sdk.utils.idl_parser import calculate_discriminator

GLOBAL_DISCRIMINATOR = calculate_discriminator("account", "Global")
CURVE_DISCRIMINATOR = calculate_discriminator("account", "BondingCurve")

# Launch parameters of the live program
INITIAL_VIRTUAL_TOKEN_RESERVES = 1_073_000_000_000_000
INITIAL_VIRTUAL_SOL_RESERVES = 30_000_000_000
INITIAL_REAL_TOKEN_RESERVES = 793_100_000_000_000
TOKEN_TOTAL_SUPPLY = 1_000_000_000_000_000
FEE_BASIS_POINTS = 100


def build_global_buffer(
    fee_recipient: Pubkey,
    authority: Pubkey | None = None,
    initialized: bool = True,
    initial_virtual_token_reserves: int = INITIAL_VIRTUAL_TOKEN_RESERVES,
    initial_virtual_sol_reserves: int = INITIAL_VIRTUAL_SOL_RESERVES,
    initial_real_token_reserves: int = INITIAL_REAL_TOKEN_RESERVES,
    token_total_supply: int = TOKEN_TOTAL_SUPPLY,
    fee_basis_points: int = FEE_BASIS_POINTS,
) -> bytes:
    return (
        GLOBAL_DISCRIMINATOR
        + bytes([1 if initialized else 0])
        + bytes(authority or Pubkey.default())
        + bytes(fee_recipient)
        + struct.pack(
            "<QQQQQ",
            initial_virtual_token_reserves,
            initial_virtual_sol_reserves,
            initial_real_token_reserves,
            token_total_supply,
            fee_basis_points,
        )
    )


def build_curve_buffer(
    creator: Pubkey,
    virtual_token_reserves: int = INITIAL_VIRTUAL_TOKEN_RESERVES,
    virtual_sol_reserves: int = INITIAL_VIRTUAL_SOL_RESERVES,
    real_token_reserves: int = INITIAL_REAL_TOKEN_RESERVES,
    real_sol_reserves: int = 0,
    token_total_supply: int = TOKEN_TOTAL_SUPPLY,
    complete: bool = False,
) -> bytes:
    return (
        CURVE_DISCRIMINATOR
        + struct.pack(
            "<QQQQQ",
            virtual_token_reserves,
            virtual_sol_reserves,
            real_token_reserves,
            real_sol_reserves,
            token_total_supply,
        )
        + bytes([1 if complete else 0])
        + bytes(creator)
    )


class FakeTransport(LedgerTransport):
    """In-memory ledger: serves account buffers and records submissions."""

    def __init__(self):
        self.accounts: dict[Pubkey, bytes] = {}
        self.submitted: list[dict] = []
        self.reads: list[Pubkey] = []

    async def get_account_buffer(self, address, commitment=None):
        self.reads.append(address)
        return self.accounts.get(address)

    async def submit(
        self, transaction, signers, priority_fee=None, commitment=None, finality=None
    ):
        self.submitted.append(
            {
                "transaction": transaction,
                "signers": signers,
                "priority_fee": priority_fee,
                "commitment": commitment,
                "finality": finality,
            }
        )
        return TransactionResult(success=True, signature="fake-signature", slot=42)


@pytest.fixture
def global_buffer():
    """Factory for raw Global account data."""
    return build_global_buffer


@pytest.fixture
def curve_buffer():
    """Factory for raw BondingCurve account data."""
    return build_curve_buffer


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def creator():
    return Keypair()


@pytest.fixture
def trader():
    return Keypair()


@pytest.fixture
def mint():
    return Keypair()


@pytest.fixture
def fee_recipient():
    return Keypair().pubkey()


@pytest.fixture
def ledger(transport, creator, mint, fee_recipient):
    """Transport holding the global config and a fresh curve for ``mint``."""
    transport.accounts[PumpFunAddresses.find_global()] = build_global_buffer(
        fee_recipient
    )
    transport.accounts[PumpFunAddresses.find_bonding_curve(mint.pubkey())] = (
        build_curve_buffer(creator.pubkey())
    )
    return transport
