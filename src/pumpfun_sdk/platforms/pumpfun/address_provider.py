"""
Pump.Fun implementation of AddressProvider interface.

This module provides all pump.fun-specific addresses and PDA derivations
by implementing the AddressProvider interface. Every address here is a pure
function of its seeds, so nothing is cached or persisted; callers recompute
the set they need on every operation.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from pumpfun_sdk.core.errors import AddressDerivationError
from pumpfun_sdk.core.pubkeys import SystemAddresses
from pumpfun_sdk.interfaces.core import AddressProvider, Platform

MAX_SEEDS: Final[int] = 16
MAX_SEED_LEN: Final[int] = 32

GLOBAL_SEED: Final[bytes] = b"global"
BONDING_CURVE_SEED: Final[bytes] = b"bonding-curve"
CREATOR_VAULT_SEED: Final[bytes] = b"creator-vault"
EVENT_AUTHORITY_SEED: Final[bytes] = b"__event_authority"
MINT_AUTHORITY_SEED: Final[bytes] = b"mint-authority"
METADATA_SEED: Final[bytes] = b"metadata"


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Derive a program address and its bump seed.

    Args:
        seeds: Ordered seed byte strings
        program_id: Program that owns the derived address

    Returns:
        Tuple of (address, bump)

    Raises:
        AddressDerivationError: If the seeds are out of bounds or no bump exists
    """
    if len(seeds) >= MAX_SEEDS:
        raise AddressDerivationError(
            f"Too many seeds: {len(seeds)} (max {MAX_SEEDS - 1} plus bump)"
        )
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise AddressDerivationError(
                f"Seed longer than {MAX_SEED_LEN} bytes: {bytes(seed)[:8].hex()}..."
            )

    try:
        return Pubkey.find_program_address(list(seeds), program_id)
    except ValueError as e:
        raise AddressDerivationError(
            f"No valid bump for seeds under program {program_id}: {e!s}"
        ) from e


@dataclass
class PumpFunAddresses:
    """Pump.fun program addresses."""

    PROGRAM: Final[Pubkey] = Pubkey.from_string(
        "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
    )

    @staticmethod
    def find_global() -> Pubkey:
        """Derive the global config PDA."""
        return derive([GLOBAL_SEED], PumpFunAddresses.PROGRAM)[0]

    @staticmethod
    def find_bonding_curve(mint: Pubkey) -> Pubkey:
        """Derive the bonding curve PDA for a mint."""
        return derive([BONDING_CURVE_SEED, bytes(mint)], PumpFunAddresses.PROGRAM)[0]

    @staticmethod
    def find_creator_vault(creator: Pubkey) -> Pubkey:
        """Derive the creator vault PDA for a token creator."""
        return derive([CREATOR_VAULT_SEED, bytes(creator)], PumpFunAddresses.PROGRAM)[0]

    @staticmethod
    def find_event_authority() -> Pubkey:
        """Derive the event authority PDA used for self-CPI event logging."""
        return derive([EVENT_AUTHORITY_SEED], PumpFunAddresses.PROGRAM)[0]

    @staticmethod
    def find_mint_authority() -> Pubkey:
        """Derive the mint authority PDA for tokens created by the program."""
        return derive([MINT_AUTHORITY_SEED], PumpFunAddresses.PROGRAM)[0]

    @staticmethod
    def find_metadata(mint: Pubkey) -> Pubkey:
        """Derive the token metadata PDA.

        The metadata account is owned by the token metadata program, not by
        pump.fun, so the derivation is done under that program's id.
        """
        metadata_program = SystemAddresses.METADATA_PROGRAM
        return derive(
            [METADATA_SEED, bytes(metadata_program), bytes(mint)], metadata_program
        )[0]

    @staticmethod
    def find_associated_bonding_curve(mint: Pubkey, bonding_curve: Pubkey) -> Pubkey:
        """Derive the bonding curve's associated token account.

        The curve is itself a PDA (off-curve owner), so this goes through the
        raw associated-token derivation rather than a wallet helper.
        """
        return derive(
            [
                bytes(bonding_curve),
                bytes(SystemAddresses.TOKEN_PROGRAM),
                bytes(mint),
            ],
            SystemAddresses.ASSOCIATED_TOKEN_PROGRAM,
        )[0]


@dataclass(frozen=True)
class DerivedAddressSet:
    """Per-call set of addresses used by a buy or sell instruction."""

    global_account: Pubkey
    bonding_curve: Pubkey
    associated_bonding_curve: Pubkey
    associated_user: Pubkey
    creator_vault: Pubkey
    event_authority: Pubkey


class PumpFunAddressProvider(AddressProvider):
    """Pump.Fun implementation of AddressProvider interface."""

    @property
    def platform(self) -> Platform:
        """Get the platform this provider serves."""
        return Platform.PUMP_FUN

    @property
    def program_id(self) -> Pubkey:
        """Get the main program ID for this platform."""
        return PumpFunAddresses.PROGRAM

    def get_system_addresses(self) -> dict[str, Pubkey]:
        """Get all fixed addresses required for pump.fun instructions.

        Returns:
            Dictionary mapping address names to Pubkey objects
        """
        return {
            **SystemAddresses.get_all_system_addresses(),
            "program": PumpFunAddresses.PROGRAM,
            "global": PumpFunAddresses.find_global(),
            "event_authority": PumpFunAddresses.find_event_authority(),
            "mint_authority": PumpFunAddresses.find_mint_authority(),
        }

    def derive_pool_address(self, base_mint: Pubkey) -> Pubkey:
        """Derive the bonding curve address for a token.

        Args:
            base_mint: Token mint address

        Returns:
            Bonding curve address
        """
        return PumpFunAddresses.find_bonding_curve(base_mint)

    def derive_user_token_account(self, user: Pubkey, mint: Pubkey) -> Pubkey:
        """Derive user's associated token account address.

        Args:
            user: User's wallet address
            mint: Token mint address

        Returns:
            User's associated token account address
        """
        return get_associated_token_address(user, mint)

    def derive_associated_bonding_curve(
        self, mint: Pubkey, bonding_curve: Pubkey | None = None
    ) -> Pubkey:
        """Derive the associated bonding curve (ATA of bonding curve for the token).

        Args:
            mint: Token mint address
            bonding_curve: Bonding curve address, derived from the mint if omitted

        Returns:
            Associated bonding curve address
        """
        if bonding_curve is None:
            bonding_curve = self.derive_pool_address(mint)
        return PumpFunAddresses.find_associated_bonding_curve(mint, bonding_curve)

    def derive_creator_vault(self, creator: Pubkey) -> Pubkey:
        """Derive the creator vault address.

        Args:
            creator: Token creator address (never the trader, unless they coincide)

        Returns:
            Creator vault address
        """
        return PumpFunAddresses.find_creator_vault(creator)

    def derive_metadata_address(self, mint: Pubkey) -> Pubkey:
        """Derive the token metadata address."""
        return PumpFunAddresses.find_metadata(mint)

    def derive_trade_addresses(
        self, mint: Pubkey, user: Pubkey, creator: Pubkey
    ) -> DerivedAddressSet:
        """Derive every PDA and token account a buy or sell needs.

        Args:
            mint: Token mint address
            user: Trader's wallet address
            creator: Token creator (from the decoded curve, or the creator
                themselves when the curve is created in the same transaction)

        Returns:
            DerivedAddressSet for the trade
        """
        bonding_curve = self.derive_pool_address(mint)
        return DerivedAddressSet(
            global_account=PumpFunAddresses.find_global(),
            bonding_curve=bonding_curve,
            associated_bonding_curve=self.derive_associated_bonding_curve(
                mint, bonding_curve
            ),
            associated_user=self.derive_user_token_account(user, mint),
            creator_vault=self.derive_creator_vault(creator),
            event_authority=PumpFunAddresses.find_event_authority(),
        )
