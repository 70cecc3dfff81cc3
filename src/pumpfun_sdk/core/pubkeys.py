"""
System addresses and constants for Solana blockchain operations.
This module contains only system-level addresses shared by every instruction.
Program-specific addresses are handled by the pump.fun AddressProvider.
"""

from typing import Final

from solders.pubkey import Pubkey

# Constants
LAMPORTS_PER_SOL: Final[int] = 1_000_000_000
TOKEN_DECIMALS: Final[int] = 6
BASIS_POINTS_DIVISOR: Final[int] = 10_000
U64_MAX: Final[int] = 2**64 - 1

# Commitment levels accepted by the RPC node
COMMITMENT_LEVELS: Final[tuple[str, ...]] = ("processed", "confirmed", "finalized")
DEFAULT_COMMITMENT: Final[str] = "confirmed"
DEFAULT_FINALITY: Final[str] = "finalized"

# Core system programs
SYSTEM_PROGRAM: Final[Pubkey] = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
)
ASSOCIATED_TOKEN_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)
METADATA_PROGRAM: Final[Pubkey] = Pubkey.from_string(
    "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
)

# System accounts
RENT: Final[Pubkey] = Pubkey.from_string(
    "SysvarRent111111111111111111111111111111111"
)


class SystemAddresses:
    """System-level Solana addresses referenced by pump.fun instructions."""

    SYSTEM_PROGRAM = SYSTEM_PROGRAM
    TOKEN_PROGRAM = TOKEN_PROGRAM
    ASSOCIATED_TOKEN_PROGRAM = ASSOCIATED_TOKEN_PROGRAM
    METADATA_PROGRAM = METADATA_PROGRAM
    RENT = RENT

    @classmethod
    def get_all_system_addresses(cls) -> dict[str, Pubkey]:
        """Get all system addresses as a dictionary.

        Returns:
            Dictionary mapping address names to Pubkey objects
        """
        return {
            "system_program": cls.SYSTEM_PROGRAM,
            "token_program": cls.TOKEN_PROGRAM,
            "associated_token_program": cls.ASSOCIATED_TOKEN_PROGRAM,
            "mpl_token_metadata": cls.METADATA_PROGRAM,
            "rent": cls.RENT,
        }
