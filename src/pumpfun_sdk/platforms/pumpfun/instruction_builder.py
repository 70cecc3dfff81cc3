"""
Pump.Fun implementation of InstructionBuilder interface.

Each instruction is described by a declarative account schema (ordered slots
with signer/writable flags) plus a borsh payload. The schemas are checked
against the program's published IDL when the builder is constructed, so a
program upgrade that reorders or renames accounts fails loudly at startup
instead of producing transactions the runtime rejects.
"""

import struct
from dataclasses import dataclass
from typing import Any, Final

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.instructions import create_idempotent_associated_token_account

from pumpfun_sdk.core.errors import SchemaMismatchError
from pumpfun_sdk.core.pubkeys import U64_MAX, SystemAddresses
from pumpfun_sdk.interfaces.core import InstructionBuilder, Platform
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddressProvider
from pumpfun_sdk.utils.idl_manager import get_idl_parser
from pumpfun_sdk.utils.idl_parser import IDLParser, calculate_discriminator
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountSlot:
    """One position in an instruction's account list."""

    name: str
    is_signer: bool = False
    is_writable: bool = False


CREATE_ACCOUNTS: Final[tuple[AccountSlot, ...]] = (
    AccountSlot("mint", is_signer=True, is_writable=True),
    AccountSlot("mint_authority"),
    AccountSlot("bonding_curve", is_writable=True),
    AccountSlot("associated_bonding_curve", is_writable=True),
    AccountSlot("global"),
    AccountSlot("mpl_token_metadata"),
    AccountSlot("metadata", is_writable=True),
    AccountSlot("user", is_signer=True, is_writable=True),
    AccountSlot("system_program"),
    AccountSlot("token_program"),
    AccountSlot("associated_token_program"),
    AccountSlot("rent"),
    AccountSlot("event_authority"),
    AccountSlot("program"),
)

BUY_ACCOUNTS: Final[tuple[AccountSlot, ...]] = (
    AccountSlot("global"),
    AccountSlot("fee_recipient", is_writable=True),
    AccountSlot("mint"),
    AccountSlot("bonding_curve", is_writable=True),
    AccountSlot("associated_bonding_curve", is_writable=True),
    AccountSlot("associated_user", is_writable=True),
    AccountSlot("user", is_signer=True, is_writable=True),
    AccountSlot("system_program"),
    AccountSlot("token_program"),
    AccountSlot("creator_vault", is_writable=True),
    AccountSlot("event_authority"),
    AccountSlot("program"),
)

# Same accounts as buy, but creator_vault precedes token_program.
SELL_ACCOUNTS: Final[tuple[AccountSlot, ...]] = (
    AccountSlot("global"),
    AccountSlot("fee_recipient", is_writable=True),
    AccountSlot("mint"),
    AccountSlot("bonding_curve", is_writable=True),
    AccountSlot("associated_bonding_curve", is_writable=True),
    AccountSlot("associated_user", is_writable=True),
    AccountSlot("user", is_signer=True, is_writable=True),
    AccountSlot("system_program"),
    AccountSlot("creator_vault", is_writable=True),
    AccountSlot("token_program"),
    AccountSlot("event_authority"),
    AccountSlot("program"),
)

INSTRUCTION_SCHEMAS: Final[dict[str, tuple[AccountSlot, ...]]] = {
    "create": CREATE_ACCOUNTS,
    "buy": BUY_ACCOUNTS,
    "sell": SELL_ACCOUNTS,
}

CREATE_DISCRIMINATOR: Final[bytes] = calculate_discriminator("global", "create")
BUY_DISCRIMINATOR: Final[bytes] = calculate_discriminator("global", "buy")
SELL_DISCRIMINATOR: Final[bytes] = calculate_discriminator("global", "sell")

_DISCRIMINATORS: Final[dict[str, bytes]] = {
    "create": CREATE_DISCRIMINATOR,
    "buy": BUY_DISCRIMINATOR,
    "sell": SELL_DISCRIMINATOR,
}


def encode_string(value: str) -> bytes:
    """Borsh string: u32 little-endian byte length followed by UTF-8 bytes."""
    encoded = value.encode("utf-8")
    return struct.pack("<I", len(encoded)) + encoded


def encode_u64(name: str, value: int) -> bytes:
    """Borsh u64, rejecting values outside the unsigned 64-bit range."""
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{name} must fit in u64, got {value}")
    return struct.pack("<Q", value)


def validate_schemas(idl_parser: IDLParser) -> None:
    """Check every local account schema and discriminator against the IDL.

    Args:
        idl_parser: Parser over the program's published IDL

    Raises:
        SchemaMismatchError: On any difference in names, order, flags or
            discriminator bytes
    """
    idl_discriminators = idl_parser.get_instruction_discriminators()

    for name, schema in INSTRUCTION_SCHEMAS.items():
        try:
            idl_accounts = idl_parser.get_instruction_accounts(name)
        except KeyError as e:
            raise SchemaMismatchError(
                f"Instruction '{name}' is not declared by the IDL"
            ) from e

        local_accounts = [(s.name, s.is_signer, s.is_writable) for s in schema]
        if local_accounts != idl_accounts:
            raise SchemaMismatchError(
                f"Account schema for '{name}' does not match the IDL",
                {"local": local_accounts, "idl": idl_accounts},
            )

        if idl_discriminators.get(name) != _DISCRIMINATORS[name]:
            raise SchemaMismatchError(
                f"Discriminator for '{name}' does not match the IDL",
                {
                    "local": _DISCRIMINATORS[name].hex(),
                    "idl": (idl_discriminators.get(name) or b"").hex(),
                },
            )


class PumpFunInstructionBuilder(InstructionBuilder):
    """Pump.Fun implementation of InstructionBuilder interface."""

    def __init__(
        self,
        idl_parser: IDLParser | None = None,
        address_provider: PumpFunAddressProvider | None = None,
    ):
        """Initialize the builder and validate its schemas.

        Args:
            idl_parser: Pre-loaded IDL parser, defaults to the bundled pump.fun IDL
            address_provider: Address provider, a fresh one by default

        Raises:
            SchemaMismatchError: If the schemas drift from the IDL
        """
        self._idl_parser = idl_parser or get_idl_parser(Platform.PUMP_FUN)
        self._address_provider = address_provider or PumpFunAddressProvider()

        validate_schemas(self._idl_parser)
        logger.debug("Pump.fun instruction schemas validated against IDL")

    @property
    def platform(self) -> Platform:
        """Get the platform this builder serves."""
        return Platform.PUMP_FUN

    @property
    def address_provider(self) -> PumpFunAddressProvider:
        """Address provider used to fill account slots."""
        return self._address_provider

    @staticmethod
    def _account_metas(
        schema: tuple[AccountSlot, ...], addresses: dict[str, Pubkey]
    ) -> list[AccountMeta]:
        """Resolve a schema into account metas, in schema order."""
        return [
            AccountMeta(
                pubkey=addresses[slot.name],
                is_signer=slot.is_signer,
                is_writable=slot.is_writable,
            )
            for slot in schema
        ]

    def _trade_addresses(
        self, user: Pubkey, mint: Pubkey, fee_recipient: Pubkey, creator: Pubkey
    ) -> dict[str, Pubkey]:
        derived = self._address_provider.derive_trade_addresses(mint, user, creator)
        return {
            **self._address_provider.get_system_addresses(),
            "global": derived.global_account,
            "fee_recipient": fee_recipient,
            "mint": mint,
            "bonding_curve": derived.bonding_curve,
            "associated_bonding_curve": derived.associated_bonding_curve,
            "associated_user": derived.associated_user,
            "user": user,
            "creator_vault": derived.creator_vault,
        }

    def build_create_instruction(
        self, creator: Pubkey, mint: Pubkey, name: str, symbol: str, uri: str
    ) -> Instruction:
        """Build the token creation instruction.

        Args:
            creator: Creator's wallet (payer and recorded token creator)
            mint: New mint address (must sign)
            name: Token name
            symbol: Token symbol
            uri: Metadata URI

        Returns:
            Create instruction
        """
        bonding_curve = self._address_provider.derive_pool_address(mint)
        addresses = {
            **self._address_provider.get_system_addresses(),
            "mint": mint,
            "bonding_curve": bonding_curve,
            "associated_bonding_curve": self._address_provider.derive_associated_bonding_curve(
                mint, bonding_curve
            ),
            "metadata": self._address_provider.derive_metadata_address(mint),
            "user": creator,
        }

        data = (
            CREATE_DISCRIMINATOR
            + encode_string(name)
            + encode_string(symbol)
            + encode_string(uri)
            + bytes(creator)
        )

        return Instruction(
            self._address_provider.program_id,
            data,
            self._account_metas(CREATE_ACCOUNTS, addresses),
        )

    def build_buy_instructions(
        self,
        user: Pubkey,
        mint: Pubkey,
        fee_recipient: Pubkey,
        creator: Pubkey,
        amount: int,
        max_sol_cost: int,
        ata_exists: bool = True,
    ) -> list[Instruction]:
        """Build buy instruction(s).

        Args:
            user: Buyer's wallet address
            mint: Token mint address
            fee_recipient: Protocol fee recipient from the global config
            creator: Token creator (selects the creator vault)
            amount: Exact token amount to buy (raw units)
            max_sol_cost: Maximum lamports to spend, slippage included
            ata_exists: Whether the buyer's token account already exists

        Returns:
            Instructions, with an associated token account creation first when
            ``ata_exists`` is False
        """
        addresses = self._trade_addresses(user, mint, fee_recipient, creator)
        data = (
            BUY_DISCRIMINATOR
            + encode_u64("amount", amount)
            + encode_u64("max_sol_cost", max_sol_cost)
        )

        instructions = []
        if not ata_exists:
            instructions.append(
                create_idempotent_associated_token_account(
                    user,  # payer
                    user,  # owner
                    mint,
                    SystemAddresses.TOKEN_PROGRAM,
                )
            )
        instructions.append(
            Instruction(
                self._address_provider.program_id,
                data,
                self._account_metas(BUY_ACCOUNTS, addresses),
            )
        )
        return instructions

    def build_sell_instructions(
        self,
        user: Pubkey,
        mint: Pubkey,
        fee_recipient: Pubkey,
        creator: Pubkey,
        amount: int,
        min_sol_output: int,
    ) -> list[Instruction]:
        """Build sell instruction(s).

        Args:
            user: Seller's wallet address
            mint: Token mint address
            fee_recipient: Protocol fee recipient from the global config
            creator: Token creator (selects the creator vault)
            amount: Exact token amount to sell (raw units)
            min_sol_output: Minimum lamports to receive, slippage included

        Returns:
            List containing the sell instruction
        """
        addresses = self._trade_addresses(user, mint, fee_recipient, creator)
        data = (
            SELL_DISCRIMINATOR
            + encode_u64("amount", amount)
            + encode_u64("min_sol_output", min_sol_output)
        )
        return [
            Instruction(
                self._address_provider.program_id,
                data,
                self._account_metas(SELL_ACCOUNTS, addresses),
            )
        ]

    def decode_instruction_args(self, data: bytes) -> dict[str, Any] | None:
        """Decode an instruction payload built by this module.

        Returns:
            ``{"instruction_name": ..., "args": {...}}``, or None when the data
            is not a known pump.fun instruction
        """
        return self._idl_parser.decode_instruction_data(data)

    def get_required_accounts_for_buy(
        self, user: Pubkey, mint: Pubkey, creator: Pubkey
    ) -> list[Pubkey]:
        """Get writable accounts locked by a buy (for priority fee estimation).

        Args:
            user: Buyer's wallet address
            mint: Token mint address
            creator: Token creator

        Returns:
            List of account addresses
        """
        derived = self._address_provider.derive_trade_addresses(mint, user, creator)
        return [
            mint,
            derived.bonding_curve,
            derived.associated_bonding_curve,
            derived.creator_vault,
            self._address_provider.program_id,
        ]

    def get_required_accounts_for_sell(
        self, user: Pubkey, mint: Pubkey, creator: Pubkey
    ) -> list[Pubkey]:
        """Get writable accounts locked by a sell (for priority fee estimation).

        Args:
            user: Seller's wallet address
            mint: Token mint address
            creator: Token creator

        Returns:
            List of account addresses
        """
        return self.get_required_accounts_for_buy(user, mint, creator)
