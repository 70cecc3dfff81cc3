"""
Core interfaces for the pump.fun SDK.

This module defines the abstract base classes at each seam of the SDK: the
ledger collaborators the core depends on but does not implement (account
reads, transaction submission) and the program-specific components
(address derivation, instruction building, curve reads, event parsing).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

if TYPE_CHECKING:
    from pumpfun_sdk.core.priority_fee import PriorityFee
    from pumpfun_sdk.trading.orchestrator import PreparedTransaction


class Platform(Enum):
    """Supported launch programs."""
    PUMP_FUN = "pump_fun"


@dataclass
class TransactionResult:
    """Outcome of a submitted transaction."""
    success: bool
    signature: str | None = None
    slot: int | None = None
    error: str | None = None


class AccountReader(ABC):
    """Ledger read interface: raw account buffers by address."""

    @abstractmethod
    async def get_account_buffer(
        self, address: Pubkey, commitment: str | None = None
    ) -> bytes | None:
        """Fetch the raw data of an account.

        Args:
            address: Account address
            commitment: Consistency level for the read

        Returns:
            Account data, or None if the account does not exist
        """
        pass


class LedgerTransport(AccountReader):
    """Ledger read + submit interface."""

    @abstractmethod
    async def submit(
        self,
        transaction: "PreparedTransaction",
        signers: list[Keypair],
        priority_fee: "PriorityFee | None" = None,
        commitment: str | None = None,
        finality: str | None = None,
    ) -> TransactionResult:
        """Sign, send and wait for a transaction to reach the finality level.

        Args:
            transaction: Submission-ready transaction
            signers: Keypairs covering every required signer
            priority_fee: Optional compute budget settings
            commitment: Preflight commitment level
            finality: Confirmation level to wait for

        Returns:
            TransactionResult with signature and confirmed slot
        """
        pass


class AddressProvider(ABC):
    """Abstract interface for program address management."""

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Get the platform this provider serves."""
        pass

    @property
    @abstractmethod
    def program_id(self) -> Pubkey:
        """Get the main program ID for this platform."""
        pass

    @abstractmethod
    def get_system_addresses(self) -> dict[str, Pubkey]:
        """Get all fixed addresses required by this platform's instructions.

        Returns:
            Dictionary mapping address names to Pubkey objects
        """
        pass

    @abstractmethod
    def derive_pool_address(self, base_mint: Pubkey) -> Pubkey:
        """Derive the curve address for a token.

        Args:
            base_mint: Token mint address

        Returns:
            Curve address
        """
        pass

    @abstractmethod
    def derive_user_token_account(self, user: Pubkey, mint: Pubkey) -> Pubkey:
        """Derive user's token account address.

        Args:
            user: User's wallet address
            mint: Token mint address

        Returns:
            User's token account address
        """
        pass


class InstructionBuilder(ABC):
    """Abstract interface for building program instructions."""

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Get the platform this builder serves."""
        pass

    @abstractmethod
    def build_create_instruction(
        self, creator: Pubkey, mint: Pubkey, name: str, symbol: str, uri: str
    ) -> Instruction:
        """Build the token creation instruction."""
        pass

    @abstractmethod
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
        """Build buy instruction(s), prefixed by account creation if needed."""
        pass

    @abstractmethod
    def build_sell_instructions(
        self,
        user: Pubkey,
        mint: Pubkey,
        fee_recipient: Pubkey,
        creator: Pubkey,
        amount: int,
        min_sol_output: int,
    ) -> list[Instruction]:
        """Build sell instruction(s)."""
        pass

    @abstractmethod
    def get_required_accounts_for_buy(
        self, user: Pubkey, mint: Pubkey, creator: Pubkey
    ) -> list[Pubkey]:
        """Get accounts touched by a buy (for priority fee estimation)."""
        pass

    @abstractmethod
    def get_required_accounts_for_sell(
        self, user: Pubkey, mint: Pubkey, creator: Pubkey
    ) -> list[Pubkey]:
        """Get accounts touched by a sell (for priority fee estimation)."""
        pass


class CurveManager(ABC):
    """Abstract interface for curve state reads and price calculations."""

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Get the platform this manager serves."""
        pass

    @abstractmethod
    async def get_pool_state(self, pool_address: Pubkey) -> dict[str, Any]:
        """Get the current state of a curve as a plain dictionary."""
        pass

    @abstractmethod
    async def calculate_price(self, pool_address: Pubkey) -> float:
        """Calculate current token price in SOL (display only)."""
        pass

    @abstractmethod
    async def calculate_buy_amount_out(self, pool_address: Pubkey, amount_in: int) -> int:
        """Calculate exact tokens received for ``amount_in`` lamports."""
        pass

    @abstractmethod
    async def calculate_sell_amount_out(self, pool_address: Pubkey, amount_in: int) -> int:
        """Calculate exact net lamports received for ``amount_in`` tokens."""
        pass

    @abstractmethod
    async def get_reserves(self, pool_address: Pubkey) -> tuple[int, int]:
        """Get current virtual reserves as (token_reserves, sol_reserves)."""
        pass


class EventParser(ABC):
    """Abstract interface for decoding program events."""

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Get the platform this parser serves."""
        pass

    @abstractmethod
    def get_program_id(self) -> Pubkey:
        """Get the program ID this parser monitors."""
        pass

    @abstractmethod
    def decode_event(self, data: bytes) -> Any | None:
        """Decode one raw event payload, or None if it is not a known event."""
        pass

    @abstractmethod
    def parse_events_from_logs(
        self, logs: list[str], slot: int, signature: str
    ) -> list[Any]:
        """Decode every event emitted in a transaction's logs."""
        pass

    @abstractmethod
    def get_event_discriminators(self) -> dict[str, bytes]:
        """Get the discriminator of each known event."""
        pass
