"""
Transaction assembly and submission.

Instruction groups (an optional account-creation prefix followed by the
operation it provisions) are concatenated in order into one atomic
transaction. Signing and sending are delegated to the ledger transport.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from pumpfun_sdk.core.errors import MissingSignerError
from pumpfun_sdk.core.priority_fee import PriorityFee
from pumpfun_sdk.interfaces.core import LedgerTransport, TransactionResult
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


def collect_signers(instructions: Sequence[Instruction], payer: Pubkey) -> tuple[Pubkey, ...]:
    """Payer first, then every other signer account in first-appearance order."""
    signers = [payer]
    for instruction in instructions:
        for meta in instruction.accounts:
            if meta.is_signer and meta.pubkey not in signers:
                signers.append(meta.pubkey)
    return tuple(signers)


@dataclass(frozen=True)
class PreparedTransaction:
    """An ordered instruction list with its fee payer and required signers."""

    instructions: tuple[Instruction, ...]
    payer: Pubkey
    required_signers: tuple[Pubkey, ...]

    @classmethod
    def from_instructions(
        cls, instructions: Sequence[Instruction], payer: Pubkey
    ) -> "PreparedTransaction":
        return cls(
            instructions=tuple(instructions),
            payer=payer,
            required_signers=collect_signers(instructions, payer),
        )

    def with_compute_budget(self, priority_fee: PriorityFee) -> "PreparedTransaction":
        """Copy with compute unit limit and price instructions prepended."""
        budget = (
            set_compute_unit_limit(priority_fee.unit_limit),
            set_compute_unit_price(priority_fee.unit_price),
        )
        return replace(self, instructions=budget + self.instructions)

    def to_message(self, recent_blockhash: Hash | None = None) -> Message:
        """Compile into a legacy message paid by ``payer``."""
        if recent_blockhash is None:
            return Message(list(self.instructions), self.payer)
        return Message.new_with_blockhash(
            list(self.instructions), self.payer, recent_blockhash
        )

    def check_signers(self, keypairs: Sequence[Keypair]) -> dict[Pubkey, Keypair]:
        """Map every required signer to its keypair.

        Raises:
            MissingSignerError: If a required signer has no keypair
        """
        by_pubkey = {keypair.pubkey(): keypair for keypair in keypairs}
        missing = [str(pk) for pk in self.required_signers if pk not in by_pubkey]
        if missing:
            raise MissingSignerError(
                "Missing keypairs for required signers", {"signers": missing}
            )
        return by_pubkey

    def sign(self, keypairs: Sequence[Keypair], recent_blockhash: Hash) -> Transaction:
        """Sign with the keypairs of every required signer.

        Keypairs not required by the transaction are ignored.

        Raises:
            MissingSignerError: If a required signer has no keypair
        """
        by_pubkey = self.check_signers(keypairs)
        ordered = [by_pubkey[pk] for pk in self.required_signers]
        return Transaction(ordered, self.to_message(), recent_blockhash)


class TransactionOrchestrator:
    """Composes instruction groups into one transaction and submits it."""

    def __init__(self, transport: LedgerTransport):
        """
        Args:
            transport: Ledger transport that signs, sends and confirms
        """
        self.transport = transport

    @staticmethod
    def compose(
        groups: Sequence[Sequence[Instruction]], payer: Pubkey
    ) -> PreparedTransaction:
        """Concatenate instruction groups, preserving order, into one transaction.

        Args:
            groups: Instruction groups in execution order
            payer: Fee payer, always the first signer

        Returns:
            PreparedTransaction

        Raises:
            ValueError: If there are no instructions at all
        """
        instructions = [ix for group in groups for ix in group]
        if not instructions:
            raise ValueError("Cannot compose a transaction without instructions")
        return PreparedTransaction.from_instructions(instructions, payer)

    async def submit(
        self,
        prepared: PreparedTransaction,
        signers: Sequence[Keypair],
        priority_fee: PriorityFee | None = None,
        commitment: str | None = None,
        finality: str | None = None,
    ) -> TransactionResult:
        """Submit a prepared transaction and wait for finality.

        Raises:
            MissingSignerError: If a required signer has no keypair
            ExternalServiceError: If the transport fails
        """
        prepared.check_signers(signers)
        logger.info(
            f"Submitting transaction with {len(prepared.instructions)} instructions "
            f"paid by {prepared.payer}"
        )
        return await self.transport.submit(
            prepared,
            list(signers),
            priority_fee=priority_fee,
            commitment=commitment,
            finality=finality,
        )
