"""
Solana client abstraction for blockchain operations.
"""

import asyncio
import json
from typing import TYPE_CHECKING, Any

import aiohttp
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from pumpfun_sdk.core.errors import ExternalServiceError
from pumpfun_sdk.core.priority_fee import PriorityFee
from pumpfun_sdk.core.pubkeys import DEFAULT_COMMITMENT, DEFAULT_FINALITY
from pumpfun_sdk.interfaces.core import LedgerTransport, TransactionResult
from pumpfun_sdk.utils.logger import get_logger

if TYPE_CHECKING:
    from pumpfun_sdk.trading.orchestrator import PreparedTransaction

logger = get_logger(__name__)

_RPC_ERRORS = (
    SolanaRpcException,
    RPCException,
    UnconfirmedTxError,
    TransactionExpiredBlockheightExceededError,
)


class SolanaClient(LedgerTransport):
    """Abstraction for Solana RPC client operations."""

    def __init__(
        self,
        rpc_endpoint: str,
        skip_preflight: bool = False,
        max_retries: int = 3,
        confirm_sleep_seconds: float = 1.0,
    ):
        """Initialize Solana client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            skip_preflight: Whether to skip preflight simulation on send
            max_retries: Maximum number of send attempts
            confirm_sleep_seconds: Poll interval while waiting for finality
        """
        self.rpc_endpoint = rpc_endpoint
        self.skip_preflight = skip_preflight
        self.max_retries = max_retries
        self.confirm_sleep_seconds = confirm_sleep_seconds
        self._client: AsyncClient | None = None

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance.

        Returns:
            AsyncClient instance
        """
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint)
        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def get_account_buffer(
        self, address: Pubkey, commitment: str | None = None
    ) -> bytes | None:
        """Get raw account data from the blockchain.

        Args:
            address: Public key of the account
            commitment: Consistency level for the read

        Returns:
            Account data, or None if the account does not exist

        Raises:
            ExternalServiceError: If the RPC request fails
        """
        client = await self.get_client()
        try:
            response = await client.get_account_info(
                address,
                commitment=Commitment(commitment or DEFAULT_COMMITMENT),
                encoding="base64",
            )
        except _RPC_ERRORS as e:
            raise ExternalServiceError(
                "rpc", f"getAccountInfo failed for {address}: {e!s}"
            ) from e

        if response.value is None:
            return None
        return bytes(response.value.data)

    async def get_latest_blockhash(self, commitment: str | None = None) -> Hash:
        """Get the latest blockhash.

        Returns:
            Recent blockhash
        """
        client = await self.get_client()
        try:
            response = await client.get_latest_blockhash(
                commitment=Commitment(commitment or DEFAULT_COMMITMENT)
            )
        except _RPC_ERRORS as e:
            raise ExternalServiceError("rpc", f"getLatestBlockhash failed: {e!s}") from e
        return response.value.blockhash

    async def submit(
        self,
        transaction: "PreparedTransaction",
        signers: list[Keypair],
        priority_fee: PriorityFee | None = None,
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

        Raises:
            MissingSignerError: If a required signer has no keypair
            ExternalServiceError: If sending or confirming fails
        """
        commitment = commitment or DEFAULT_COMMITMENT
        finality = finality or DEFAULT_FINALITY

        if priority_fee is not None:
            logger.info(
                f"Compute budget: limit={priority_fee.unit_limit} "
                f"price={priority_fee.unit_price} microlamports"
            )
            transaction = transaction.with_compute_budget(priority_fee)

        recent_blockhash = await self.get_latest_blockhash(commitment)
        signed = transaction.sign(signers, recent_blockhash)
        signature = await self._send(signed, commitment)
        logger.info(f"Transaction sent: {signature}, waiting for {finality}")

        return await self._confirm(signature, finality)

    async def _send(self, signed: Any, commitment: str) -> Signature:
        client = await self.get_client()
        tx_opts = TxOpts(
            skip_preflight=self.skip_preflight,
            preflight_commitment=Commitment(commitment),
        )

        for attempt in range(self.max_retries):
            try:
                response = await client.send_transaction(signed, opts=tx_opts)
                return response.value
            except _RPC_ERRORS as e:
                if attempt == self.max_retries - 1:
                    logger.error(
                        f"Failed to send transaction after {self.max_retries} attempts"
                    )
                    raise ExternalServiceError(
                        "rpc", f"sendTransaction failed: {e!s}"
                    ) from e

                wait_time = 2**attempt
                logger.warning(
                    f"Transaction attempt {attempt + 1} failed: {e!s}, retrying in {wait_time}s"
                )
                await asyncio.sleep(wait_time)

        raise ExternalServiceError("rpc", "sendTransaction was not attempted")

    async def _confirm(self, signature: Signature, finality: str) -> TransactionResult:
        client = await self.get_client()
        try:
            response = await client.confirm_transaction(
                signature,
                commitment=Commitment(finality),
                sleep_seconds=self.confirm_sleep_seconds,
            )
        except _RPC_ERRORS as e:
            raise ExternalServiceError(
                "rpc", f"Failed to confirm transaction {signature}: {e!s}"
            ) from e

        status = response.value[0] if response.value else None
        slot = status.slot if status else None
        if status is not None and status.err is not None:
            logger.error(f"Transaction {signature} failed on-chain: {status.err}")
            return TransactionResult(
                success=False, signature=str(signature), slot=slot, error=str(status.err)
            )

        logger.info(f"Transaction {signature} confirmed at slot {slot}")
        return TransactionResult(success=True, signature=str(signature), slot=slot)

    async def post_rpc(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Send a raw RPC request to the Solana node.

        Args:
            body: JSON-RPC request body.

        Returns:
            Parsed JSON response.

        Raises:
            ExternalServiceError: If the request fails or the response is not JSON.
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.rpc_endpoint,
                    json=body,
                    timeout=aiohttp.ClientTimeout(10),  # 10-second timeout
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except aiohttp.ClientResponseError as e:
            raise ExternalServiceError(
                "rpc", f"RPC request failed: {e.message}", status=e.status
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExternalServiceError("rpc", f"RPC request failed: {e!s}") from e
        except json.JSONDecodeError as e:
            raise ExternalServiceError(
                "rpc", f"Failed to decode RPC response: {e!s}"
            ) from e
