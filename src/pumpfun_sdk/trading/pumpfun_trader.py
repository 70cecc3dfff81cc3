"""
Public pump.fun SDK facade.

Every operation re-reads the ledger state it prices against, builds a complete
instruction list and either returns it or submits it as one transaction. No
partially built transaction ever leaves this module: any failure raises one of
the errors in ``pumpfun_sdk.core.errors``.
"""

import asyncio

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from pumpfun_sdk.config_loader import SDKConfig
from pumpfun_sdk.core.client import SolanaClient
from pumpfun_sdk.core.errors import (
    AccountNotFound,
    ConfigurationError,
    SlippageUnsatisfiable,
)
from pumpfun_sdk.core.priority_fee import PriorityFee
from pumpfun_sdk.core.priority_fee.manager import PriorityFeeManager
from pumpfun_sdk.core.pubkeys import DEFAULT_COMMITMENT, DEFAULT_FINALITY
from pumpfun_sdk.interfaces.core import LedgerTransport, TransactionResult
from pumpfun_sdk.metadata.uploader import CreateTokenMetadata, MetadataUploader
from pumpfun_sdk.monitoring.base_listener import EventCallback
from pumpfun_sdk.monitoring.logs_listener import LogsEventListener
from pumpfun_sdk.platforms import get_platform_implementations
from pumpfun_sdk.platforms.pumpfun import pricing
from pumpfun_sdk.platforms.pumpfun.layouts import BondingCurveState, GlobalConfig
from pumpfun_sdk.platforms.pumpfun.slippage import (
    DEFAULT_SLIPPAGE_BPS,
    calculate_with_slippage_buy,
    calculate_with_slippage_sell,
)
from pumpfun_sdk.trading.orchestrator import PreparedTransaction, TransactionOrchestrator
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


class PumpFunSDK:
    """Create, buy and sell tokens on the pump.fun bonding curve program."""

    def __init__(
        self,
        transport: LedgerTransport,
        metadata_uploader: MetadataUploader | None = None,
        event_listener: LogsEventListener | None = None,
        priority_fee_manager: PriorityFeeManager | None = None,
        commitment: str = DEFAULT_COMMITMENT,
        finality: str = DEFAULT_FINALITY,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ):
        """Initialize the SDK.

        Args:
            transport: Ledger read/submit transport
            metadata_uploader: Uploader used by create_and_buy
            event_listener: Event stream for add_event_listener
            priority_fee_manager: Computes a priority fee when none is passed
            commitment: Default commitment for reads and preflight
            finality: Default confirmation level for submissions
            slippage_bps: Default slippage tolerance in basis points

        Raises:
            SchemaMismatchError: If the instruction schemas drift from the IDL
        """
        self.transport = transport
        self.metadata_uploader = metadata_uploader or MetadataUploader()
        self.event_listener = event_listener
        self.priority_fee_manager = priority_fee_manager
        self.commitment = commitment
        self.finality = finality
        self.slippage_bps = slippage_bps

        implementations = get_platform_implementations(transport)
        self.address_provider = implementations.address_provider
        self.instruction_builder = implementations.instruction_builder
        self.curve_manager = implementations.curve_manager
        self.event_parser = implementations.event_parser
        self.orchestrator = TransactionOrchestrator(transport)

    @classmethod
    def from_config(cls, config: SDKConfig) -> "PumpFunSDK":
        """Wire an SDK from a typed configuration."""
        client = SolanaClient(
            config.rpc_endpoint,
            skip_preflight=config.skip_preflight,
            max_retries=config.max_retries,
        )

        fee_manager = None
        fees = config.priority_fees
        if fees.enabled:
            fee_manager = PriorityFeeManager(
                client=client,
                enable_dynamic_fee=fees.enable_dynamic,
                enable_fixed_fee=fees.enable_fixed,
                fixed_fee=fees.fixed_amount,
                extra_fee=fees.extra_percentage,
                hard_cap=fees.hard_cap,
                unit_limit=fees.unit_limit,
            )

        listener = None
        if config.wss_endpoint:
            listener = LogsEventListener(config.wss_endpoint, commitment=config.commitment)

        return cls(
            transport=client,
            metadata_uploader=MetadataUploader(config.metadata_endpoint),
            event_listener=listener,
            priority_fee_manager=fee_manager,
            commitment=config.commitment,
            finality=config.finality,
            slippage_bps=config.slippage_bps,
        )

    async def close(self) -> None:
        """Stop the event stream and release the transport."""
        if self.event_listener is not None:
            await self.event_listener.stop()
        if isinstance(self.transport, SolanaClient):
            await self.transport.close()

    # ------------------------------------------------------------------
    # Account reads
    # ------------------------------------------------------------------

    async def get_global_account(self, commitment: str | None = None) -> GlobalConfig:
        """Read the program's global config.

        Raises:
            AccountNotFound: If the global account does not exist
        """
        return await self.curve_manager.get_global_config(commitment or self.commitment)

    async def get_bonding_curve_account(
        self, mint: Pubkey, commitment: str | None = None
    ) -> BondingCurveState | None:
        """Read a token's bonding curve, or None if the curve does not exist."""
        return await self.curve_manager.fetch_curve_state(
            self.address_provider.derive_pool_address(mint),
            commitment or self.commitment,
        )

    async def _require_curve(
        self, mint: Pubkey, commitment: str | None
    ) -> BondingCurveState:
        curve = await self.get_bonding_curve_account(mint, commitment)
        if curve is None:
            raise AccountNotFound(
                self.address_provider.derive_pool_address(mint), "BondingCurve"
            )
        return curve

    async def _resolve_creator(
        self, mint: Pubkey, creator: Pubkey | None, commitment: str | None
    ) -> Pubkey:
        if creator is not None:
            return creator
        return (await self._require_curve(mint, commitment)).creator

    async def _token_account_exists(
        self, owner: Pubkey, mint: Pubkey, commitment: str | None
    ) -> bool:
        ata = self.address_provider.derive_user_token_account(owner, mint)
        data = await self.transport.get_account_buffer(ata, commitment or self.commitment)
        return data is not None

    # ------------------------------------------------------------------
    # Instruction building
    # ------------------------------------------------------------------

    def get_create_instructions(
        self, creator: Pubkey, name: str, symbol: str, uri: str, mint: Pubkey
    ) -> PreparedTransaction:
        """Build a transaction that creates a token and its bonding curve."""
        instruction = self.instruction_builder.build_create_instruction(
            creator, mint, name, symbol, uri
        )
        return self.orchestrator.compose([[instruction]], creator)

    async def get_buy_instructions_by_sol_amount(
        self,
        buyer: Pubkey,
        mint: Pubkey,
        buy_amount_sol: int,
        slippage_bps: int | None = None,
        commitment: str | None = None,
    ) -> PreparedTransaction:
        """Build a buy spending ``buy_amount_sol`` lamports at the current price.

        Raises:
            AccountNotFound: If the curve or global config does not exist
            CurveCompleted: If the curve has graduated
            SlippageUnsatisfiable: If the curve cannot supply the tokens
        """
        prepared, _ = await self._prepare_buy(
            buyer, mint, buy_amount_sol, slippage_bps, commitment
        )
        return prepared

    async def _prepare_buy(
        self,
        buyer: Pubkey,
        mint: Pubkey,
        buy_amount_sol: int,
        slippage_bps: int | None,
        commitment: str | None,
    ) -> tuple[PreparedTransaction, BondingCurveState]:
        slippage_bps = self.slippage_bps if slippage_bps is None else slippage_bps
        curve = await self._require_curve(mint, commitment)

        buy_amount = pricing.get_buy_price(curve, buy_amount_sol)
        pricing.check_buy_within_reserves(buy_amount, curve.real_token_reserves)
        max_sol_cost = calculate_with_slippage_buy(buy_amount_sol, slippage_bps)

        global_config = await self.get_global_account(commitment)
        ata_exists = await self._token_account_exists(buyer, mint, commitment)

        logger.info(
            f"Buy {buy_amount} tokens of {mint} for up to {max_sol_cost} lamports"
        )
        prepared = await self.get_buy_instructions(
            buyer,
            mint,
            global_config.fee_recipient,
            buy_amount,
            max_sol_cost,
            creator=curve.creator,
            ata_exists=ata_exists,
            commitment=commitment,
        )
        return prepared, curve

    async def get_buy_instructions(
        self,
        buyer: Pubkey,
        mint: Pubkey,
        fee_recipient: Pubkey,
        amount: int,
        max_sol_cost: int,
        creator: Pubkey | None = None,
        ata_exists: bool = True,
        commitment: str | None = None,
    ) -> PreparedTransaction:
        """Build a buy of an exact token amount.

        Args:
            buyer: Buyer's wallet address
            mint: Token mint address
            fee_recipient: Protocol fee recipient
            amount: Token amount to buy
            max_sol_cost: Maximum lamports to spend
            creator: Token creator, read from the curve when omitted
            ata_exists: Whether the buyer's token account already exists
            commitment: Consistency level for the creator read
        """
        creator = await self._resolve_creator(mint, creator, commitment)
        instructions = self.instruction_builder.build_buy_instructions(
            buyer, mint, fee_recipient, creator, amount, max_sol_cost, ata_exists
        )
        return self.orchestrator.compose([instructions], buyer)

    async def get_sell_instructions_by_token_amount(
        self,
        seller: Pubkey,
        mint: Pubkey,
        sell_token_amount: int,
        slippage_bps: int | None = None,
        commitment: str | None = None,
    ) -> PreparedTransaction:
        """Build a sell of ``sell_token_amount`` tokens at the current price.

        Raises:
            AccountNotFound: If the curve or global config does not exist
            CurveCompleted: If the curve has graduated
            SlippageUnsatisfiable: If the curve cannot pay out the SOL or the
                sale yields nothing after fees
        """
        prepared, _ = await self._prepare_sell(
            seller, mint, sell_token_amount, slippage_bps, commitment
        )
        return prepared

    async def _prepare_sell(
        self,
        seller: Pubkey,
        mint: Pubkey,
        sell_token_amount: int,
        slippage_bps: int | None,
        commitment: str | None,
    ) -> tuple[PreparedTransaction, BondingCurveState]:
        slippage_bps = self.slippage_bps if slippage_bps is None else slippage_bps
        curve = await self._require_curve(mint, commitment)
        global_config = await self.get_global_account(commitment)

        gross = pricing.get_gross_sell_output(curve, sell_token_amount)
        pricing.check_sell_within_reserves(gross, curve.real_sol_reserves)
        sol_output = pricing.get_sell_price(
            curve, sell_token_amount, global_config.fee_basis_points
        )
        if sol_output == 0:
            # the program rejects any sell whose output is below the 1 lamport floor
            raise SlippageUnsatisfiable(
                "Sell yields no SOL after fees", token_amount=sell_token_amount, sol_output=0
            )
        min_sol_output = calculate_with_slippage_sell(sol_output, slippage_bps)

        logger.info(
            f"Sell {sell_token_amount} tokens of {mint} for at least {min_sol_output} lamports"
        )
        prepared = await self.get_sell_instructions(
            seller,
            mint,
            global_config.fee_recipient,
            sell_token_amount,
            min_sol_output,
            creator=curve.creator,
            commitment=commitment,
        )
        return prepared, curve

    async def get_sell_instructions(
        self,
        seller: Pubkey,
        mint: Pubkey,
        fee_recipient: Pubkey,
        amount: int,
        min_sol_output: int,
        creator: Pubkey | None = None,
        commitment: str | None = None,
    ) -> PreparedTransaction:
        """Build a sell of an exact token amount.

        Args:
            seller: Seller's wallet address
            mint: Token mint address
            fee_recipient: Protocol fee recipient
            amount: Token amount to sell
            min_sol_output: Minimum lamports to receive
            creator: Token creator, read from the curve when omitted
            commitment: Consistency level for the creator read
        """
        creator = await self._resolve_creator(mint, creator, commitment)
        instructions = self.instruction_builder.build_sell_instructions(
            seller, mint, fee_recipient, creator, amount, min_sol_output
        )
        return self.orchestrator.compose([instructions], seller)

    # ------------------------------------------------------------------
    # Submitting operations
    # ------------------------------------------------------------------

    async def _resolve_priority_fee(
        self, priority_fee: PriorityFee | None, accounts: list[Pubkey]
    ) -> PriorityFee | None:
        if priority_fee is not None or self.priority_fee_manager is None:
            return priority_fee
        return await self.priority_fee_manager.get_priority_fee(accounts)

    async def create_and_buy(
        self,
        creator: Keypair,
        mint: Keypair,
        metadata: CreateTokenMetadata,
        buy_amount_sol: int,
        slippage_bps: int | None = None,
        priority_fee: PriorityFee | None = None,
        commitment: str | None = None,
        finality: str | None = None,
    ) -> TransactionResult:
        """Upload metadata, create the token and optionally buy in one transaction.

        The curve does not exist yet, so the buy is priced against the global
        config's initial reserves and the creator vault belongs to ``creator``.

        Raises:
            ExternalServiceError: If the metadata upload or submission fails
            AccountNotFound: If the global config does not exist
            SlippageUnsatisfiable: If the initial reserves cannot supply the buy
        """
        slippage_bps = self.slippage_bps if slippage_bps is None else slippage_bps
        creator_pubkey = creator.pubkey()
        mint_pubkey = mint.pubkey()

        upload = await self.metadata_uploader.upload(metadata)
        create_tx = self.get_create_instructions(
            creator_pubkey, metadata.name, metadata.symbol, upload.metadata_uri, mint_pubkey
        )
        groups = [list(create_tx.instructions)]

        if buy_amount_sol > 0:
            global_config = await self.get_global_account(commitment)
            buy_amount = pricing.get_initial_buy_price(global_config, buy_amount_sol)
            pricing.check_buy_within_reserves(
                buy_amount, global_config.initial_real_token_reserves
            )
            max_sol_cost = calculate_with_slippage_buy(buy_amount_sol, slippage_bps)
            groups.append(
                self.instruction_builder.build_buy_instructions(
                    creator_pubkey,
                    mint_pubkey,
                    global_config.fee_recipient,
                    creator_pubkey,
                    buy_amount,
                    max_sol_cost,
                    ata_exists=False,
                )
            )

        prepared = self.orchestrator.compose(groups, creator_pubkey)
        priority_fee = await self._resolve_priority_fee(
            priority_fee,
            self.instruction_builder.get_required_accounts_for_buy(
                creator_pubkey, mint_pubkey, creator_pubkey
            ),
        )
        return await self.orchestrator.submit(
            prepared,
            [creator, mint],
            priority_fee=priority_fee,
            commitment=commitment or self.commitment,
            finality=finality or self.finality,
        )

    async def buy(
        self,
        buyer: Keypair,
        mint: Pubkey,
        buy_amount_sol: int,
        slippage_bps: int | None = None,
        priority_fee: PriorityFee | None = None,
        commitment: str | None = None,
        finality: str | None = None,
    ) -> TransactionResult:
        """Buy tokens with ``buy_amount_sol`` lamports and wait for finality."""
        prepared, curve = await self._prepare_buy(
            buyer.pubkey(), mint, buy_amount_sol, slippage_bps, commitment
        )
        priority_fee = await self._resolve_priority_fee(
            priority_fee,
            self.instruction_builder.get_required_accounts_for_buy(
                buyer.pubkey(), mint, curve.creator
            ),
        )
        return await self.orchestrator.submit(
            prepared,
            [buyer],
            priority_fee=priority_fee,
            commitment=commitment or self.commitment,
            finality=finality or self.finality,
        )

    async def sell(
        self,
        seller: Keypair,
        mint: Pubkey,
        sell_token_amount: int,
        slippage_bps: int | None = None,
        priority_fee: PriorityFee | None = None,
        commitment: str | None = None,
        finality: str | None = None,
    ) -> TransactionResult:
        """Sell ``sell_token_amount`` tokens and wait for finality."""
        prepared, curve = await self._prepare_sell(
            seller.pubkey(), mint, sell_token_amount, slippage_bps, commitment
        )
        priority_fee = await self._resolve_priority_fee(
            priority_fee,
            self.instruction_builder.get_required_accounts_for_sell(
                seller.pubkey(), mint, curve.creator
            ),
        )
        return await self.orchestrator.submit(
            prepared,
            [seller],
            priority_fee=priority_fee,
            commitment=commitment or self.commitment,
            finality=finality or self.finality,
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, event_type: str, callback: EventCallback) -> int:
        """Register ``callback(event, slot, signature)`` for an event type.

        The event stream starts on the running loop with the first listener.

        Returns:
            Listener id for remove_event_listener

        Raises:
            ConfigurationError: If no event stream is configured
            ValueError: If the event type is unknown
        """
        if self.event_listener is None:
            raise ConfigurationError("No event stream configured (wss_endpoint missing)")

        listener_id = self.event_listener.add_event_listener(event_type, callback)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; await event_listener.listen() to stream")
        else:
            self.event_listener.start()
        return listener_id

    def remove_event_listener(self, listener_id: int) -> None:
        """Remove a listener registered with add_event_listener."""
        if self.event_listener is not None:
            self.event_listener.remove_event_listener(listener_id)
