from typing import TYPE_CHECKING

from solders.pubkey import Pubkey

from pumpfun_sdk.core.priority_fee import DEFAULT_COMPUTE_UNIT_LIMIT, PriorityFee
from pumpfun_sdk.core.priority_fee.dynamic_fee import DynamicPriorityFee
from pumpfun_sdk.core.priority_fee.fixed_fee import FixedPriorityFee
from pumpfun_sdk.utils.logger import get_logger

if TYPE_CHECKING:
    from pumpfun_sdk.core.client import SolanaClient

logger = get_logger(__name__)


class PriorityFeeManager:
    """Manager for priority fee calculation and validation."""

    def __init__(
        self,
        client: "SolanaClient",
        enable_dynamic_fee: bool,
        enable_fixed_fee: bool,
        fixed_fee: int,
        extra_fee: float,
        hard_cap: int,
        unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT,
    ):
        """
        Initialize the priority fee manager.

        Args:
            client: Solana RPC client for dynamic fee calculation.
            enable_dynamic_fee: Whether to enable dynamic fee calculation.
            enable_fixed_fee: Whether to enable fixed fee.
            fixed_fee: Fixed priority fee in microlamports.
            extra_fee: Percentage increase to apply to the base fee.
            hard_cap: Maximum allowed priority fee in microlamports.
            unit_limit: Compute unit limit attached with the fee.
        """
        self.client = client
        self.enable_dynamic_fee = enable_dynamic_fee
        self.enable_fixed_fee = enable_fixed_fee
        self.fixed_fee = fixed_fee
        self.extra_fee = extra_fee
        self.hard_cap = hard_cap
        self.unit_limit = unit_limit

        # Initialize plugins
        self.dynamic_fee_plugin = DynamicPriorityFee(client)
        self.fixed_fee_plugin = FixedPriorityFee(fixed_fee)

    async def calculate_priority_fee(
        self, accounts: list[Pubkey] | None = None
    ) -> int | None:
        """
        Calculate the priority fee based on the configuration.

        Args:
            accounts: Accounts the transaction write-locks, for the dynamic fee.

        Returns:
            Optional[int]: Calculated price per compute unit in microlamports, or None if no fee should be applied.
        """
        base_fee = await self._get_base_fee(accounts)
        if base_fee is None:
            return None

        # Apply extra fee (percentage increase)
        final_fee = int(base_fee * (1 + self.extra_fee))

        # Enforce hard cap
        if final_fee > self.hard_cap:
            logger.warning(
                f"Calculated priority fee {final_fee} exceeds hard cap {self.hard_cap}. Applying hard cap."
            )
            final_fee = self.hard_cap

        return final_fee

    async def get_priority_fee(
        self, accounts: list[Pubkey] | None = None
    ) -> PriorityFee | None:
        """
        Build the compute budget for a transaction.

        Args:
            accounts: Accounts the transaction write-locks, for the dynamic fee.

        Returns:
            Optional[PriorityFee]: Unit limit and price, or None if no fee should be applied.
        """
        unit_price = await self.calculate_priority_fee(accounts)
        if unit_price is None:
            return None
        return PriorityFee(unit_limit=self.unit_limit, unit_price=unit_price)

    async def _get_base_fee(self, accounts: list[Pubkey] | None) -> int | None:
        """
        Determine the base fee based on the configuration.

        Returns:
            Optional[int]: Base fee in microlamports, or None if no fee should be applied.
        """
        # Prefer dynamic fee if both are enabled
        if self.enable_dynamic_fee:
            dynamic_fee = await self.dynamic_fee_plugin.get_priority_fee(accounts)
            if dynamic_fee is not None:
                return dynamic_fee

        # Fall back to fixed fee if enabled
        if self.enable_fixed_fee:
            return await self.fixed_fee_plugin.get_priority_fee()

        return None
