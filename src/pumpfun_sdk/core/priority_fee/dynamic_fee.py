import statistics
from typing import TYPE_CHECKING

from solders.pubkey import Pubkey

from pumpfun_sdk.core.errors import ExternalServiceError
from pumpfun_sdk.core.priority_fee import PriorityFeePlugin
from pumpfun_sdk.utils.logger import get_logger

if TYPE_CHECKING:
    from pumpfun_sdk.core.client import SolanaClient

logger = get_logger(__name__)


class DynamicPriorityFee(PriorityFeePlugin):
    """Dynamic priority fee plugin using getRecentPrioritizationFees."""

    def __init__(self, client: "SolanaClient"):
        """
        Initialize the dynamic fee plugin.

        Args:
            client: Solana RPC client for network requests.
        """
        self.client = client

    async def get_priority_fee(self, accounts: list[Pubkey] | None = None) -> int | None:
        """
        Fetch the recent priority fee using getRecentPrioritizationFees.

        Args:
            accounts: List of accounts to consider for the fee calculation.
                     If None, the fee is calculated without specific account constraints.

        Returns:
            Optional[int]: 70th percentile priority fee in microlamports, or None if the request fails.
        """
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getRecentPrioritizationFees",
            "params": [[str(account) for account in accounts]] if accounts else [],
        }

        try:
            response = await self.client.post_rpc(body)
        except ExternalServiceError as e:
            logger.warning(f"Failed to fetch recent priority fee: {e!s}")
            return None

        if not response or "result" not in response:
            logger.error("Failed to fetch recent prioritization fees: invalid response")
            return None

        fees = [fee["prioritizationFee"] for fee in response["result"]]
        if not fees:
            logger.warning("No prioritization fees found in the response")
            return None
        if len(fees) == 1:
            return int(fees[0])

        # 70th percentile: pay more than 70% of recent transactions
        return int(statistics.quantiles(fees, n=10)[-3])
