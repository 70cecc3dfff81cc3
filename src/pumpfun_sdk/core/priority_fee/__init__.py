from abc import ABC, abstractmethod
from dataclasses import dataclass

from solders.pubkey import Pubkey

DEFAULT_COMPUTE_UNIT_LIMIT = 200_000


@dataclass(frozen=True)
class PriorityFee:
    """Compute budget attached to a transaction.

    Attributes:
        unit_limit: Compute unit limit for the transaction
        unit_price: Price per compute unit in microlamports
    """

    unit_limit: int
    unit_price: int

    def __post_init__(self):
        if self.unit_limit <= 0:
            raise ValueError(f"unit_limit must be positive, got {self.unit_limit}")
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be non-negative, got {self.unit_price}")


class PriorityFeePlugin(ABC):
    """Base class for priority fee calculation plugins."""

    @abstractmethod
    async def get_priority_fee(self, accounts: list[Pubkey] | None = None) -> int | None:
        """
        Calculate the priority fee.

        Args:
            accounts: Accounts the transaction write-locks, if known

        Returns:
            Optional[int]: Price per compute unit in microlamports, or None if no fee should be applied.
        """
        pass
