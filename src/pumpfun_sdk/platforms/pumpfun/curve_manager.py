"""
Pump.Fun implementation of CurveManager interface.

This module reads the global config and bonding curve accounts through an
AccountReader and prices trades against them. State is re-read on every call;
nothing is cached between operations.
"""

from typing import Any

from solders.pubkey import Pubkey

from pumpfun_sdk.core.errors import AccountNotFound
from pumpfun_sdk.interfaces.core import AccountReader, CurveManager, Platform
from pumpfun_sdk.platforms.pumpfun import pricing
from pumpfun_sdk.platforms.pumpfun.address_provider import PumpFunAddresses
from pumpfun_sdk.platforms.pumpfun.layouts import (
    BondingCurveState,
    GlobalConfig,
    decode_bonding_curve,
    decode_global_config,
)
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


class PumpFunCurveManager(CurveManager):
    """Pump.Fun implementation of CurveManager interface."""

    def __init__(self, reader: AccountReader):
        """Initialize pump.fun curve manager.

        Args:
            reader: Ledger account reader
        """
        self.reader = reader

    @property
    def platform(self) -> Platform:
        """Get the platform this manager serves."""
        return Platform.PUMP_FUN

    async def get_global_config(self, commitment: str | None = None) -> GlobalConfig:
        """Read and decode the program's global config.

        Raises:
            AccountNotFound: If the global account does not exist
            MalformedAccount: If its data cannot be decoded
        """
        address = PumpFunAddresses.find_global()
        data = await self.reader.get_account_buffer(address, commitment)
        if data is None:
            raise AccountNotFound(address, "Global")
        return decode_global_config(data)

    async def fetch_curve_state(
        self, curve_address: Pubkey, commitment: str | None = None
    ) -> BondingCurveState | None:
        """Read and decode a bonding curve, or None if it does not exist."""
        data = await self.reader.get_account_buffer(curve_address, commitment)
        if data is None:
            logger.debug(f"Bonding curve {curve_address} not found")
            return None
        return decode_bonding_curve(data)

    async def get_curve_state(
        self, curve_address: Pubkey, commitment: str | None = None
    ) -> BondingCurveState:
        """Read and decode a bonding curve that must exist.

        Raises:
            AccountNotFound: If the bonding curve does not exist
            MalformedAccount: If its data cannot be decoded
        """
        state = await self.fetch_curve_state(curve_address, commitment)
        if state is None:
            raise AccountNotFound(curve_address, "BondingCurve")
        return state

    async def get_pool_state(self, pool_address: Pubkey) -> dict[str, Any]:
        """Get the current state of a pump.fun bonding curve.

        Args:
            pool_address: Address of the bonding curve

        Returns:
            Dictionary containing bonding curve state data
        """
        curve_state = await self.get_curve_state(pool_address)

        return {
            "virtual_token_reserves": curve_state.virtual_token_reserves,
            "virtual_sol_reserves": curve_state.virtual_sol_reserves,
            "real_token_reserves": curve_state.real_token_reserves,
            "real_sol_reserves": curve_state.real_sol_reserves,
            "token_total_supply": curve_state.token_total_supply,
            "complete": curve_state.complete,
            "creator": str(curve_state.creator),
            # Calculated fields for convenience
            "price_per_token": curve_state.calculate_price(),
            "token_reserves_decimal": curve_state.token_reserves,
            "sol_reserves_decimal": curve_state.sol_reserves,
            "market_cap_sol": curve_state.get_market_cap_sol(),
        }

    async def calculate_price(self, pool_address: Pubkey) -> float:
        """Calculate current token price from bonding curve state.

        Args:
            pool_address: Address of the bonding curve

        Returns:
            Current token price in SOL
        """
        curve_state = await self.get_curve_state(pool_address)
        return curve_state.calculate_price()

    async def calculate_buy_amount_out(self, pool_address: Pubkey, amount_in: int) -> int:
        """Calculate exact tokens received for a buy.

        Args:
            pool_address: Address of the bonding curve
            amount_in: Amount of SOL to spend (in lamports)

        Returns:
            Tokens to receive (in raw token units)
        """
        curve_state = await self.get_curve_state(pool_address)
        return pricing.get_buy_price(curve_state, amount_in)

    async def calculate_sell_amount_out(self, pool_address: Pubkey, amount_in: int) -> int:
        """Calculate exact net SOL received for a sell, after the protocol fee.

        Args:
            pool_address: Address of the bonding curve
            amount_in: Amount of tokens to sell (in raw token units)

        Returns:
            Lamports to receive
        """
        global_config = await self.get_global_config()
        curve_state = await self.get_curve_state(pool_address)
        return pricing.get_sell_price(
            curve_state, amount_in, global_config.fee_basis_points
        )

    async def get_reserves(self, pool_address: Pubkey) -> tuple[int, int]:
        """Get current bonding curve reserves.

        Args:
            pool_address: Address of the bonding curve

        Returns:
            Tuple of (token_reserves, sol_reserves) in raw units
        """
        curve_state = await self.get_curve_state(pool_address)
        return (curve_state.virtual_token_reserves, curve_state.virtual_sol_reserves)
