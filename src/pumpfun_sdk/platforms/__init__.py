"""
Platform factory for the pump.fun program implementations.

This module wires the platform-specific implementations of the core interfaces
around a shared account reader and the bundled IDL.
"""

from dataclasses import dataclass

from pumpfun_sdk.interfaces.core import AccountReader, Platform
from pumpfun_sdk.platforms.pumpfun import (
    PumpFunAddressProvider,
    PumpFunCurveManager,
    PumpFunEventParser,
    PumpFunInstructionBuilder,
)
from pumpfun_sdk.utils.idl_manager import get_idl_parser
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PlatformImplementations:
    """Container for all platform-specific implementations."""

    address_provider: PumpFunAddressProvider
    instruction_builder: PumpFunInstructionBuilder
    curve_manager: PumpFunCurveManager
    event_parser: PumpFunEventParser


def get_platform_implementations(
    reader: AccountReader, platform: Platform = Platform.PUMP_FUN
) -> PlatformImplementations:
    """Create platform implementation instances.

    Args:
        reader: Ledger account reader used by the curve manager
        platform: Platform to create implementations for

    Returns:
        PlatformImplementations containing all interface implementations

    Raises:
        ValueError: If platform is not supported
        SchemaMismatchError: If the instruction schemas drift from the IDL
    """
    if platform is not Platform.PUMP_FUN:
        raise ValueError(f"Platform {platform} is not supported")

    idl_parser = get_idl_parser(platform)
    address_provider = PumpFunAddressProvider()
    implementations = PlatformImplementations(
        address_provider=address_provider,
        instruction_builder=PumpFunInstructionBuilder(
            idl_parser=idl_parser, address_provider=address_provider
        ),
        curve_manager=PumpFunCurveManager(reader),
        event_parser=PumpFunEventParser(),
    )
    logger.debug(f"Created platform implementations for {platform.value}")
    return implementations
