"""
Pump.Fun platform exports.

This module provides convenient imports for the pump.fun platform implementations.
"""

from .address_provider import PumpFunAddressProvider
from .curve_manager import PumpFunCurveManager
from .event_parser import PumpFunEventParser
from .instruction_builder import PumpFunInstructionBuilder

__all__ = [
    "PumpFunAddressProvider",
    "PumpFunCurveManager",
    "PumpFunEventParser",
    "PumpFunInstructionBuilder",
]
