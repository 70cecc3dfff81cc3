"""
Centralized IDL management.

Loads each bundled IDL once and hands the same parser to every component that
needs it (instruction schema validation, diagnostics decoding).
"""

import os

from pumpfun_sdk.interfaces.core import Platform
from pumpfun_sdk.utils.idl_parser import IDLParser
from pumpfun_sdk.utils.logger import get_logger

logger = get_logger(__name__)


class IDLManager:
    """Centralized manager for IDL parsers across all platforms."""

    def __init__(self):
        """Initialize the IDL manager."""
        self._parsers: dict[Platform, IDLParser] = {}
        self._idl_paths: dict[Platform, str] = {}
        self._setup_platform_idl_paths()

    def _setup_platform_idl_paths(self) -> None:
        """Setup IDL file paths for each platform."""
        # IDL files ship inside the package: pumpfun_sdk/idl/
        package_root = os.path.normpath(
            os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")
        )

        self._idl_paths = {
            Platform.PUMP_FUN: os.path.join(package_root, "idl", "pump_fun_idl.json"),
        }

    def get_parser(self, platform: Platform) -> IDLParser:
        """Get or create an IDL parser for the specified platform.

        Args:
            platform: Platform to get parser for

        Returns:
            IDLParser instance for the platform

        Raises:
            ValueError: If platform is not supported
            FileNotFoundError: If the IDL file is missing
        """
        if platform in self._parsers:
            return self._parsers[platform]

        if platform not in self._idl_paths:
            raise ValueError(f"Platform {platform.value} does not have IDL support configured")

        idl_path = self._idl_paths[platform]
        if not os.path.exists(idl_path):
            raise FileNotFoundError(f"IDL file not found for {platform.value} at {idl_path}")

        logger.debug(f"Loading IDL parser for {platform.value} from {idl_path}")
        parser = IDLParser(idl_path)
        self._parsers[platform] = parser

        logger.debug(
            f"IDL parser loaded for {platform.value} with "
            f"{len(parser.get_instruction_names())} instructions"
        )
        return parser


# Global IDL manager instance
_idl_manager: IDLManager | None = None


def get_idl_manager() -> IDLManager:
    """Get the global IDL manager instance."""
    global _idl_manager
    if _idl_manager is None:
        _idl_manager = IDLManager()
    return _idl_manager


def get_idl_parser(platform: Platform) -> IDLParser:
    """Convenience function to get an IDL parser for a platform.

    Args:
        platform: Platform to get parser for

    Returns:
        IDLParser instance for the platform
    """
    return get_idl_manager().get_parser(platform)
