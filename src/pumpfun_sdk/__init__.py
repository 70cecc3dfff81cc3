"""
Client SDK for the pump.fun bonding curve program.
"""

from pumpfun_sdk.config_loader import SDKConfig, load_sdk_config
from pumpfun_sdk.core.client import SolanaClient
from pumpfun_sdk.core.errors import (
    AccountNotFound,
    AddressDerivationError,
    ConfigurationError,
    CurveCompleted,
    ExternalServiceError,
    MalformedAccount,
    MalformedEvent,
    MissingSignerError,
    PricingError,
    PumpFunError,
    SchemaMismatchError,
    SlippageUnsatisfiable,
)
from pumpfun_sdk.core.priority_fee import PriorityFee
from pumpfun_sdk.interfaces.core import TransactionResult
from pumpfun_sdk.metadata.uploader import CreateTokenMetadata, TokenMetadataUpload
from pumpfun_sdk.platforms.pumpfun.event_parser import (
    CompleteEvent,
    CreateEvent,
    EventEnvelope,
    SetParamsEvent,
    TradeEvent,
)
from pumpfun_sdk.platforms.pumpfun.layouts import BondingCurveState, GlobalConfig
from pumpfun_sdk.trading.orchestrator import PreparedTransaction
from pumpfun_sdk.trading.pumpfun_trader import PumpFunSDK

__version__ = "0.1.0"

__all__ = [
    "AccountNotFound",
    "AddressDerivationError",
    "BondingCurveState",
    "CompleteEvent",
    "ConfigurationError",
    "CreateEvent",
    "CreateTokenMetadata",
    "CurveCompleted",
    "EventEnvelope",
    "ExternalServiceError",
    "GlobalConfig",
    "MalformedAccount",
    "MalformedEvent",
    "MissingSignerError",
    "PreparedTransaction",
    "PricingError",
    "PriorityFee",
    "PumpFunError",
    "PumpFunSDK",
    "SDKConfig",
    "SchemaMismatchError",
    "SetParamsEvent",
    "SlippageUnsatisfiable",
    "SolanaClient",
    "TokenMetadataUpload",
    "TradeEvent",
    "TransactionResult",
    "load_sdk_config",
]
