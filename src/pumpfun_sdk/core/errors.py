"""
Error taxonomy for the pump.fun SDK.

Every public operation either returns a complete result or raises exactly one
of the errors below. Nothing here is retried internally; ``recoverable`` only
tells the caller whether repeating the same call could succeed.
"""

from typing import Any


class PumpFunError(Exception):
    """Base exception for all SDK errors.

    Attributes:
        message: Human-readable error message
        recoverable: Whether the call might succeed if repeated unchanged
        details: Additional error context
    """

    recoverable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({detail_str})"


class AccountNotFound(PumpFunError):
    """A required on-chain account (bonding curve, global config) is absent."""

    def __init__(self, address: Any, account_type: str = "account"):
        super().__init__(
            f"{account_type} not found: {address}",
            {"address": str(address), "account_type": account_type},
        )
        self.address = address
        self.account_type = account_type


class MalformedAccount(PumpFunError):
    """Account buffer is too short or carries the wrong discriminator."""

    def __init__(self, account_type: str, reason: str):
        super().__init__(
            f"Malformed {account_type} account: {reason}",
            {"account_type": account_type},
        )
        self.account_type = account_type
        self.reason = reason


class MalformedEvent(PumpFunError):
    """Event payload matched a known discriminator but could not be decoded."""

    def __init__(self, event_name: str, reason: str):
        super().__init__(f"Malformed {event_name}: {reason}", {"event": event_name})
        self.event_name = event_name
        self.reason = reason


class CurveCompleted(PumpFunError):
    """Trade attempted against a curve that has graduated."""

    def __init__(self, bonding_curve: Any = None):
        super().__init__(
            "Bonding curve is complete; trade on the migrated pool instead",
            {"bonding_curve": str(bonding_curve)} if bonding_curve else None,
        )
        self.bonding_curve = bonding_curve


class SlippageUnsatisfiable(PumpFunError):
    """Computed trade bound cannot be honoured by the curve."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, details)


class PricingError(PumpFunError):
    """Pricing result does not fit the program's u64 arithmetic."""


class ExternalServiceError(PumpFunError):
    """Metadata upload or ledger read/submit failure.

    Carries the HTTP/RPC status and body so the caller can decide on retry.
    """

    recoverable = True

    def __init__(
        self,
        service: str,
        message: str,
        status: int | None = None,
        body: str | None = None,
    ):
        details: dict[str, Any] = {"service": service}
        if status is not None:
            details["status"] = status
        if body:
            details["body"] = body[:200]
        super().__init__(message, details)
        self.service = service
        self.status = status
        self.body = body


class ConfigurationError(PumpFunError):
    """Invalid configuration or environment; never retryable."""


class AddressDerivationError(ConfigurationError):
    """No valid bump exists for the requested seeds."""


class SchemaMismatchError(ConfigurationError):
    """Local instruction schema disagrees with the program's published interface."""


class MissingSignerError(ConfigurationError):
    """A required signer has no keypair at signing time."""
