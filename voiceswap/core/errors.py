"""
Error Classification

Defines the error taxonomy surfaced to the user by the voice orchestrator.
Every error carries an explicit kind so the central handler can branch on
it without inspecting exception classes.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Discriminant used by the orchestrator's central error handler."""

    INSUFFICIENT_GAS_TANK = "insufficient_gas_tank"  # Prepaid balance exhausted
    PAYMENT_REQUIRED = "payment_required"            # Backend answered HTTP 402
    GENERIC = "generic"                              # Anything else


class VoiceSwapError(Exception):
    """Base class for errors raised by VoiceSwap components."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SwapClientError(VoiceSwapError):
    """The swap backend rejected a request or returned an unusable payload."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, details={"code": code, "status_code": status_code})
        self.code = code
        self.status_code = status_code


class NoTransactionError(SwapClientError):
    """Status was requested but no transaction hash is known."""

    def __init__(self, message: str = "No transaction hash available"):
        super().__init__(message, code="NO_TRANSACTION")


@dataclass
class PaymentInfo:
    """Payment requirements advertised by an x402 402 response."""

    address: Optional[str] = None
    amount: Optional[str] = None
    network: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class PaymentRequiredError(VoiceSwapError):
    """The backend demands payment before serving the request."""

    kind = ErrorKind.PAYMENT_REQUIRED

    def __init__(
        self,
        message: str = "Payment required for this endpoint",
        payment_info: Optional[PaymentInfo] = None,
    ):
        self.payment_info = payment_info or PaymentInfo()
        super().__init__(
            message,
            details={
                "address": self.payment_info.address,
                "amount": self.payment_info.amount,
                "network": self.payment_info.network,
            },
        )


class InsufficientGasTankError(VoiceSwapError):
    """The prepaid Gas Tank cannot cover a paid request."""

    kind = ErrorKind.INSUFFICIENT_GAS_TANK

    def __init__(self, required: Decimal, available: Decimal):
        self.required = Decimal(required)
        self.available = Decimal(available)
        super().__init__(
            f"Insufficient Gas Tank balance. Required: ${self.required}, "
            f"Available: ${self.available:.4f}",
            details={"required": str(self.required), "available": str(self.available)},
        )


class SessionError(VoiceSwapError):
    """Session delegation could not be used."""


class WalletNotConnectedError(VoiceSwapError):
    """An operation needs a wallet address and none is connected."""

    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


def classify_error(error: BaseException) -> ErrorKind:
    """Return the kind of an exception; unknown exceptions are generic."""
    if isinstance(error, VoiceSwapError):
        return error.kind
    return ErrorKind.GENERIC
