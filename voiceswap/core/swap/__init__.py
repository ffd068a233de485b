"""Swap backend wire models and their speech rendering."""

from .models import (
    ApiEnvelope,
    BackendToken,
    ExecutionResult,
    ExecutionStatus,
    Quote,
    Route,
    StatusResponse,
    SwapParams,
    TokenInfo,
    TransactionStatus,
)
from .formatting import (
    format_execution_for_speech,
    format_quote_for_speech,
    format_status_for_speech,
)

__all__ = [
    "ApiEnvelope",
    "BackendToken",
    "ExecutionResult",
    "ExecutionStatus",
    "Quote",
    "Route",
    "StatusResponse",
    "SwapParams",
    "TokenInfo",
    "TransactionStatus",
    "format_execution_for_speech",
    "format_quote_for_speech",
    "format_status_for_speech",
]
