"""Session delegation for quick swaps."""

from .models import (
    ExecutionCheck,
    Permission,
    SessionAllowance,
    SessionInfo,
    SessionKey,
    SessionKeyStatus,
    SessionOptions,
    SignedUserOperation,
    SmartAccount,
    ValueLimit,
)
from .session_authorizer import SessionAuthorizer, format_expires_in

__all__ = [
    "ExecutionCheck",
    "Permission",
    "SessionAllowance",
    "SessionInfo",
    "SessionKey",
    "SessionKeyStatus",
    "SessionOptions",
    "SignedUserOperation",
    "SmartAccount",
    "ValueLimit",
    "SessionAuthorizer",
    "format_expires_in",
]
