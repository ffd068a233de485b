"""
Session delegation models.

A session key grants time-limited, amount-bounded authority to execute
swaps without a manual confirmation for every transaction ("quick swap").
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Set
import secrets


# ERC-4337 EntryPoint v0.6
ENTRY_POINT_ADDRESS = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"


class Permission(str, Enum):
    """Actions that can be permitted for a session key."""
    SWAP = "swap"
    QUOTE = "quote"
    TRANSFER = "transfer"


class SessionKeyStatus(str, Enum):
    """Status of a session key."""
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass
class ValueLimit:
    """USD value limits for a session key."""
    max_value_per_tx_usd: Decimal = Decimal("100")
    max_total_value_usd: Decimal = Decimal("500")

    # Tracking (updated during use)
    total_value_used_usd: Decimal = Decimal("0")

    @property
    def remaining_usd(self) -> Decimal:
        return self.max_total_value_usd - self.total_value_used_usd

    def record_transaction(self, value_usd: Decimal) -> None:
        """Record a transaction against the limits."""
        if value_usd <= 0:
            raise ValueError(f"Transaction value must be positive, got {value_usd}")
        self.total_value_used_usd += value_usd


@dataclass
class SmartAccount:
    """The ERC-4337 account the session key acts for."""
    address: str
    owner: str
    is_deployed: bool = True
    entry_point: str = ENTRY_POINT_ADDRESS


@dataclass
class SessionKey:
    """
    An ephemeral key pair plus the permissions the owner granted it.

    The private key never leaves the process.
    """
    session_id: str
    session_address: str
    private_key: str = field(repr=False)

    permissions: Set[Permission] = field(default_factory=lambda: {Permission.SWAP, Permission.QUOTE})
    value_limits: ValueLimit = field(default_factory=ValueLimit)
    allowed_tokens: List[str] = field(default_factory=list)  # empty = all tokens
    allowed_recipients: List[str] = field(default_factory=list)

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc) + timedelta(hours=2))
    status: SessionKeyStatus = SessionKeyStatus.ACTIVE

    @staticmethod
    def generate_session_id() -> str:
        """Generate a unique session ID."""
        return f"sess_{secrets.token_urlsafe(16)}"

    def is_valid_at(self, now: datetime) -> bool:
        if self.status != SessionKeyStatus.ACTIVE:
            return False
        return now <= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Public view, without key material."""
        return {
            "sessionId": self.session_id,
            "sessionAddress": self.session_address,
            "permissions": sorted(p.value for p in self.permissions),
            "maxValuePerTxUsd": str(self.value_limits.max_value_per_tx_usd),
            "maxTotalValueUsd": str(self.value_limits.max_total_value_usd),
            "totalValueUsedUsd": str(self.value_limits.total_value_used_usd),
            "allowedTokens": list(self.allowed_tokens),
            "allowedRecipients": list(self.allowed_recipients),
            "createdAt": int(self.created_at.timestamp() * 1000),
            "expiresAt": int(self.expires_at.timestamp() * 1000),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class SessionOptions:
    """Overrides for a new session; None falls back to configured defaults."""
    duration_minutes: Optional[int] = None
    max_per_tx_usd: Optional[Decimal] = None
    max_total_usd: Optional[Decimal] = None
    allowed_tokens: Optional[List[str]] = None


@dataclass(frozen=True)
class SessionAllowance:
    per_tx: Decimal
    total: Decimal


@dataclass(frozen=True)
class SessionInfo:
    """Read-only projection of the current session, used for speech and caching."""
    active: bool
    expires_in: Optional[str] = None
    remaining: Optional[SessionAllowance] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"active": self.active}
        if self.expires_in is not None:
            data["expires_in"] = self.expires_in
        if self.remaining is not None:
            data["remaining"] = {
                "per_tx": str(self.remaining.per_tx),
                "total": str(self.remaining.total),
            }
        return data


@dataclass(frozen=True)
class ExecutionCheck:
    """Answer to can_execute."""
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class SignedUserOperation:
    signature: str
    user_op: Dict[str, Any]
