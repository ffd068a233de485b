"""Typed models used by the intent parser."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional


class ActionType(str, Enum):
    """Actions a spoken command can map to."""

    SWAP = "swap"
    QUOTE = "quote"
    STATUS = "status"
    BALANCE = "balance"
    HELP = "help"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    ENABLE_SESSION = "enable_session"    # Enable quick swap mode
    DISABLE_SESSION = "disable_session"  # Disable quick swap mode
    SESSION_STATUS = "session_status"
    GAS_TANK_STATUS = "gas_tank_status"
    GAS_TANK_REFILL = "gas_tank_refill"
    UNKNOWN = "unknown"


class ParsedBy(str, Enum):
    REGEX = "regex"
    LLM = "llm"
    LLM_FALLBACK = "llm-fallback"


@dataclass(frozen=True)
class SwapIntent:
    """Structured representation of one spoken request."""

    action: ActionType
    raw_text: str = ""
    token_in: Optional[str] = None
    token_out: Optional[str] = None
    amount_in: Optional[str] = None
    tx_hash: Optional[str] = None
    confidence: float = 0.0
    parsed_by: Optional[ParsedBy] = None

    def with_parser(self, parsed_by: ParsedBy) -> "SwapIntent":
        return replace(self, parsed_by=parsed_by)

    @property
    def has_swap_params(self) -> bool:
        return bool(self.token_in and self.token_out and self.amount_in)


@dataclass(frozen=True)
class IntentValidation:
    valid: bool
    missing: List[str] = field(default_factory=list)
