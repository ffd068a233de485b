"""
Conversation models for the voice orchestrator.

The conversational state lives in an explicit ConversationContext owned by
one orchestrator instance rather than in a process-wide store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..intent.models import SwapIntent
from ..swap.models import Quote
from ..wallet.models import SessionInfo


class ConversationState(str, Enum):
    """States of the voice conversation."""
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"      # Fetching a quote or status
    CONFIRMING = "confirming"      # A swap awaits a spoken "yes"
    EXECUTING = "executing"
    COMPLETE = "complete"
    ERROR = "error"


class HistoryStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self != HistoryStatus.PENDING


@dataclass
class SwapHistoryEntry:
    """One executed swap. Status moves from pending to a terminal value once."""
    intent: SwapIntent
    status: HistoryStatus
    quote: Optional[Quote] = None
    tx_hash: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "intent": {
                "action": self.intent.action.value,
                "token_in": self.intent.token_in,
                "token_out": self.intent.token_out,
                "amount_in": self.intent.amount_in,
                "raw_text": self.intent.raw_text,
            },
            "quote": self.quote.model_dump(by_alias=True) if self.quote else None,
            "tx_hash": self.tx_hash,
            "status": self.status.value,
        }


@dataclass
class ConversationContext:
    """Orchestrator-local state for the current conversation."""
    state: ConversationState = ConversationState.IDLE
    wallet_address: Optional[str] = None
    is_listening: bool = False

    current_intent: Optional[SwapIntent] = None
    current_quote: Optional[Quote] = None
    # The swap awaiting confirmation; set only while state is CONFIRMING
    pending_swap: Optional[SwapIntent] = None

    last_error: Optional[str] = None
    last_response: Optional[str] = None

    # Cache of the session authorizer's projection
    session_info: SessionInfo = field(default_factory=lambda: SessionInfo(active=False))

    def clear_turn_state(self) -> None:
        self.pending_swap = None
        self.current_intent = None
        self.current_quote = None
        self.last_error = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "wallet_address": self.wallet_address,
            "is_listening": self.is_listening,
            "current_intent": self.current_intent.action.value if self.current_intent else None,
            "pending_swap": {
                "token_in": self.pending_swap.token_in,
                "token_out": self.pending_swap.token_out,
                "amount_in": self.pending_swap.amount_in,
            } if self.pending_swap else None,
            "current_quote": self.current_quote.model_dump(by_alias=True) if self.current_quote else None,
            "last_error": self.last_error,
            "last_response": self.last_response,
            "session": self.session_info.to_dict(),
        }


@dataclass
class TurnOutcome:
    """What one processed transcript did."""
    state: ConversationState
    spoken: List[str] = field(default_factory=list)
    intent: Optional[SwapIntent] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "spoken": list(self.spoken),
            "intent": {
                "action": self.intent.action.value,
                "token_in": self.intent.token_in,
                "token_out": self.intent.token_out,
                "amount_in": self.intent.amount_in,
                "confidence": self.intent.confidence,
                "parsed_by": self.intent.parsed_by.value if self.intent.parsed_by else None,
            } if self.intent else None,
            "error": self.error,
        }
