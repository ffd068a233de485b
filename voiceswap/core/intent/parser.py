"""
Intent Parser - converts voice commands to structured intents.

Two layers:
1. Fast regex matching for common, clearly phrased commands.
2. LLM fallback for low-confidence or unrecognized commands (Spanish,
   spoken numbers, "all" amounts, speech-to-text noise).
"""

from __future__ import annotations

import logging
from typing import Optional

from ...config import settings
from .constants import (
    CANCEL_PATTERNS,
    COMMAND_PATTERNS,
    CONFIRM_PATTERNS,
    QUOTE_PATTERNS,
    SWAP_PATTERNS,
    resolve_token,
)
from .llm_parser import LLMIntentParser
from .models import ActionType, IntentValidation, ParsedBy, SwapIntent

logger = logging.getLogger(__name__)


def _resolve_spoken_token(spoken: Optional[str]) -> Optional[str]:
    if not spoken:
        return None
    resolved = resolve_token(spoken)
    if resolved is None and " " in spoken.strip():
        # "eth please" -> "eth"
        resolved = resolve_token(spoken.split()[0])
    return resolved


def _parse_with_regex(text: str) -> SwapIntent:
    normalized = text.lower().strip().rstrip(".!?,").strip()

    # Short confirmation/cancellation replies first
    if any(p.search(normalized) for p in CONFIRM_PATTERNS):
        return SwapIntent(action=ActionType.CONFIRM, confidence=0.95, raw_text=text)

    if any(p.search(normalized) for p in CANCEL_PATTERNS):
        return SwapIntent(action=ActionType.CANCEL, confidence=0.95, raw_text=text)

    for pattern, buy_ordering in SWAP_PATTERNS:
        match = pattern.search(normalized)
        if not match:
            continue
        if buy_ordering:
            # "buy ETH with 100 USDC" -> token_out, amount, token_in
            token_out_raw, amount_in, token_in_raw = match.group(1), match.group(2), match.group(3)
        else:
            amount_in, token_in_raw, token_out_raw = match.group(1), match.group(2), match.group(3)

        token_in = _resolve_spoken_token(token_in_raw)
        token_out = _resolve_spoken_token(token_out_raw)
        if token_in and token_out and amount_in:
            return SwapIntent(
                action=ActionType.SWAP,
                amount_in=amount_in,
                token_in=token_in,
                token_out=token_out,
                confidence=0.9,
                raw_text=text,
            )

        # Tokens not recognized
        return SwapIntent(
            action=ActionType.SWAP,
            amount_in=amount_in,
            token_in=token_in,
            token_out=token_out,
            confidence=0.5,
            raw_text=text,
        )

    for pattern in QUOTE_PATTERNS:
        match = pattern.search(normalized)
        if not match:
            continue
        token_in = _resolve_spoken_token(match.group(2))
        token_out = _resolve_spoken_token(match.group(3)) if pattern.groups >= 3 else None
        return SwapIntent(
            action=ActionType.QUOTE,
            amount_in=match.group(1),
            token_in=token_in,
            token_out=token_out,
            confidence=0.85 if token_in and token_out else 0.5,
            raw_text=text,
        )

    for action, confidence, patterns in COMMAND_PATTERNS:
        if any(p.search(normalized) for p in patterns):
            return SwapIntent(action=action, confidence=confidence, raw_text=text)

    return SwapIntent(action=ActionType.UNKNOWN, confidence=0.0, raw_text=text)


def parse_voice_command(text: str) -> SwapIntent:
    """Synchronous regex-only parse."""
    return _parse_with_regex(text).with_parser(ParsedBy.REGEX)


class IntentParser:
    """Regex-first parser with an optional LLM fallback."""

    def __init__(
        self,
        llm_parser: Optional[LLMIntentParser] = None,
        *,
        threshold: Optional[float] = None,
    ) -> None:
        self._llm_parser = llm_parser
        self._threshold = settings.intent_llm_threshold if threshold is None else threshold

    @classmethod
    def from_settings(cls) -> "IntentParser":
        llm_parser = None
        if settings.enable_llm_parser and settings.has_llm_key:
            llm_parser = LLMIntentParser.from_settings()
        return cls(llm_parser=llm_parser)

    @property
    def llm_available(self) -> bool:
        return self._llm_parser is not None

    async def parse_voice_command_async(self, text: str) -> SwapIntent:
        regex_result = _parse_with_regex(text)

        if regex_result.confidence >= self._threshold and regex_result.action != ActionType.UNKNOWN:
            logger.debug(
                "Regex parsed %s with confidence %.2f",
                regex_result.action.value,
                regex_result.confidence,
            )
            return regex_result.with_parser(ParsedBy.REGEX)

        if self._llm_parser is None:
            return regex_result.with_parser(ParsedBy.REGEX)

        logger.info("Regex confidence %.2f, falling back to LLM", regex_result.confidence)
        try:
            return await self._llm_parser.parse(text)
        except Exception as exc:
            logger.warning("LLM intent parse failed, using regex result: %s", exc)
            return regex_result.with_parser(ParsedBy.REGEX)

    def parse_voice_command(self, text: str) -> SwapIntent:
        return parse_voice_command(text)

    @staticmethod
    def validate_intent(intent: SwapIntent) -> IntentValidation:
        return validate_intent(intent)


def validate_intent(intent: SwapIntent) -> IntentValidation:
    """Check that swap/quote intents carry every required parameter."""
    missing = []

    if intent.action in (ActionType.SWAP, ActionType.QUOTE):
        if not intent.amount_in:
            missing.append('amount')
        if not intent.token_in:
            missing.append('source token')
        if not intent.token_out:
            missing.append('destination token')

    return IntentValidation(valid=not missing, missing=missing)


def describe_intent(intent: SwapIntent) -> str:
    """Human readable description of an intent."""
    action = intent.action
    if action == ActionType.SWAP:
        if intent.has_swap_params:
            return f"Swap {intent.amount_in} {intent.token_in} to {intent.token_out}"
        return "Swap (incomplete parameters)"
    if action == ActionType.QUOTE:
        if intent.has_swap_params:
            return f"Get quote for {intent.amount_in} {intent.token_in} to {intent.token_out}"
        return "Get quote (incomplete parameters)"

    descriptions = {
        ActionType.STATUS: "Check swap status",
        ActionType.BALANCE: "Check wallet balance",
        ActionType.HELP: "Show help",
        ActionType.CONFIRM: "Confirm action",
        ActionType.CANCEL: "Cancel action",
        ActionType.ENABLE_SESSION: "Enable quick swap mode",
        ActionType.DISABLE_SESSION: "Disable quick swap mode",
        ActionType.SESSION_STATUS: "Check session status",
        ActionType.GAS_TANK_STATUS: "Check Gas Tank balance",
        ActionType.GAS_TANK_REFILL: "Get Gas Tank refill instructions",
    }
    return descriptions.get(action, f'Unknown command: "{intent.raw_text}"')
