"""
LLM Intent Parser - semantic extraction of swap intents.

Handles what the regex layer cannot: Spanish/Spanglish ("cien USDC",
"cambia todo mi ETH"), spoken numbers ("cero punto cinco" -> "0.5"),
"all"/"max" amounts and speech-to-text noise. The primary model is tried
first; a stronger fallback model is used when it fails.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from ...config import settings
from ...providers.llm import LLMProvider, get_llm_provider
from ...providers.llm.base import LLMMessage
from .constants import SUPPORTED_TOKENS, resolve_token
from .models import ActionType, ParsedBy, SwapIntent

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = f"""You are a voice command parser for a crypto swap app. Extract trading intents from user speech and return ONLY valid JSON.

Respond with a single JSON object with exactly these keys:
  "action": one of {", ".join(a.value for a in ActionType)}
  "amount": string or null. Use "all" for max balance. Normalize spoken numbers.
  "tokenIn": one of {", ".join(SUPPORTED_TOKENS)} or null
  "tokenOut": one of {", ".join(SUPPORTED_TOKENS)} or null
  "confidence": number between 0 and 1
  "needsConfirmation": boolean, true if info is missing or ambiguous
  "clarificationNeeded": string or null, what info is missing

RULES:
1. Normalize token aliases:
   - "ETH", "ether", "ethereum" -> "ETH"
   - "dollars", "usd", "usdc", "stablecoins" -> "USDC"
   - "dai" -> "DAI"
   - "wrapped eth" -> "WETH"
   - "mon", "monad" -> "WMON"

2. Normalize amounts:
   - Spanish numbers: "cien" -> "100", "mil" -> "1000", "cero punto cinco" -> "0.5"
   - "all", "todo", "max", "everything", "all my X" -> "all"

3. Action mapping:
   - "swap", "exchange", "trade", "convert", "change", "cambia" -> "swap"
   - "quote", "price", "how much", "cuanto" -> "quote"
   - "status", "check", "is it done", "esta listo" -> "status"
   - "balance", "how much do I have", "cuanto tengo" -> "balance"
   - "help", "ayuda", "what can you do" -> "help"
   - "yes", "yeah", "sure", "ok", "si", "dale" -> "confirm"
   - "no", "cancel", "stop", "cancelar" -> "cancel"
   - "enable quick swap", "skip confirmations" -> "enable_session"
   - "disable quick swap", "require confirmations" -> "disable_session"
   - "session status", "quick swap status" -> "session_status"
   - "gas tank", "credits", "prepaid balance" -> "gas_tank_status"
   - "refill", "add funds", "deposit" -> "gas_tank_refill"

4. Confidence scoring:
   - 1.0: Clear command with all params ("swap 100 USDC to ETH")
   - 0.8-0.9: Clear but informal ("trade my hundred bucks for eth")
   - 0.5-0.7: Missing some info or ambiguous
   - <0.5: Very unclear, likely noise

EXAMPLES:
- "swap 100 USDC to ETH" -> {{"action":"swap","amount":"100","tokenIn":"USDC","tokenOut":"ETH","confidence":1.0,"needsConfirmation":false,"clarificationNeeded":null}}
- "cambia cien dolares a ether" -> {{"action":"swap","amount":"100","tokenIn":"USDC","tokenOut":"ETH","confidence":0.9,"needsConfirmation":false,"clarificationNeeded":null}}
- "swap all my ETH" -> {{"action":"swap","amount":"all","tokenIn":"ETH","tokenOut":null,"confidence":0.6,"needsConfirmation":true,"clarificationNeeded":"What token do you want to receive?"}}
- "yes" -> {{"action":"confirm","amount":null,"tokenIn":null,"tokenOut":null,"confidence":1.0,"needsConfirmation":false,"clarificationNeeded":null}}"""


class LLMIntentParseError(Exception):
    """Raised when a model response cannot be turned into an intent."""


def _normalize_token(symbol: Optional[str]) -> Optional[str]:
    if not symbol:
        return None
    return resolve_token(symbol) or symbol.upper()


def _parse_json_response(content: str) -> Optional[Dict[str, Any]]:
    """Parse JSON from LLM response."""
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    # Markdown code block
    json_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", content, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    # Bare object somewhere in the text
    json_match = re.search(r"\{[^{}]*\}", content, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group(0))
        except json.JSONDecodeError:
            pass

    logger.warning(f"Could not parse JSON from LLM response: {content[:200]}")
    return None


class LLMIntentParser:
    """Extract a SwapIntent from free-form speech using an LLM provider."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
    ) -> None:
        self._provider = provider
        self._model = model or provider.model
        self._fallback_model = fallback_model

    @classmethod
    def from_settings(cls) -> "LLMIntentParser":
        provider = get_llm_provider(settings.llm_provider, settings.llm_model)
        return cls(
            provider,
            model=settings.llm_model,
            fallback_model=settings.llm_fallback_model,
        )

    async def parse(self, text: str) -> SwapIntent:
        try:
            return await self._parse_with_model(text, self._model, ParsedBy.LLM)
        except Exception as exc:
            logger.error(f"LLM intent parse failed with {self._model}: {exc}")

        if self._fallback_model and self._fallback_model != self._model:
            try:
                return await self._parse_with_model(text, self._fallback_model, ParsedBy.LLM_FALLBACK)
            except Exception as exc:
                logger.error(f"Fallback LLM intent parse also failed with {self._fallback_model}: {exc}")

        return SwapIntent(
            action=ActionType.UNKNOWN,
            raw_text=text,
            confidence=0.0,
            parsed_by=ParsedBy.LLM_FALLBACK,
        )

    async def _parse_with_model(self, text: str, model: str, parsed_by: ParsedBy) -> SwapIntent:
        response = await self._provider.generate_response(
            messages=[
                LLMMessage(role="system", content=SYSTEM_PROMPT),
                LLMMessage(role="user", content=text),
            ],
            max_tokens=200,
            temperature=0.1,  # Low temperature for consistent parsing
            model=model,
        )

        if not response or not response.content:
            raise LLMIntentParseError(f"No response from {model}")

        parsed = _parse_json_response(response.content)
        if not parsed:
            raise LLMIntentParseError(f"Unparseable response from {model}")

        try:
            action = ActionType(str(parsed.get("action", "unknown")).lower())
        except ValueError:
            action = ActionType.UNKNOWN

        amount = parsed.get("amount")
        try:
            confidence = float(parsed.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0

        return SwapIntent(
            action=action,
            raw_text=text,
            token_in=_normalize_token(parsed.get("tokenIn")),
            token_out=_normalize_token(parsed.get("tokenOut")),
            amount_in=str(amount) if amount not in (None, "") else None,
            confidence=max(0.0, min(confidence, 1.0)),
            parsed_by=parsed_by,
        )


__all__ = ["LLMIntentParser", "LLMIntentParseError", "SYSTEM_PROMPT"]
