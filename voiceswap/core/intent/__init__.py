"""Voice intent parsing."""

from .models import ActionType, IntentValidation, ParsedBy, SwapIntent
from .constants import SUPPORTED_TOKENS, TOKEN_ALIASES, resolve_token
from .llm_parser import LLMIntentParser
from .parser import IntentParser, describe_intent, parse_voice_command, validate_intent

__all__ = [
    "ActionType",
    "IntentValidation",
    "ParsedBy",
    "SwapIntent",
    "SUPPORTED_TOKENS",
    "TOKEN_ALIASES",
    "resolve_token",
    "LLMIntentParser",
    "IntentParser",
    "describe_intent",
    "parse_voice_command",
    "validate_intent",
]
