"""Token aliases and command patterns for voice intent parsing."""

from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

from .models import ActionType

# Spoken token name -> canonical symbol.
TOKEN_ALIASES: Dict[str, str] = {
    # ETH variants
    'eth': 'ETH',
    'ether': 'ETH',
    'ethereum': 'ETH',
    'weth': 'WETH',
    'wrapped eth': 'WETH',
    'wrapped ether': 'WETH',
    # MON variants
    'mon': 'WMON',
    'monad': 'WMON',
    'wmon': 'WMON',
    'wrapped monad': 'WMON',
    'wrapped mon': 'WMON',
    # USDC variants
    'usdc': 'USDC',
    'usd': 'USDC',
    'dollars': 'USDC',
    'dollar': 'USDC',
    'bucks': 'USDC',
    'usd coin': 'USDC',
    'stablecoin': 'USDC',
    'stablecoins': 'USDC',
    'stable': 'USDC',
    'usdbc': 'USDbC',
    # Other stables
    'usdt': 'USDT',
    'tether': 'USDT',
    'dai': 'DAI',
}

SUPPORTED_TOKENS: Tuple[str, ...] = ('USDC', 'WETH', 'ETH', 'DAI', 'USDbC', 'USDT', 'WMON')

_TOKEN = r"(\w+(?:\s+\w+)?)"
_AMOUNT = r"(\d+(?:\.\d+)?)"

# Patterns that carry swap parameters. The flag marks "buy X with N Y" ordering.
SWAP_PATTERNS: List[Tuple[Pattern[str], bool]] = [
    (re.compile(rf"(?:swap|exchange|convert|trade|change)\s+{_AMOUNT}\s+{_TOKEN}\s+(?:to|for|into)\s+{_TOKEN}", re.I), False),
    (re.compile(rf"(?:buy|get)\s+{_TOKEN}\s+(?:with|using)\s+{_AMOUNT}\s+{_TOKEN}", re.I), True),
    (re.compile(rf"(?:sell)\s+{_AMOUNT}\s+{_TOKEN}\s+(?:for)\s+{_TOKEN}", re.I), False),
]

QUOTE_PATTERNS: List[Pattern[str]] = [
    re.compile(rf"(?:quote|price|how much)\s+(?:for\s+)?{_AMOUNT}\s+{_TOKEN}\s+(?:to|for|into)\s+{_TOKEN}", re.I),
    re.compile(rf"(?:what|how much)\s+(?:is|would)\s+{_AMOUNT}\s+{_TOKEN}\s+(?:get|be|worth)", re.I),
]

# Parameterless commands, checked in this order after confirm/cancel/swap/quote.
COMMAND_PATTERNS: List[Tuple[ActionType, float, List[Pattern[str]]]] = [
    (ActionType.STATUS, 0.9, [
        re.compile(r"(?:check|what'?s?|get)\s+(?:the\s+)?status", re.I),
        re.compile(r"(?:is|did)\s+(?:my|the)\s+(?:swap|transaction|tx)\s+(?:complete|done|finished)", re.I),
        re.compile(r"(?:last|recent)\s+(?:swap|transaction)", re.I),
    ]),
    (ActionType.BALANCE, 0.9, [
        re.compile(r"(?:what'?s?|check|show|get)\s+(?:my\s+)?balance", re.I),
        re.compile(r"(?:how much)\s+(?:do i have|in my wallet)", re.I),
    ]),
    (ActionType.HELP, 0.95, [
        re.compile(r"^help$", re.I),
        re.compile(r"what\s+can\s+(?:you|i)\s+(?:do|say)", re.I),
        re.compile(r"(?:show|list)\s+commands", re.I),
    ]),
    (ActionType.ENABLE_SESSION, 0.9, [
        re.compile(r"(?:enable|turn on|start|activate)\s+(?:quick\s+)?(?:swap|session|auto)", re.I),
        re.compile(r"(?:quick|fast)\s+(?:swap|mode)\s+(?:on|enable)", re.I),
        re.compile(r"(?:no|skip|without)\s+(?:confirm|confirmation)", re.I),
    ]),
    (ActionType.DISABLE_SESSION, 0.9, [
        re.compile(r"(?:disable|turn off|stop|deactivate)\s+(?:quick\s+)?(?:swap|session|auto)", re.I),
        re.compile(r"(?:quick|fast)\s+(?:swap|mode)\s+(?:off|disable)", re.I),
        re.compile(r"(?:require|need)\s+confirm", re.I),
        re.compile(r"(?:revoke|end)\s+session", re.I),
    ]),
    (ActionType.SESSION_STATUS, 0.9, [
        re.compile(r"(?:session|quick swap)\s+(?:status|info|remaining)", re.I),
        re.compile(r"(?:how much|what'?s?)\s+(?:left|remaining)\s+(?:in|on)\s+(?:session|quick)", re.I),
    ]),
    (ActionType.GAS_TANK_STATUS, 0.9, [
        re.compile(r"(?:gas\s*tank|credits?|prepaid)\s+(?:status|balance|remaining)", re.I),
        re.compile(r"(?:how much|what'?s?)\s+(?:in|left|remaining)\s+(?:my\s+)?(?:gas\s*tank|credits?)", re.I),
        re.compile(r"(?:how many)\s+swaps?\s+(?:can i|do i|remaining)", re.I),
    ]),
    (ActionType.GAS_TANK_REFILL, 0.9, [
        re.compile(r"(?:refill|add|deposit|top up)\s+(?:gas\s*tank|credits?|funds?)", re.I),
        re.compile(r"(?:gas\s*tank|credits?)\s+(?:refill|deposit|add)", re.I),
        re.compile(r"(?:how|where)\s+(?:to|can i)\s+(?:refill|add|deposit)", re.I),
    ]),
]

CONFIRM_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^(?:yes|yeah|yep|sure|ok|okay|confirm|do it|proceed|go ahead|execute)$", re.I),
    re.compile(r"(?:sounds good|let'?s? do it|make it happen)", re.I),
]

CANCEL_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^(?:no|nope|cancel|stop|nevermind|never mind|abort)$", re.I),
    re.compile(r"(?:don'?t|do not)\s+(?:do it|proceed|execute)", re.I),
]


def resolve_token(spoken: str) -> str | None:
    """Resolve a spoken token name to its canonical symbol (or a raw address)."""
    normalized = spoken.lower().strip()

    if normalized in TOKEN_ALIASES:
        return TOKEN_ALIASES[normalized]

    if normalized.startswith('0x') and len(normalized) == 42:
        return normalized

    return None


__all__ = [
    'TOKEN_ALIASES',
    'SUPPORTED_TOKENS',
    'SWAP_PATTERNS',
    'QUOTE_PATTERNS',
    'COMMAND_PATTERNS',
    'CONFIRM_PATTERNS',
    'CANCEL_PATTERNS',
    'resolve_token',
]
