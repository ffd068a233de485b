"""
Spoken responses and number humanization.

Responses are kept short and optimistic: they are read aloud through
glasses or a phone speaker, so every word costs the user time.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Optional, Union


class Responses:
    """Pre-built responses for common scenarios."""

    WELCOME = 'Voice Swap ready. Try "swap 100 USDC to ETH".'
    LISTENING = "Listening."
    NOT_UNDERSTOOD = 'Sorry, try again. Say "swap" plus amount and tokens.'
    SWAP_CANCELLED = "Cancelled."
    SWAP_EXECUTING = "Swapping now..."
    SWAP_SUBMITTED = "Done! Confirming on chain."
    NETWORK_ERROR = "Connection issue. Trying again."
    HELP = "Say: Swap amount token to token. Like: Swap 100 USDC to ETH. Or: Check status, gas tank balance."
    PAYMENT_REQUIRED = "Authorizing payment."

    # Feedback while a request is in flight
    GETTING_QUOTE = "Getting price..."
    TX_PENDING = "Submitted. Waiting for confirmation."
    TX_CONFIRMED = "Confirmed!"
    TX_FAILED = "Transaction failed. Try again."

    @staticmethod
    def confirm_swap(quote: str) -> str:
        return f"{quote} Confirm?"


STABLE_SYMBOLS = {"USDC", "USDT", "DAI", "BUSD", "USDBC"}
ETH_SYMBOLS = {"ETH", "WETH"}
BTC_SYMBOLS = {"BTC", "WBTC"}


def humanize_number(value: Union[float, int, str], decimals: int = 2) -> str:
    """
    Humanize numbers for speech.

    Examples:
        1234567 -> "1.23 million"
        12345 -> "12.35 thousand"
        3000 -> "3 thousand"
        123.456789 -> "123.46"
    """
    try:
        num = float(value)
    except (TypeError, ValueError):
        return str(value)

    if math.isnan(num):
        return str(value)
    if num == 0:
        return "0"

    abs_num = abs(num)
    sign = "negative " if num < 0 else ""

    if abs_num >= 1_000_000_000:
        return f"{sign}{abs_num / 1_000_000_000:.{decimals}f} billion"
    if abs_num >= 1_000_000:
        return f"{sign}{abs_num / 1_000_000:.{decimals}f} million"
    if abs_num >= 10_000:
        return f"{sign}{abs_num / 1_000:.{decimals}f} thousand"

    if abs_num >= 1_000:
        whole = int(abs_num)
        fraction = abs_num - whole
        thousands, hundreds = divmod(whole, 1000)

        if fraction > 0 and decimals > 0:
            fraction_digits = f"{fraction:.{decimals}f}".split(".")[1]
            return f"{sign}{whole:,}.{fraction_digits}"
        if hundreds == 0:
            return f"{sign}{thousands} thousand"
        return f"{sign}{whole:,}"

    if abs_num < 0.001:
        return f"{sign}{abs_num:.2e}"
    if abs_num < 1:
        return f"{sign}{abs_num:.{max(decimals, 4)}f}"

    return f"{sign}{abs_num:.{decimals}f}"


def format_usd(value: Union[Decimal, float, int]) -> str:
    """Dollar figure for speech: "500" for whole amounts, "499.50" otherwise."""
    amount = Decimal(str(value))
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount:.2f}"


def format_duration(minutes: int) -> str:
    """"2 hours", "1 hour", "45 minutes"."""
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


def humanize_token_amount(amount: Union[str, float], symbol: str) -> str:
    """Precision depends on the token class: dollars for stables, more digits for ETH/BTC."""
    try:
        num = float(amount)
    except (TypeError, ValueError):
        return f"{amount} {symbol}"

    upper = symbol.upper()

    if upper in STABLE_SYMBOLS:
        if num >= 1000:
            return f"{humanize_number(num, 0)} {symbol}"
        return f"{num:.2f} {symbol}"

    if upper in ETH_SYMBOLS:
        if num >= 10:
            return f"{num:.2f} {symbol}"
        if num >= 1:
            return f"{num:.3f} {symbol}"
        if num >= 0.01:
            return f"{num:.4f} {symbol}"
        return f"{num:.6f} {symbol}"

    if upper in BTC_SYMBOLS:
        if num >= 1:
            return f"{num:.4f} {symbol}"
        return f"{num:.6f} {symbol}"

    if num >= 1000:
        return f"{humanize_number(num, 1)} {symbol}"
    return f"{num:.4f} {symbol}"


def format_optimistic_quote(
    amount_in: str,
    symbol_in: str,
    amount_out: str,
    symbol_out: str,
    price_impact: Optional[str] = None,
) -> str:
    """"100.00 USDC gets you 0.0500 ETH." with impact only when above 1%."""
    message = f"{humanize_token_amount(amount_in, symbol_in)} gets you {humanize_token_amount(amount_out, symbol_out)}."

    if price_impact:
        try:
            impact = float(price_impact)
        except ValueError:
            impact = 0.0
        if impact > 1:
            message += f" {impact:.1f}% impact."

    return message


def format_swap_result(tx_hash: str, amount_out: str, symbol_out: str) -> str:
    return f"Sent! You're getting {humanize_token_amount(amount_out, symbol_out)}."


__all__ = [
    "Responses",
    "format_usd",
    "format_duration",
    "humanize_number",
    "humanize_token_amount",
    "format_optimistic_quote",
    "format_swap_result",
]
