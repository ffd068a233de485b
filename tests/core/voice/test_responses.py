"""
Tests for spoken response formatting.
"""

from decimal import Decimal

import pytest

from voiceswap.core.swap.formatting import (
    format_execution_for_speech,
    format_quote_for_speech,
    format_status_for_speech,
)
from voiceswap.core.swap.models import ExecutionResult, Quote, StatusResponse
from voiceswap.core.voice.responses import (
    Responses,
    format_duration,
    format_optimistic_quote,
    format_usd,
    humanize_number,
    humanize_token_amount,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (1234567, "1.23 million"),
        (2_500_000_000, "2.50 billion"),
        (12500, "12.50 thousand"),
        (3000, "3 thousand"),
        (3500, "3,500"),
        (1234.5, "1,234.50"),
        (123.456789, "123.46"),
        (0.5, "0.5000"),
        (0.0001, "1.00e-04"),
        (-2000, "negative 2 thousand"),
        ("abc", "abc"),
    ],
)
def test_humanize_number(value, expected):
    assert humanize_number(value) == expected


@pytest.mark.parametrize(
    "amount, symbol, expected",
    [
        ("100", "USDC", "100.00 USDC"),
        ("2500", "USDC", "2,500 USDC"),
        ("12.5", "ETH", "12.50 ETH"),
        ("1.5", "WETH", "1.500 WETH"),
        ("0.05", "ETH", "0.0500 ETH"),
        ("0.001", "ETH", "0.001000 ETH"),
        ("0.25", "WBTC", "0.250000 WBTC"),
        ("42", "WMON", "42.0000 WMON"),
        ("lots", "ETH", "lots ETH"),
    ],
)
def test_humanize_token_amount(amount, symbol, expected):
    assert humanize_token_amount(amount, symbol) == expected


def test_optimistic_quote_mentions_high_impact_only():
    assert format_optimistic_quote("100", "USDC", "0.05", "ETH", "0.3") == "100.00 USDC gets you 0.0500 ETH."
    assert format_optimistic_quote("100", "USDC", "0.05", "ETH", "2.345") == (
        "100.00 USDC gets you 0.0500 ETH. 2.3% impact."
    )


def test_format_usd_and_duration():
    assert format_usd(Decimal("500")) == "500"
    assert format_usd(Decimal("499.5")) == "499.50"
    assert format_duration(120) == "2 hours"
    assert format_duration(60) == "1 hour"
    assert format_duration(45) == "45 minutes"


def test_confirm_swap():
    assert Responses.confirm_swap("100.00 USDC gets you 0.0500 ETH.") == "100.00 USDC gets you 0.0500 ETH. Confirm?"


def test_quote_speech():
    quote = Quote.model_validate({
        "tokenIn": {"symbol": "USDC", "amount": "100"},
        "tokenOut": {"symbol": "ETH", "amount": "0.05"},
    })

    assert format_quote_for_speech(quote) == "100.00 USDC gets you 0.0500 ETH."


def test_execution_speech():
    submitted = ExecutionResult(status="submitted", tx_hash="0xabc")
    assert format_execution_for_speech(submitted, "0.05", "ETH") == "Sent! You're getting 0.0500 ETH."
    assert format_execution_for_speech(submitted) == Responses.SWAP_SUBMITTED

    assert format_execution_for_speech(ExecutionResult(status="failed", error="slippage")) == "Failed: slippage"
    assert format_execution_for_speech(ExecutionResult(status="failed")) == Responses.TX_FAILED
    assert format_execution_for_speech(ExecutionResult(status="pending")) == "Status: pending"


def test_status_speech():
    assert format_status_for_speech(StatusResponse(status="confirmed", confirmations=4)) == "Confirmed! 4 blocks."
    assert format_status_for_speech(StatusResponse(status="confirmed", confirmations=1)) == Responses.TX_CONFIRMED
    assert format_status_for_speech(StatusResponse(status="pending")) == Responses.TX_PENDING
    assert format_status_for_speech(StatusResponse(status="failed")) == Responses.TX_FAILED
    assert format_status_for_speech(StatusResponse(status="not_found")) == "Transaction not found."
