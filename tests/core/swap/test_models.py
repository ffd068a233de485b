import pytest
from pydantic import ValidationError

from voiceswap.core.swap import ApiEnvelope, ExecutionResult, ExecutionStatus, Quote, Route, StatusResponse, SwapParams


QUOTE_PAYLOAD = {
    "tokenIn": {"address": "0xa0b8", "symbol": "USDC", "decimals": 6, "amount": "100", "amountRaw": "100000000"},
    "tokenOut": {"address": "0xc02a", "symbol": "ETH", "decimals": 18, "amount": "0.05", "amountRaw": "50000000000000000"},
    "priceImpact": "0.12",
    "route": ["USDC", "ETH"],
    "estimatedGas": "150000",
    "timestamp": 1700000000000,
}


def test_quote_reads_camel_case_payload():
    quote = Quote.model_validate(QUOTE_PAYLOAD)

    assert quote.token_in.symbol == "USDC"
    assert quote.token_in.amount_raw == "100000000"
    assert quote.token_out.amount == "0.05"
    assert quote.price_impact == "0.12"
    assert quote.estimated_gas == "150000"


def test_quote_is_immutable():
    quote = Quote.model_validate(QUOTE_PAYLOAD)

    with pytest.raises(ValidationError):
        quote.price_impact = "5"


def test_route_carries_calldata():
    route = Route.model_validate({**QUOTE_PAYLOAD, "calldata": "0xdeadbeef", "slippageTolerance": 1.0, "deadline": 60})

    assert route.calldata == "0xdeadbeef"
    assert route.slippage_tolerance == 1.0
    assert route.token_out.symbol == "ETH"


def test_swap_params_payload_omits_missing_session_signature():
    params = SwapParams(token_in="USDC", token_out="ETH", amount_in="100", recipient="0xabc", slippage_tolerance=0.5)

    assert not params.is_delegated
    assert params.to_payload() == {
        "tokenIn": "USDC",
        "tokenOut": "ETH",
        "amountIn": "100",
        "recipient": "0xabc",
        "slippageTolerance": 0.5,
    }


def test_swap_params_delegated_payload():
    params = SwapParams(token_in="USDC", token_out="ETH", amount_in="10", recipient="0xabc", session_signature="0xsig")

    assert params.is_delegated
    assert params.to_payload()["sessionSignature"] == "0xsig"


def test_execution_and_status_aliases():
    result = ExecutionResult.model_validate({"status": "submitted", "txHash": "0x1"})
    status = StatusResponse.model_validate({"status": "not_found", "txHash": "0x1", "blockNumber": 12})

    assert result.status == ExecutionStatus.SUBMITTED
    assert result.tx_hash == "0x1"
    assert status.block_number == 12


def test_envelope_error_shape():
    envelope = ApiEnvelope.model_validate({"success": False, "error": "Payment required", "code": "PAYMENT_REQUIRED"})

    assert not envelope.success
    assert envelope.data is None
    assert envelope.code == "PAYMENT_REQUIRED"
