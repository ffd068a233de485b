"""
Tests for the swap backend client, using httpx.MockTransport.
"""

import base64
import json
from decimal import Decimal

import httpx
import pytest

from voiceswap.core.errors import (
    InsufficientGasTankError,
    NoTransactionError,
    PaymentRequiredError,
    SwapClientError,
)
from voiceswap.core.gas_tank import GasBudgetTracker
from voiceswap.core.swap.models import ExecutionStatus, SwapParams, TransactionStatus
from voiceswap.providers.swap_backend import SwapClient


BASE_URL = "http://backend.test"
RECIPIENT = "0x1111111111111111111111111111111111111111"

QUOTE_DATA = {
    "tokenIn": {"address": "0xa", "symbol": "USDC", "decimals": 6, "amount": "100", "amountRaw": "100000000"},
    "tokenOut": {"address": "0xb", "symbol": "ETH", "decimals": 18, "amount": "0.05", "amountRaw": "50000000000000000"},
    "priceImpact": "0.12",
    "route": ["0xa", "0xb"],
    "estimatedGas": "150000",
    "timestamp": 1700000000000,
}


def _ok(data, status_code=200):
    return httpx.Response(status_code, json={"success": True, "data": data})


def _client(handler, balance="1.00", clock=lambda: 1_000_000.0) -> SwapClient:
    return SwapClient(
        base_url=BASE_URL,
        gas_tank=GasBudgetTracker(initial_balance=Decimal(balance)),
        transport=httpx.MockTransport(handler),
        clock=clock,
    )


def _params(**overrides) -> SwapParams:
    values = dict(token_in="USDC", token_out="ETH", amount_in="100", recipient=RECIPIENT)
    values.update(overrides)
    return SwapParams(**values)


@pytest.mark.asyncio
async def test_get_quote_sends_prepaid_payment():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _ok(QUOTE_DATA)

    client = _client(handler)
    quote = await client.get_quote("USDC", "ETH", "100")

    assert quote.token_out.symbol == "ETH"
    assert quote.token_out.amount == "0.05"
    assert quote.price_impact == "0.12"

    request = seen[0]
    assert request.url.path == "/quote"
    assert request.url.params["tokenIn"] == "USDC"
    assert request.url.params["amountIn"] == "100"
    assert request.headers["X-Payment"].startswith("GasTank ")
    assert request.headers["X-Request-Id"].startswith("req-")
    assert "X-Idempotency-Key" in request.headers
    payment = json.loads(base64.b64decode(request.headers["X-Payment"].split(" ", 1)[1]))
    assert payment["endpoint"] == "/quote"
    assert client.gas_tank.get_balance() == Decimal("0.999")


@pytest.mark.asyncio
async def test_empty_gas_tank_raises_before_sending():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = _client(handler, balance="0")

    with pytest.raises(InsufficientGasTankError) as exc_info:
        await client.get_quote("USDC", "ETH", "100")

    assert exc_info.value.required == Decimal("0.001")
    assert exc_info.value.available == Decimal("0")


@pytest.mark.asyncio
async def test_rejected_prepaid_payment_retries_without_header():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if "X-Payment" in request.headers:
            return httpx.Response(402, json={"success": False, "error": "Payment required"})
        return _ok(QUOTE_DATA)

    client = _client(handler)
    quote = await client.get_quote("USDC", "ETH", "100")

    assert quote.token_in.symbol == "USDC"
    assert len(seen) == 2
    assert "X-Payment" not in seen[1].headers


@pytest.mark.asyncio
async def test_second_402_surfaces_payment_terms():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            402,
            headers={
                "X-Payment-Address": "0xpay",
                "X-Payment-Amount": "0.001",
                "X-Payment-Network": "base",
            },
            json={"success": False, "error": "Payment required"},
        )

    client = _client(handler)

    with pytest.raises(PaymentRequiredError) as exc_info:
        await client.get_quote("USDC", "ETH", "100")

    info = exc_info.value.payment_info
    assert info.address == "0xpay"
    assert info.amount == "0.001"
    assert info.network == "base"


@pytest.mark.asyncio
async def test_error_envelope_raises_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"success": False, "error": "Unsupported token", "code": "BAD_TOKEN"})

    client = _client(handler)

    with pytest.raises(SwapClientError) as exc_info:
        await client.get_quote("USDC", "DOGE", "100")

    assert exc_info.value.message == "Unsupported token"
    assert exc_info.value.code == "BAD_TOKEN"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_non_json_body_raises_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    client = _client(handler)

    with pytest.raises(SwapClientError) as exc_info:
        await client.get_quote("USDC", "ETH", "100")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(SwapClientError, match="Could not reach swap backend"):
        await client.get_quote("USDC", "ETH", "100")


@pytest.mark.asyncio
async def test_get_route_posts_parameters():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return _ok({**QUOTE_DATA, "calldata": "0xabcdef", "to": "0xrouter", "value": "0", "slippageTolerance": 0.5, "deadline": 1700000600})

    client = _client(handler)
    route = await client.get_route("USDC", "ETH", "100", RECIPIENT, 1.0)

    assert route.calldata == "0xabcdef"
    assert seen[0] == {
        "tokenIn": "USDC",
        "tokenOut": "ETH",
        "amountIn": "100",
        "recipient": RECIPIENT,
        "slippageTolerance": 1.0,
    }
    assert client.gas_tank.get_balance() == Decimal("0.995")


@pytest.mark.asyncio
async def test_execute_swap_uses_deterministic_idempotency_key():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _ok({"status": "submitted", "txHash": "0xhash"})

    client = _client(handler)
    params = _params(session_signature="0xsig")

    result = await client.execute_swap(params)
    await client.execute_swap(params)

    assert result.status == ExecutionStatus.SUBMITTED
    assert result.tx_hash == "0xhash"
    assert client.last_tx_hash == "0xhash"

    first_key = seen[0].headers["X-Idempotency-Key"]
    assert first_key == seen[1].headers["X-Idempotency-Key"]
    assert first_key == client.swap_idempotency_key(params)
    assert first_key.startswith("swap-3333-")

    body = json.loads(seen[0].content)
    assert body["sessionSignature"] == "0xsig"
    assert "slippageTolerance" in body


@pytest.mark.asyncio
async def test_idempotency_key_changes_with_window_and_params():
    now = [1_000_000.0]
    client = _client(lambda request: _ok({}), clock=lambda: now[0])
    params = _params()

    key = client.swap_idempotency_key(params)
    assert client.swap_idempotency_key(_params(amount_in="101")) != key

    now[0] += 300
    assert client.swap_idempotency_key(params) != key


@pytest.mark.asyncio
async def test_get_status_uses_last_hash():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/execute":
            return _ok({"status": "submitted", "txHash": "0xlast"})
        return _ok({"status": "confirmed", "txHash": "0xlast", "blockNumber": 12, "confirmations": 3})

    client = _client(handler)
    await client.execute_swap(_params())
    status = await client.get_status()

    assert seen[-1] == "/status/0xlast"
    assert status.status == TransactionStatus.CONFIRMED
    assert status.confirmations == 3


@pytest.mark.asyncio
async def test_get_status_without_hash():
    client = _client(lambda request: _ok({}))

    with pytest.raises(NoTransactionError):
        await client.get_status()


@pytest.mark.asyncio
async def test_get_tokens_is_free():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _ok({"USDC": {"address": "0xa", "symbol": "USDC", "decimals": 6}})

    client = _client(handler)
    tokens = await client.get_tokens()

    assert tokens["USDC"].decimals == 6
    assert "X-Payment" not in seen[0].headers
    assert client.gas_tank.get_balance() == Decimal("1.00")


@pytest.mark.asyncio
async def test_health_check():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ok", "network": "base", "version": "1.2.0"})

    health = await _client(handler).health_check()

    assert health["status"] == "healthy"
    assert health["network"] == "base"


@pytest.mark.asyncio
async def test_health_check_reports_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"status": "down"})

    health = await _client(handler).health_check()

    assert health["status"] == "error"
