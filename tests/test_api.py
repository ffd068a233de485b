from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

import voiceswap.main as main_module
from voiceswap.core.gas_tank import GasBudgetTracker
from voiceswap.core.intent import IntentParser
from voiceswap.core.swap.models import ExecutionResult, Quote, StatusResponse
from voiceswap.core.voice.history import SwapHistoryStore
from voiceswap.core.voice.orchestrator import ConversationOrchestrator
from voiceswap.core.voice.pricing import ProxyPriceEstimator
from voiceswap.core.voice.responses import Responses
from voiceswap.core.voice.transcription import InMemoryTranscriptionChannel
from voiceswap.core.wallet import SessionAuthorizer

WALLET = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "cd" * 32

QUOTE = Quote.model_validate({
    "tokenIn": {"symbol": "USDC", "amount": "100"},
    "tokenOut": {"symbol": "ETH", "amount": "0.05"},
})


@pytest.fixture
def swap_client():
    client = AsyncMock()
    client.get_quote.return_value = QUOTE
    client.execute_swap.return_value = ExecutionResult(status="submitted", tx_hash=TX_HASH)
    client.get_status.return_value = StatusResponse(status="confirmed", tx_hash=TX_HASH)
    client.health_check.return_value = {"status": "healthy", "network": "base"}
    return client


@pytest.fixture
def client(monkeypatch, swap_client):
    monkeypatch.setattr(main_module.settings, "price_source", "proxy")
    monkeypatch.setattr(main_module.settings, "settlement_poll_interval_seconds", 0)

    def build_orchestrator():
        return ConversationOrchestrator(
            InMemoryTranscriptionChannel(),
            IntentParser(llm_parser=None, threshold=0.8),
            swap_client,
            SessionAuthorizer(),
            GasBudgetTracker(initial_balance=Decimal("1.00")),
            history=SwapHistoryStore(max_entries=10),
            price_estimator=ProxyPriceEstimator(proxy_price=Decimal("2000"), stable_symbols=["USDC"]),
            wallet_address=WALLET,
            session_refresh_interval_seconds=3600,
        )

    monkeypatch.setattr(main_module, "build_orchestrator", build_orchestrator)

    with TestClient(main_module.app) as test_client:
        yield test_client


class TestVoiceSwapAPI:
    """Test suite for the VoiceSwap HTTP API"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "VoiceSwap API"

    def test_health_endpoint(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["providers"]["swap_backend"]["status"] == "healthy"
        assert data["available_providers"] == 1
        assert data["total_providers"] == 1
        assert data["conversation_state"] == "idle"

    def test_health_degraded_when_backend_down(self, client, swap_client):
        swap_client.health_check.return_value = {"status": "error", "reason": "connection refused"}

        data = client.get("/healthz").json()

        assert data["status"] == "degraded"
        assert data["available_providers"] == 0

    def test_swap_and_confirm_by_transcript(self, client, swap_client):
        response = client.post("/voice/transcripts", json={"text": "swap 100 USDC to ETH"})
        assert response.status_code == 200

        data = response.json()
        assert data["state"] == "confirming"
        assert data["spoken"] == [Responses.GETTING_QUOTE, "100.00 USDC gets you 0.0500 ETH. Confirm?"]
        assert data["intent"]["action"] == "swap"
        assert data["intent"]["parsed_by"] == "regex"

        state = client.get("/voice/state").json()
        assert state["pending_swap"] == {"token_in": "USDC", "token_out": "ETH", "amount_in": "100"}

        data = client.post("/voice/transcripts", json={"text": "yes"}).json()
        assert data["state"] == "complete"
        assert data["spoken"][-1] == "Sent! You're getting 0.0500 ETH."

        history = client.get("/voice/history").json()
        assert len(history) == 1
        assert history[0]["tx_hash"] == TX_HASH

    def test_empty_transcript_is_rejected(self, client):
        response = client.post("/voice/transcripts", json={"text": ""})
        assert response.status_code == 422

    def test_reset(self, client):
        client.post("/voice/transcripts", json={"text": "swap 100 USDC to ETH"})

        data = client.post("/voice/reset").json()

        assert data["state"] == "idle"
        assert data["pending_swap"] is None

    def test_session_lifecycle(self, client):
        assert client.get("/voice/session").json() == {"active": False}

        response = client.post("/voice/session", json={"max_per_tx_usd": "50", "max_total_usd": "200", "duration_minutes": 30})
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["maxValuePerTxUsd"] == "50"
        assert "privateKey" not in data["session"]
        assert data["info"]["active"] is True
        assert data["info"]["remaining"] == {"per_tx": "50", "total": "200"}

        data = client.delete("/voice/session").json()
        assert data["revoked"] is True
        assert data["info"] == {"active": False}

        assert client.delete("/voice/session").json()["revoked"] is False

    def test_gas_tank(self, client):
        data = client.get("/voice/gas-tank").json()

        assert data["balance"] == "1.00"
        assert data["swaps_remaining"] == 37
        assert data["is_low"] is False
        assert data["deposit"]["token"] == "USDC"

    def test_connect_wallet(self, client):
        other = "0x2222222222222222222222222222222222222222"

        data = client.post("/voice/wallet", json={"address": other}).json()

        assert data["wallet_address"] == other
