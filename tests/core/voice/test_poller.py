"""
Tests for settlement polling.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from voiceswap.core.intent import ActionType, SwapIntent
from voiceswap.core.swap.models import StatusResponse
from voiceswap.core.voice.history import SwapHistoryStore
from voiceswap.core.voice.models import HistoryStatus, SwapHistoryEntry
from voiceswap.core.voice.poller import SettlementPoller
from voiceswap.core.voice.responses import Responses


def _history(tx_hash: str) -> SwapHistoryStore:
    history = SwapHistoryStore()
    history.add(SwapHistoryEntry(
        intent=SwapIntent(action=ActionType.SWAP, token_in="USDC", token_out="ETH", amount_in="100"),
        status=HistoryStatus.PENDING,
        tx_hash=tx_hash,
    ))
    return history


def _status(value: str) -> StatusResponse:
    return StatusResponse(status=value, tx_hash="0xabc")


@pytest.mark.asyncio
async def test_polls_until_confirmed():
    source = AsyncMock()
    source.get_status.side_effect = [_status("pending"), _status("pending"), _status("confirmed")]
    announce = AsyncMock()
    history = _history("0xabc")
    poller = SettlementPoller(source, history, announce, interval_seconds=0, max_attempts=5)

    result = await poller.start("0xabc")

    assert result == HistoryStatus.CONFIRMED
    assert source.get_status.await_count == 3
    source.get_status.assert_awaited_with("0xabc")
    assert history.get("0xabc").status == HistoryStatus.CONFIRMED
    announce.assert_awaited_once_with(Responses.TX_CONFIRMED)


@pytest.mark.asyncio
async def test_failed_transaction_is_announced():
    source = AsyncMock()
    source.get_status.return_value = _status("failed")
    announce = AsyncMock()
    history = _history("0xabc")
    poller = SettlementPoller(source, history, announce, interval_seconds=0, max_attempts=5)

    result = await poller.start("0xabc")

    assert result == HistoryStatus.FAILED
    assert history.get("0xabc").status == HistoryStatus.FAILED
    announce.assert_awaited_once_with(Responses.TX_FAILED)


@pytest.mark.asyncio
async def test_gives_up_silently_after_max_attempts():
    source = AsyncMock()
    source.get_status.return_value = _status("pending")
    announce = AsyncMock()
    history = _history("0xabc")
    poller = SettlementPoller(source, history, announce, interval_seconds=0, max_attempts=3)

    result = await poller.start("0xabc")

    assert result is None
    assert source.get_status.await_count == 3
    assert history.get("0xabc").status == HistoryStatus.PENDING
    announce.assert_not_awaited()


@pytest.mark.asyncio
async def test_query_errors_use_up_attempts():
    source = AsyncMock()
    source.get_status.side_effect = [RuntimeError("timeout"), _status("confirmed")]
    announce = AsyncMock()
    poller = SettlementPoller(source, _history("0xabc"), announce, interval_seconds=0, max_attempts=2)

    assert await poller.start("0xabc") == HistoryStatus.CONFIRMED

    source.get_status.reset_mock(side_effect=True)
    source.get_status.side_effect = RuntimeError("timeout")
    poller = SettlementPoller(source, _history("0xdef"), announce, interval_seconds=0, max_attempts=2)

    assert await poller.start("0xdef") is None
    assert source.get_status.await_count == 2


@pytest.mark.asyncio
async def test_start_reuses_live_task_and_cancel_all():
    gate = asyncio.Event()

    async def slow_status(tx_hash=None):
        await gate.wait()
        return _status("pending")

    source = AsyncMock()
    source.get_status.side_effect = slow_status
    poller = SettlementPoller(source, _history("0xabc"), AsyncMock(), interval_seconds=0, max_attempts=10)

    first = poller.start("0xabc")
    second = poller.start("0xabc")
    await asyncio.sleep(0)

    assert first is second
    assert poller.active_hashes == ["0xabc"]

    await poller.cancel_all()

    assert first.cancelled()
    assert poller.active_hashes == []


@pytest.mark.asyncio
async def test_cancel_single_poller():
    gate = asyncio.Event()

    async def slow_status(tx_hash=None):
        await gate.wait()
        return _status("pending")

    source = AsyncMock()
    source.get_status.side_effect = slow_status
    poller = SettlementPoller(source, _history("0xabc"), AsyncMock(), interval_seconds=0, max_attempts=10)
    task = poller.start("0xabc")
    await asyncio.sleep(0)

    assert await poller.cancel("0xabc") is True
    assert task.cancelled()
    assert await poller.cancel("0xabc") is False
