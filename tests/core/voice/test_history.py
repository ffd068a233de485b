"""
Tests for the in-memory swap history.
"""

from voiceswap.core.intent import ActionType, SwapIntent
from voiceswap.core.voice.history import SwapHistoryStore
from voiceswap.core.voice.models import HistoryStatus, SwapHistoryEntry


def _entry(tx_hash=None, status=HistoryStatus.PENDING) -> SwapHistoryEntry:
    intent = SwapIntent(action=ActionType.SWAP, token_in="USDC", token_out="ETH", amount_in="100")
    return SwapHistoryEntry(intent=intent, status=status, tx_hash=tx_hash)


def test_newest_first_and_capped():
    history = SwapHistoryStore(max_entries=2)

    history.add(_entry("0x1"))
    history.add(_entry("0x2"))
    history.add(_entry("0x3"))

    assert [e.tx_hash for e in history.entries()] == ["0x3", "0x2"]
    assert len(history) == 2
    assert history.last_tx_hash == "0x3"


def test_entry_without_hash_keeps_last_hash():
    history = SwapHistoryStore()

    history.add(_entry("0x1"))
    history.add(_entry(None, HistoryStatus.FAILED))

    assert history.last_tx_hash == "0x1"


def test_status_moves_once():
    history = SwapHistoryStore()
    history.add(_entry("0x1"))

    assert history.update_status("0x1", HistoryStatus.CONFIRMED) is True
    assert history.update_status("0x1", HistoryStatus.FAILED) is False
    assert history.get("0x1").status == HistoryStatus.CONFIRMED


def test_update_unknown_hash():
    assert SwapHistoryStore().update_status("0xnope", HistoryStatus.CONFIRMED) is False


def test_entry_to_dict():
    data = _entry("0x1").to_dict()

    assert data["tx_hash"] == "0x1"
    assert data["status"] == "pending"
    assert data["intent"]["token_in"] == "USDC"
    assert data["quote"] is None
