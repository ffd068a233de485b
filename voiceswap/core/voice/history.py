"""In-memory swap history, newest first."""

from __future__ import annotations

import logging
from typing import List, Optional

from ...config import settings
from .models import HistoryStatus, SwapHistoryEntry

logger = logging.getLogger(__name__)


class SwapHistoryStore:
    """
    Append-only history of executed swaps.

    Entries are only ever appended or have their status moved once from
    pending to a terminal value, so concurrent pollers never edit the same
    field twice.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._max_entries = max_entries or settings.history_max_entries
        self._entries: List[SwapHistoryEntry] = []
        self._last_tx_hash: Optional[str] = None

    @property
    def last_tx_hash(self) -> Optional[str]:
        return self._last_tx_hash

    def add(self, entry: SwapHistoryEntry) -> None:
        self._entries.insert(0, entry)
        del self._entries[self._max_entries:]
        if entry.tx_hash:
            self._last_tx_hash = entry.tx_hash

    def update_status(self, tx_hash: str, status: HistoryStatus) -> bool:
        """Move the matching pending entry to `status`. Returns False when nothing changed."""
        for entry in self._entries:
            if entry.tx_hash != tx_hash:
                continue
            if entry.status.is_terminal:
                logger.debug(f"History entry for {tx_hash} already {entry.status.value}")
                return False
            entry.status = status
            return True
        return False

    def get(self, tx_hash: str) -> Optional[SwapHistoryEntry]:
        for entry in self._entries:
            if entry.tx_hash == tx_hash:
                return entry
        return None

    def entries(self) -> List[SwapHistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
