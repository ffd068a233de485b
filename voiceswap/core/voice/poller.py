"""
Settlement poller.

One background task per transaction hash polls the backend until the
transaction confirms or fails, or until the attempt budget runs out. Pollers
outlive the conversational turn that started them and are only cancelled on
teardown.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

import structlog

from ...config import settings
from ..swap.models import StatusResponse, TransactionStatus
from .history import SwapHistoryStore
from .models import HistoryStatus
from .responses import Responses

logger = structlog.stdlib.get_logger(__name__)

Announce = Callable[[str], Awaitable[None]]


class StatusSource(Protocol):
    async def get_status(self, tx_hash: Optional[str] = None) -> StatusResponse:
        ...


_TERMINAL = {
    TransactionStatus.CONFIRMED: (HistoryStatus.CONFIRMED, Responses.TX_CONFIRMED),
    TransactionStatus.FAILED: (HistoryStatus.FAILED, Responses.TX_FAILED),
}


class SettlementPoller:
    """Poll transaction status at a fixed interval; no backoff."""

    def __init__(
        self,
        status_source: StatusSource,
        history: SwapHistoryStore,
        announce: Announce,
        *,
        interval_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._status_source = status_source
        self._history = history
        self._announce = announce
        self.interval_seconds = (
            settings.settlement_poll_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.max_attempts = settings.settlement_poll_max_attempts if max_attempts is None else max_attempts
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def active_hashes(self) -> List[str]:
        return [tx_hash for tx_hash, task in self._tasks.items() if not task.done()]

    def task_for(self, tx_hash: str) -> Optional[asyncio.Task]:
        return self._tasks.get(tx_hash)

    def start(self, tx_hash: str) -> asyncio.Task:
        """Start polling `tx_hash`; an existing live poller for the hash is reused."""
        existing = self._tasks.get(tx_hash)
        if existing is not None and not existing.done():
            return existing

        task = asyncio.create_task(self._poll(tx_hash), name=f"settlement-poller-{tx_hash[:10]}")
        self._tasks[tx_hash] = task
        task.add_done_callback(lambda t, h=tx_hash: self._forget(h, t))
        return task

    def _forget(self, tx_hash: str, task: asyncio.Task) -> None:
        if self._tasks.get(tx_hash) is task:
            del self._tasks[tx_hash]

    async def cancel(self, tx_hash: str) -> bool:
        task = self._tasks.get(tx_hash)
        if task is None or task.done():
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def cancel_all(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _poll(self, tx_hash: str) -> Optional[HistoryStatus]:
        log = logger.bind(tx_hash=tx_hash)
        log.info("settlement_poll_started", max_attempts=self.max_attempts, interval_s=self.interval_seconds)

        for attempt in range(1, self.max_attempts + 1):
            try:
                status = await self._status_source.get_status(tx_hash)
            except Exception as exc:
                # A failed query still uses up an attempt
                log.warning("settlement_poll_error", attempt=attempt, error=str(exc))
            else:
                terminal = _TERMINAL.get(status.status)
                if terminal is not None:
                    history_status, message = terminal
                    self._history.update_status(tx_hash, history_status)
                    log.info("settlement_poll_terminal", attempt=attempt, status=history_status.value)
                    await self._announce(message)
                    return history_status

            if attempt < self.max_attempts:
                await asyncio.sleep(self.interval_seconds)

        log.info("settlement_poll_exhausted", attempts=self.max_attempts)
        return None


__all__ = ["SettlementPoller", "StatusSource"]
