"""
Transcription channel contract.

Speech recognition and synthesis live outside the orchestrator. A channel
delivers recognized transcripts to a callback and reads text aloud; only
results flagged `is_final` are acted on.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptionResult:
    transcript: str
    is_final: bool = True
    confidence: Optional[float] = None


ResultCallback = Callable[[TranscriptionResult], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


class TranscriptionChannel(ABC):
    """Speech in, speech out."""

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        pass

    @abstractmethod
    async def stop_listening(self) -> None:
        pass

    @abstractmethod
    async def speak(self, text: str, interrupt: bool = False) -> None:
        pass


class InMemoryTranscriptionChannel(TranscriptionChannel):
    """
    Channel driven by text instead of a microphone.

    Used by the CLI and tests: `simulate_voice_input` plays the role of the
    recognizer and every spoken line is recorded (and optionally echoed).
    """

    def __init__(self, echo: Optional[Callable[[str], None]] = None) -> None:
        self._echo = echo
        self._on_result: Optional[ResultCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self.spoken: List[str] = []
        self.initialized = False

    @property
    def is_listening(self) -> bool:
        return self._on_result is not None

    async def initialize(self) -> None:
        self.initialized = True

    async def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        self._on_result = on_result
        self._on_error = on_error

    async def stop_listening(self) -> None:
        self._on_result = None
        self._on_error = None

    async def speak(self, text: str, interrupt: bool = False) -> None:
        self.spoken.append(text)
        if self._echo is not None:
            self._echo(text)

    async def simulate_voice_input(self, text: str, is_final: bool = True) -> bool:
        """Deliver a transcript as if it had been recognized. Returns False when not listening."""
        if self._on_result is None:
            logger.debug("Dropping simulated input while not listening")
            return False
        await self._on_result(TranscriptionResult(transcript=text, is_final=is_final))
        return True

    async def simulate_error(self, error: Exception) -> None:
        if self._on_error is not None:
            await self._on_error(error)


__all__ = [
    "TranscriptionResult",
    "TranscriptionChannel",
    "InMemoryTranscriptionChannel",
    "ResultCallback",
    "ErrorCallback",
]
