"""
Conversation Orchestrator

Turns recognized speech into swaps. Each final transcript is parsed into
an intent and dispatched; swap intents are quoted, then either executed
immediately under an active session delegation or held for a spoken
confirmation. Executions are recorded in history and handed to the
settlement poller.

Transcripts are processed strictly one at a time: every turn goes through
a queue drained by a single consumer task, so network I/O inside one turn
never interleaves with the next.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Set

import structlog

from ...config import settings
from ..errors import ErrorKind, classify_error
from ..gas_tank import GasBudgetTracker, get_gas_budget_tracker
from ..intent import ActionType, IntentParser, SwapIntent
from ..swap.formatting import (
    format_execution_for_speech,
    format_quote_for_speech,
    format_status_for_speech,
)
from ..swap.models import ExecutionResult, ExecutionStatus, Quote, SwapParams
from ..wallet import SessionAuthorizer, SessionInfo, SessionKey, SessionOptions
from .history import SwapHistoryStore
from .models import (
    ConversationContext,
    ConversationState,
    HistoryStatus,
    SwapHistoryEntry,
    TurnOutcome,
)
from .poller import SettlementPoller
from .pricing import UsdPriceEstimator, build_price_estimator
from .responses import Responses, format_duration, format_usd
from .transcription import TranscriptionChannel, TranscriptionResult

logger = structlog.stdlib.get_logger(__name__)


@dataclass
class _TurnRequest:
    text: Optional[str] = None
    intent: Optional[SwapIntent] = None
    error: Optional[Exception] = None
    future: Optional[asyncio.Future] = None


_EXECUTION_HISTORY_STATUS = {
    ExecutionStatus.SUBMITTED: HistoryStatus.PENDING,
    ExecutionStatus.PENDING: HistoryStatus.PENDING,
    ExecutionStatus.CONFIRMED: HistoryStatus.CONFIRMED,
    ExecutionStatus.FAILED: HistoryStatus.FAILED,
}


class ConversationOrchestrator:
    """
    State machine sequencing parser, swap client, session authorizer and
    gas tank for one voice conversation.

    Usage:
        orchestrator = ConversationOrchestrator.from_settings(channel)
        await orchestrator.initialize()
        outcome = await orchestrator.submit_transcript("swap 100 USDC to ETH")
        outcome = await orchestrator.submit_transcript("yes")
        await orchestrator.stop()
    """

    # Expected transitions; anything else is logged as unexpected
    TRANSITIONS: Dict[ConversationState, Set[ConversationState]] = {
        ConversationState.IDLE: {
            ConversationState.IDLE,
            ConversationState.LISTENING,
            ConversationState.PROCESSING,
            ConversationState.ERROR,
        },
        ConversationState.LISTENING: {
            ConversationState.IDLE,
            ConversationState.PROCESSING,
            ConversationState.ERROR,
        },
        ConversationState.PROCESSING: {
            ConversationState.IDLE,
            ConversationState.CONFIRMING,
            ConversationState.EXECUTING,  # Session-delegated swap
            ConversationState.ERROR,
        },
        ConversationState.CONFIRMING: {
            ConversationState.EXECUTING,
            ConversationState.PROCESSING,  # A new swap replaces the pending one
            ConversationState.IDLE,
            ConversationState.ERROR,
        },
        ConversationState.EXECUTING: {
            ConversationState.COMPLETE,
            ConversationState.IDLE,
            ConversationState.ERROR,
        },
        ConversationState.COMPLETE: {
            ConversationState.IDLE,
            ConversationState.LISTENING,
        },
        ConversationState.ERROR: {
            ConversationState.IDLE,
            ConversationState.LISTENING,
        },
    }

    def __init__(
        self,
        channel: TranscriptionChannel,
        intent_parser: IntentParser,
        swap_client,
        session_authorizer: SessionAuthorizer,
        gas_tank: GasBudgetTracker,
        *,
        history: Optional[SwapHistoryStore] = None,
        price_estimator: Optional[UsdPriceEstimator] = None,
        poller: Optional[SettlementPoller] = None,
        wallet_address: Optional[str] = None,
        slippage_tolerance: Optional[float] = None,
        session_refresh_interval_seconds: Optional[float] = None,
    ) -> None:
        self._channel = channel
        self._intent_parser = intent_parser
        self._swap_client = swap_client
        self._authorizer = session_authorizer
        self._gas_tank = gas_tank
        self._history = history or SwapHistoryStore()
        self._price_estimator = price_estimator or build_price_estimator()
        self._poller = poller or SettlementPoller(swap_client, self._history, self._announce)
        self._slippage_tolerance = (
            settings.default_slippage_tolerance if slippage_tolerance is None else slippage_tolerance
        )
        self._refresh_interval = (
            settings.session_refresh_interval_seconds
            if session_refresh_interval_seconds is None
            else session_refresh_interval_seconds
        )

        self._ctx = ConversationContext(wallet_address=wallet_address)
        self._queue: asyncio.Queue[_TurnRequest] = asyncio.Queue()
        self._consumer_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._turn_spoken: Optional[list] = None

    @classmethod
    def from_settings(
        cls,
        channel: TranscriptionChannel,
        *,
        wallet_address: Optional[str] = None,
    ) -> "ConversationOrchestrator":
        from ...providers.swap_backend import SwapClient

        gas_tank = get_gas_budget_tracker()
        return cls(
            channel,
            IntentParser.from_settings(),
            SwapClient(gas_tank=gas_tank),
            SessionAuthorizer(),
            gas_tank,
            wallet_address=wallet_address or settings.wallet_address,
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConversationState:
        return self._ctx.state

    @property
    def context(self) -> ConversationContext:
        return self._ctx

    @property
    def history(self) -> SwapHistoryStore:
        return self._history

    @property
    def poller(self) -> SettlementPoller:
        return self._poller

    @property
    def swap_client(self):
        return self._swap_client

    @property
    def gas_tank(self) -> GasBudgetTracker:
        return self._gas_tank

    @property
    def session_info(self) -> SessionInfo:
        return self._ctx.session_info

    @property
    def is_running(self) -> bool:
        return self._consumer_task is not None and not self._consumer_task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        await self._channel.initialize()
        if self._ctx.wallet_address:
            await self._authorizer.initialize(self._ctx.wallet_address)
        await self.refresh_session_info()
        await self.start()
        await self._speak(Responses.WELCOME, record=False)

    async def start(self) -> None:
        if self.is_running:
            return
        self._consumer_task = asyncio.create_task(self._consume(), name="voice-turn-consumer")
        self._refresh_task = asyncio.create_task(self._refresh_loop(), name="voice-session-refresh")
        logger.info("orchestrator_started", refresh_interval_s=self._refresh_interval)

    async def stop(self) -> None:
        if self._ctx.is_listening:
            await self.stop_listening()

        for task in (self._consumer_task, self._refresh_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._consumer_task = None
        self._refresh_task = None

        while not self._queue.empty():
            request = self._queue.get_nowait()
            if request.future is not None and not request.future.done():
                request.future.cancel()
            self._queue.task_done()

        await self._poller.cancel_all()
        logger.info("orchestrator_stopped")

    async def connect_wallet(self, wallet_address: str) -> None:
        self._ctx.wallet_address = wallet_address
        await self._authorizer.initialize(wallet_address)
        await self.refresh_session_info()

    async def refresh_session_info(self) -> SessionInfo:
        self._ctx.session_info = self._authorizer.get_session_info()
        return self._ctx.session_info

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self._refresh_interval)
            try:
                await self.refresh_session_info()
            except Exception as exc:
                logger.warning("session_refresh_failed", error=str(exc))

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    async def start_listening(self) -> None:
        if self._ctx.state == ConversationState.LISTENING or self._ctx.is_listening:
            return

        await self.start()
        self._ctx.is_listening = True
        if self._ctx.state in (ConversationState.IDLE, ConversationState.COMPLETE, ConversationState.ERROR):
            self._transition(ConversationState.LISTENING)
        await self._speak(Responses.LISTENING, interrupt=True, record=False)
        await self._channel.start_listening(self._on_transcription_result, self._on_transcription_error)

    async def stop_listening(self) -> None:
        await self._channel.stop_listening()
        self._ctx.is_listening = False
        if self._ctx.state == ConversationState.LISTENING:
            self._transition(ConversationState.IDLE)

    async def _on_transcription_result(self, result: TranscriptionResult) -> None:
        if not result.is_final:
            return
        await self.start()
        self._queue.put_nowait(_TurnRequest(text=result.transcript))

    async def _on_transcription_error(self, error: Exception) -> None:
        await self.start()
        self._queue.put_nowait(_TurnRequest(error=error))

    async def drain(self) -> None:
        """Wait until every queued turn has been processed."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    async def submit_transcript(self, text: str) -> TurnOutcome:
        """Queue a final transcript and wait until its turn has been handled."""
        return await self._submit(_TurnRequest(text=text))

    async def submit_intent(self, intent: SwapIntent) -> TurnOutcome:
        """Queue an already parsed intent."""
        return await self._submit(_TurnRequest(intent=intent))

    async def _submit(self, request: _TurnRequest) -> TurnOutcome:
        await self.start()
        request.future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(request)
        return await request.future

    async def _consume(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                outcome = await self._run_turn(request)
            except asyncio.CancelledError:
                if request.future is not None and not request.future.done():
                    request.future.cancel()
                raise
            except Exception as exc:
                logger.exception("turn_crashed", error=str(exc))
                if request.future is not None and not request.future.done():
                    request.future.set_exception(exc)
            else:
                if request.future is not None and not request.future.done():
                    request.future.set_result(outcome)
            finally:
                self._queue.task_done()

    async def _run_turn(self, request: _TurnRequest) -> TurnOutcome:
        spoken: list = []
        self._turn_spoken = spoken
        intent: Optional[SwapIntent] = None

        with structlog.contextvars.bound_contextvars(turn_id=uuid.uuid4().hex[:8]):
            try:
                if self._ctx.state in (ConversationState.COMPLETE, ConversationState.ERROR):
                    self._ctx.last_error = None
                    self._transition(ConversationState.IDLE)

                if request.error is not None:
                    await self._handle_error(request.error)
                else:
                    intent = request.intent
                    if intent is None:
                        intent = await self._parse(request.text or "")
                    if intent is not None:
                        await self.process_intent(intent)
            finally:
                self._turn_spoken = None

        return TurnOutcome(
            state=self._ctx.state,
            spoken=spoken,
            intent=intent,
            error=self._ctx.last_error if self._ctx.state == ConversationState.ERROR else None,
        )

    async def _parse(self, text: str) -> Optional[SwapIntent]:
        try:
            intent = await self._intent_parser.parse_voice_command_async(text)
        except Exception as exc:
            await self._handle_error(exc)
            return None

        logger.info(
            "intent_parsed",
            action=intent.action.value,
            parsed_by=intent.parsed_by.value if intent.parsed_by else None,
            confidence=intent.confidence,
        )
        return intent

    async def process_intent(self, intent: SwapIntent) -> None:
        """Dispatch one intent. Failures go to the central error handler."""
        self._ctx.current_intent = intent
        action = intent.action

        try:
            if action == ActionType.SWAP:
                await self._handle_swap(intent)
            elif action == ActionType.QUOTE:
                await self._handle_quote(intent)
            elif action == ActionType.CONFIRM:
                await self._handle_confirm()
            elif action == ActionType.CANCEL:
                await self._handle_cancel()
            elif action == ActionType.STATUS:
                await self._handle_status()
            elif action == ActionType.BALANCE:
                await self._speak("Balance checking is not yet implemented. Please check your wallet app.")
                self._transition(ConversationState.IDLE)
            elif action == ActionType.HELP:
                await self._speak(Responses.HELP)
                self._transition(ConversationState.IDLE)
            elif action == ActionType.ENABLE_SESSION:
                await self._handle_enable_session()
            elif action == ActionType.DISABLE_SESSION:
                await self._handle_disable_session()
            elif action == ActionType.SESSION_STATUS:
                await self._handle_session_status()
            elif action == ActionType.GAS_TANK_STATUS:
                await self._speak(self._gas_tank.format_balance_for_speech())
                self._transition(ConversationState.IDLE)
            elif action == ActionType.GAS_TANK_REFILL:
                await self._speak(self._gas_tank.format_deposit_instructions_for_speech())
                self._transition(ConversationState.IDLE)
            else:
                await self._speak(Responses.NOT_UNDERSTOOD)
                self._transition(ConversationState.IDLE)
        except Exception as exc:
            await self._handle_error(exc)

    # ------------------------------------------------------------------
    # Swap path
    # ------------------------------------------------------------------

    async def _report_missing(self, intent: SwapIntent) -> bool:
        validation = self._intent_parser.validate_intent(intent)
        if validation.valid:
            return False
        await self._speak(f"I need more information. Please specify: {', '.join(validation.missing)}.")
        self._transition(ConversationState.IDLE)
        return True

    async def _handle_swap(self, intent: SwapIntent) -> None:
        if await self._report_missing(intent):
            return

        self._transition(ConversationState.PROCESSING)
        await self._speak(Responses.GETTING_QUOTE)

        quote = await self._swap_client.get_quote(intent.token_in, intent.token_out, intent.amount_in)
        self._ctx.current_quote = quote
        quote_text = format_quote_for_speech(quote)

        if self._authorizer.has_valid_session():
            estimated_usd = await self._estimate_usd(intent)
            if estimated_usd is not None:
                check = self._authorizer.can_execute(estimated_usd, "swap")
                if check.allowed:
                    await self._speak(f"Quick swap: {quote_text.rstrip('.')}. Executing now.")
                    await self._execute_delegated(intent, quote, estimated_usd)
                    return
                logger.info("session_refused_swap", reason=check.reason, estimated_usd=str(estimated_usd))
                await self._speak(f"{check.reason} Would you like to confirm this swap manually?")

        await self._speak(Responses.confirm_swap(quote_text))
        self._transition(ConversationState.CONFIRMING)
        self._ctx.pending_swap = intent

    async def _estimate_usd(self, intent: SwapIntent) -> Optional[Decimal]:
        try:
            return await self._price_estimator.estimate_usd(intent.token_in, intent.amount_in)
        except Exception as exc:
            logger.warning("usd_estimate_failed", token_in=intent.token_in, amount_in=intent.amount_in, error=str(exc))
            return None

    async def _execute_delegated(self, intent: SwapIntent, quote: Quote, estimated_usd: Decimal) -> None:
        wallet_address = self._ctx.wallet_address
        if not wallet_address:
            await self._speak("Wallet not connected.")
            self._transition(ConversationState.IDLE)
            return

        self._transition(ConversationState.EXECUTING)

        route = await self._swap_client.get_route(
            intent.token_in,
            intent.token_out,
            intent.amount_in,
            wallet_address,
            self._slippage_tolerance,
        )
        signed = await self._authorizer.sign_user_operation(route.calldata or "0x", estimated_usd)

        params = SwapParams(
            token_in=intent.token_in,
            token_out=intent.token_out,
            amount_in=intent.amount_in,
            recipient=wallet_address,
            slippage_tolerance=self._slippage_tolerance,
            session_signature=signed.signature,
        )
        await self._execute(intent, quote, params)

    async def _handle_confirm(self) -> None:
        pending = self._ctx.pending_swap
        if pending is None or self._ctx.state != ConversationState.CONFIRMING:
            await self._speak("There's nothing to confirm.")
            self._transition(ConversationState.IDLE)
            return

        wallet_address = self._ctx.wallet_address
        if not wallet_address:
            await self._speak("Please connect your wallet first.")
            self._transition(ConversationState.IDLE)
            return

        self._transition(ConversationState.EXECUTING)
        await self._speak(Responses.SWAP_EXECUTING)

        params = SwapParams(
            token_in=pending.token_in,
            token_out=pending.token_out,
            amount_in=pending.amount_in,
            recipient=wallet_address,
            slippage_tolerance=self._slippage_tolerance,
        )
        await self._execute(pending, self._ctx.current_quote, params)

    async def _execute(self, intent: SwapIntent, quote: Optional[Quote], params: SwapParams) -> ExecutionResult:
        """Shared by the wallet-signed and session-delegated paths."""
        result = await self._swap_client.execute_swap(params)

        if params.is_delegated:
            await self.refresh_session_info()

        self._history.add(
            SwapHistoryEntry(
                intent=intent,
                quote=quote,
                tx_hash=result.tx_hash,
                status=_EXECUTION_HISTORY_STATUS.get(result.status, HistoryStatus.FAILED),
            )
        )

        await self._speak(
            format_execution_for_speech(
                result,
                quote.token_out.amount if quote else None,
                quote.token_out.symbol if quote else None,
            )
        )

        self._transition(ConversationState.COMPLETE)

        if result.tx_hash:
            self._poller.start(result.tx_hash)

        logger.info(
            "swap_executed",
            delegated=params.is_delegated,
            status=result.status.value,
            tx_hash=result.tx_hash,
        )
        return result

    async def _handle_quote(self, intent: SwapIntent) -> None:
        if await self._report_missing(intent):
            return

        self._transition(ConversationState.PROCESSING)
        quote = await self._swap_client.get_quote(intent.token_in, intent.token_out, intent.amount_in)
        self._ctx.current_quote = quote
        await self._speak(format_quote_for_speech(quote))
        self._transition(ConversationState.IDLE)

    async def _handle_cancel(self) -> None:
        self._ctx.pending_swap = None
        await self._speak(Responses.SWAP_CANCELLED)
        self.reset()

    async def _handle_status(self) -> None:
        self._transition(ConversationState.PROCESSING)
        try:
            status = await self._swap_client.get_status(self._history.last_tx_hash)
        except Exception as exc:
            logger.info("status_unavailable", error=str(exc))
            await self._speak("I don't have a recent transaction to check.")
        else:
            await self._speak(format_status_for_speech(status))
        self._transition(ConversationState.IDLE)

    # ------------------------------------------------------------------
    # Session administration
    # ------------------------------------------------------------------

    async def _handle_enable_session(self) -> None:
        if self._authorizer.has_valid_session():
            info = await self.refresh_session_info()
            await self._speak(
                f"Quick swap is already enabled. You have ${format_usd(info.remaining.total)} remaining. "
                f"Session expires in {info.expires_in}."
            )
            self._transition(ConversationState.IDLE)
            return

        if not self._ctx.wallet_address:
            await self._speak("Please connect your wallet first to create a session.")
            self._transition(ConversationState.IDLE)
            return

        await self._speak(
            f"Enabling quick swap mode. This will allow swaps up to ${format_usd(settings.session_max_per_tx_usd)} each, "
            f"${format_usd(settings.session_max_total_usd)} total, without confirming each one. Please authenticate."
        )
        await self.create_session()
        self._transition(ConversationState.IDLE)

    async def create_session(self, options: Optional[SessionOptions] = None) -> Optional[SessionKey]:
        """Create a delegation; the authorizer awaits the user's authentication first."""
        wallet_address = self._ctx.wallet_address
        if not wallet_address:
            await self._speak("Please connect your wallet first to create a session.")
            return None

        try:
            if self._authorizer.wallet_address != wallet_address:
                await self._authorizer.initialize(wallet_address)
            session = await self._authorizer.create_session(options)
        except Exception as exc:
            logger.warning("session_creation_failed", error=str(exc))
            await self._speak("Failed to create session. Please try again.")
            return None

        await self.refresh_session_info()
        duration_minutes = int((session.expires_at - session.created_at).total_seconds() // 60)
        await self._speak(
            f"Session created. You can now swap up to ${format_usd(session.value_limits.max_total_value_usd)} "
            f"without signing each transaction. Session expires in {format_duration(duration_minutes)}."
        )
        return session

    async def revoke_session(self) -> bool:
        revoked = self._authorizer.revoke_session()
        await self.refresh_session_info()
        if revoked:
            await self._speak("Session revoked. You'll need to confirm each swap individually.")
        else:
            await self._speak("Quick swap mode is not active.")
        return revoked

    async def _handle_disable_session(self) -> None:
        if not self._authorizer.has_valid_session():
            await self._speak("Quick swap mode is not active.")
        else:
            await self.revoke_session()
        self._transition(ConversationState.IDLE)

    async def _handle_session_status(self) -> None:
        info = await self.refresh_session_info()
        if not info.active:
            await self._speak("Quick swap mode is not active. Say 'enable quick swap' to turn it on.")
        else:
            await self._speak(
                f"Quick swap is active. You have ${format_usd(info.remaining.total)} remaining out of your session limit. "
                f"Maximum ${format_usd(info.remaining.per_tx)} per swap. Session expires in {info.expires_in}."
            )
        self._transition(ConversationState.IDLE)

    # ------------------------------------------------------------------
    # Errors, state and speech
    # ------------------------------------------------------------------

    async def _handle_error(self, error: Exception) -> None:
        """Single place where failures become speech; always ends in ERROR."""
        kind = classify_error(error)
        logger.warning("turn_failed", kind=kind.value, error=str(error), error_type=type(error).__name__)

        if kind == ErrorKind.INSUFFICIENT_GAS_TANK:
            swaps_remaining = self._gas_tank.get_swaps_remaining()
            if swaps_remaining == 0:
                message = (
                    "Your Gas Tank is empty and cannot process this request. "
                    "Say 'refill gas tank' for deposit instructions."
                )
            else:
                message = (
                    f"Your Gas Tank is low. You have {swaps_remaining} swaps remaining. "
                    "Say 'refill gas tank' to add more funds."
                )
            self._ctx.last_error = message
            await self._speak(message)
        elif kind == ErrorKind.PAYMENT_REQUIRED:
            self._ctx.last_error = Responses.PAYMENT_REQUIRED
            await self._speak(Responses.PAYMENT_REQUIRED)
            await self._speak("Tip: Deposit USDC to your Gas Tank for faster, cheaper payments.")
        else:
            message = getattr(error, "message", None) or str(error)
            if message:
                self._ctx.last_error = message
                await self._speak(f"Error: {message}")
            else:
                self._ctx.last_error = Responses.NETWORK_ERROR
                await self._speak(Responses.NETWORK_ERROR)

        self._ctx.pending_swap = None
        self._transition(ConversationState.ERROR)

    def reset(self) -> None:
        """Clear orchestrator-local state. In-flight requests and pollers are left alone."""
        self._ctx.clear_turn_state()
        self._transition(ConversationState.IDLE)

    def _transition(self, new_state: ConversationState) -> None:
        old_state = self._ctx.state
        if new_state not in self.TRANSITIONS.get(old_state, set()) and new_state != ConversationState.IDLE:
            logger.warning("unexpected_transition", from_state=old_state.value, to_state=new_state.value)

        self._ctx.state = new_state
        if new_state not in (ConversationState.CONFIRMING, ConversationState.EXECUTING):
            self._ctx.pending_swap = None

        if old_state != new_state:
            logger.debug("state_transition", from_state=old_state.value, to_state=new_state.value)

    async def _speak(self, text: str, interrupt: bool = False, record: bool = True) -> None:
        self._ctx.last_response = text
        if record and self._turn_spoken is not None:
            self._turn_spoken.append(text)
        try:
            await self._channel.speak(text, interrupt)
        except Exception as exc:
            logger.warning("speech_failed", error=str(exc), text=text)

    async def _announce(self, text: str) -> None:
        await self._speak(text, record=False)


__all__ = ["ConversationOrchestrator"]
