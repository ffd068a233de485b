"""Async client for the x402 swap executor backend.

Paid endpoints are settled from the prepaid Gas Tank: every paid request
carries a `GasTank <base64>` X-Payment header. If the backend still answers
402 the request is retried once without the prepaid header, and a second
402 surfaces as PaymentRequiredError with the advertised payment terms.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..core.errors import (
    InsufficientGasTankError,
    NoTransactionError,
    PaymentInfo,
    PaymentRequiredError,
    SwapClientError,
)
from ..core.gas_tank import X402_PRICING, GasBudgetTracker, get_gas_budget_tracker
from ..core.swap.models import (
    ApiEnvelope,
    BackendToken,
    ExecutionResult,
    Quote,
    Route,
    StatusResponse,
    SwapParams,
)
from .base import Provider

logger = logging.getLogger(__name__)

IDEMPOTENCY_WINDOW_S = 5 * 60


def _paid_endpoint(path: str) -> Optional[str]:
    for endpoint in X402_PRICING:
        if path.startswith(endpoint):
            return endpoint
    return None


def _request_id() -> str:
    return f"req-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _idempotency_key() -> str:
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(4)}"


class SwapClient(Provider):
    """Quotes, routes, executions and status from the swap backend. No implicit retries."""

    name = "swap_backend"

    def __init__(
        self,
        base_url: Optional[str] = None,
        gas_tank: Optional[GasBudgetTracker] = None,
        *,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = (base_url or settings.swap_backend_url).rstrip("/")
        self.gas_tank = gas_tank or get_gas_budget_tracker()
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport
        self._clock = clock
        self._last_tx_hash: Optional[str] = None

    @property
    def last_tx_hash(self) -> Optional[str]:
        return self._last_tx_hash

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s, transport=self._transport)

    async def _send(
        self,
        method: str,
        path: str,
        headers: Dict[str, str],
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.RequestError as exc:
            logger.warning(f"Swap backend request {method} {path} failed: {exc}")
            raise SwapClientError(f"Could not reach swap backend: {exc}") from exc

    async def _x402_request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> httpx.Response:
        endpoint = _paid_endpoint(path)
        idem_key = idempotency_key or (_idempotency_key() if endpoint else None)
        base_headers = {"Content-Type": "application/json", "X-Request-Id": _request_id()}
        if idem_key:
            base_headers["X-Idempotency-Key"] = idem_key

        if endpoint:
            payment = self.gas_tank.generate_payment(endpoint)
            if not payment.success or not payment.payment_header:
                logger.info(f"Gas Tank cannot cover {endpoint}: {payment.error}")
                raise InsufficientGasTankError(X402_PRICING[endpoint], self.gas_tank.get_balance())

            response = await self._send(
                method,
                path,
                {**base_headers, "X-Payment": payment.payment_header},
                params=params,
                json=json,
            )
            if response.status_code != 402:
                return response

            logger.info(f"Gas Tank payment not accepted for {endpoint}, retrying without prepaid header")

        response = await self._send(method, path, base_headers, params=params, json=json)

        if response.status_code == 402:
            raise PaymentRequiredError(
                payment_info=PaymentInfo(
                    address=response.headers.get("X-Payment-Address"),
                    amount=response.headers.get("X-Payment-Amount"),
                    network=response.headers.get("X-Payment-Network"),
                )
            )

        return response

    def _unwrap(self, response: httpx.Response, default_error: str) -> Any:
        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SwapClientError(
                f"{default_error}: unexpected response (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from exc

        if not envelope.success or envelope.data is None:
            raise SwapClientError(
                envelope.error or default_error,
                code=envelope.code,
                status_code=response.status_code,
            )
        return envelope.data

    def swap_idempotency_key(self, params: SwapParams) -> str:
        """Deterministic key per swap within a five minute window, so a retried swap is not charged twice."""
        window = int(self._clock() // IDEMPOTENCY_WINDOW_S)
        fingerprint = f"{params.token_in}-{params.token_out}-{params.amount_in}-{params.recipient}"
        digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:12]
        return f"swap-{window}-{digest}"

    async def get_quote(self, token_in: str, token_out: str, amount_in: str) -> Quote:
        """Cost: $0.001"""
        response = await self._x402_request(
            "GET",
            "/quote",
            params={"tokenIn": token_in, "tokenOut": token_out, "amountIn": amount_in},
        )
        return Quote.model_validate(self._unwrap(response, "Failed to get quote"))

    async def get_route(
        self,
        token_in: str,
        token_out: str,
        amount_in: str,
        recipient: str,
        slippage_tolerance: Optional[float] = None,
    ) -> Route:
        """Cost: $0.005"""
        params = SwapParams(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            recipient=recipient,
            slippage_tolerance=slippage_tolerance,
        )
        response = await self._x402_request("POST", "/route", json=params.to_payload())
        return Route.model_validate(self._unwrap(response, "Failed to calculate route"))

    async def execute_swap(self, params: SwapParams, idempotency_key: Optional[str] = None) -> ExecutionResult:
        """Cost: $0.02"""
        payload = params.to_payload()
        payload.setdefault("slippageTolerance", settings.default_slippage_tolerance)

        response = await self._x402_request(
            "POST",
            "/execute",
            json=payload,
            idempotency_key=idempotency_key or self.swap_idempotency_key(params),
        )
        result = ExecutionResult.model_validate(self._unwrap(response, "Failed to execute swap"))

        if result.tx_hash:
            self._last_tx_hash = result.tx_hash

        logger.info(
            f"Executed swap {params.amount_in} {params.token_in} -> {params.token_out} "
            f"({'session' if params.is_delegated else 'wallet'}-signed): {result.status.value} {result.tx_hash or ''}"
        )
        return result

    async def get_status(self, tx_hash: Optional[str] = None) -> StatusResponse:
        """Cost: $0.001. Without a hash, the most recent execution is queried."""
        resolved = tx_hash or self._last_tx_hash
        if not resolved:
            raise NoTransactionError()

        response = await self._x402_request("GET", f"/status/{resolved}")
        return StatusResponse.model_validate(self._unwrap(response, "Failed to get status"))

    async def get_tokens(self) -> Dict[str, BackendToken]:
        """Supported tokens (free)."""
        response = await self._send("GET", "/tokens", {"X-Request-Id": _request_id()})
        data = self._unwrap(response, "Failed to get tokens")
        return {symbol: BackendToken.model_validate(token) for symbol, token in data.items()}

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        """Backend health (free)."""
        try:
            response = await self._send("GET", "/health", {"X-Request-Id": _request_id()})
            response.raise_for_status()
            body = response.json()
            return {
                "status": "healthy",
                "backend_status": body.get("status"),
                "network": body.get("network"),
                "version": body.get("version"),
                "latency_ms": int(response.elapsed.total_seconds() * 1000),
            }
        except Exception as e:
            return {"status": "error", "reason": str(e)}


__all__ = ["SwapClient", "IDEMPOTENCY_WINDOW_S"]
