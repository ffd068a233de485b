"""
Gas Budget Tracker.

Manages the prepaid x402 balance:
1. The user deposits USDC to the Gas Tank (one on-chain transaction).
2. Each paid backend call deducts its price from the balance.
3. When the balance is low the user is prompted to refill.

State is held in memory; deposits are credited by the caller once an
on-chain transfer has been observed.
"""

from __future__ import annotations

import base64
import json
import logging
import secrets
import time
from decimal import Decimal, ROUND_DOWN
from typing import Optional

from ...config import settings
from .models import (
    DepositInfo,
    GasBudgetState,
    PaymentAuthorization,
    SWAP_TOTAL_COST,
    X402_PRICING,
)

logger = logging.getLogger(__name__)


def _format_usd(value: Decimal) -> str:
    """Render a configured dollar amount without trailing zeros ($0.5, $5)."""
    normalized = value.normalize()
    return format(normalized, "f")


class GasBudgetTracker:
    """
    Prepaid execution-fee balance.

    Usage:
        tracker = get_gas_budget_tracker()
        if tracker.can_afford("/quote"):
            payment = tracker.generate_payment("/quote")
    """

    def __init__(
        self,
        *,
        initial_balance: Optional[Decimal] = None,
        deposit_address: Optional[str] = None,
        deposit_network: Optional[str] = None,
        min_balance_warning: Optional[Decimal] = None,
        min_deposit: Optional[Decimal] = None,
        suggested_deposit: Optional[Decimal] = None,
    ) -> None:
        balance = settings.gas_tank_initial_balance_usd if initial_balance is None else initial_balance
        self._balance = Decimal(str(balance))
        self._total_deposited = Decimal(str(balance))
        self._total_spent = Decimal("0")
        self._last_deposit: Optional[float] = None
        self._last_usage: Optional[float] = None

        self._deposit_address = deposit_address or settings.gas_tank_deposit_address
        self._deposit_network = deposit_network or settings.gas_tank_deposit_network
        self._min_balance_warning = Decimal(str(
            settings.gas_tank_min_balance_warning_usd if min_balance_warning is None else min_balance_warning
        ))
        self._min_deposit = Decimal(str(
            settings.gas_tank_min_deposit_usd if min_deposit is None else min_deposit
        ))
        self._suggested_deposit = Decimal(str(
            settings.gas_tank_suggested_deposit_usd if suggested_deposit is None else suggested_deposit
        ))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_state(self) -> GasBudgetState:
        return GasBudgetState(
            balance=self._balance,
            total_deposited=self._total_deposited,
            total_spent=self._total_spent,
            deposit_address=self._deposit_address,
            last_deposit=self._last_deposit,
            last_usage=self._last_usage,
            swaps_remaining=self.get_swaps_remaining(),
            is_low=self.is_balance_low(),
        )

    def get_balance(self) -> Decimal:
        return self._balance

    def price_for(self, endpoint: str) -> Decimal:
        if endpoint not in X402_PRICING:
            raise ValueError(f"Unknown paid endpoint: {endpoint}")
        return X402_PRICING[endpoint]

    def can_afford(self, endpoint: str) -> bool:
        return self._balance >= self.price_for(endpoint)

    def can_afford_swap(self) -> bool:
        return self._balance >= SWAP_TOTAL_COST

    def get_swaps_remaining(self) -> int:
        if self._balance <= 0:
            return 0
        return int((self._balance / SWAP_TOTAL_COST).to_integral_value(rounding=ROUND_DOWN))

    def is_balance_low(self) -> bool:
        return self._balance < self._min_balance_warning

    def get_deposit_info(self) -> DepositInfo:
        return DepositInfo(
            address=self._deposit_address,
            network=self._deposit_network,
            token="USDC",
            minimum_deposit=self._min_deposit,
            suggested_deposit=self._suggested_deposit,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def deduct(self, endpoint: str) -> bool:
        """Deduct the price of one call. Returns False on insufficient funds."""
        cost = self.price_for(endpoint)

        if self._balance < cost:
            logger.info(
                f"Insufficient Gas Tank funds for {endpoint}. Need ${cost}, have ${self._balance:.4f}"
            )
            return False

        self._balance -= cost
        self._total_spent += cost
        self._last_usage = time.time() * 1000

        logger.debug(f"Deducted ${cost} for {endpoint}. New balance: ${self._balance:.4f}")
        return True

    def deposit(self, amount_usd: Decimal) -> None:
        """Credit funds after an on-chain deposit has been confirmed."""
        amount = Decimal(str(amount_usd))
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")

        self._balance += amount
        self._total_deposited += amount
        self._last_deposit = time.time() * 1000

        logger.info(f"Gas Tank deposit of ${amount}. New balance: ${self._balance:.4f}")

    def generate_payment(self, endpoint: str) -> PaymentAuthorization:
        """Deduct the endpoint price and build a `GasTank <base64 JSON>` payment header."""
        cost = self.price_for(endpoint)

        if self._balance < cost:
            return PaymentAuthorization(
                success=False,
                error=f"Insufficient Gas Tank balance. Need ${cost}, have ${self._balance:.4f}",
            )

        if not self.deduct(endpoint):
            return PaymentAuthorization(success=False, error="Failed to deduct from Gas Tank")

        payment_data = {
            "from": self._deposit_address,
            "amount": float(cost),
            "timestamp": int(time.time() * 1000),
            "endpoint": endpoint,
            "nonce": secrets.token_hex(4),
        }
        encoded = base64.b64encode(json.dumps(payment_data).encode("utf-8")).decode("ascii")

        return PaymentAuthorization(success=True, payment_header=f"GasTank {encoded}")

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def format_balance_for_speech(self) -> str:
        balance = self._balance
        swaps_remaining = self.get_swaps_remaining()

        if balance <= 0:
            return "Your Gas Tank is empty. Please deposit USDC to continue using VoiceSwap."

        if self.is_balance_low():
            return (
                f"Your Gas Tank is low. You have ${balance:.2f}, enough for about "
                f"{swaps_remaining} more swaps. Consider adding funds."
            )

        return f"Your Gas Tank has ${balance:.2f}, enough for approximately {swaps_remaining} swaps."

    def format_deposit_instructions_for_speech(self) -> str:
        info = self.get_deposit_info()
        suggested_swaps = int((info.suggested_deposit / SWAP_TOTAL_COST).to_integral_value(rounding=ROUND_DOWN))
        return (
            f"To add funds to your Gas Tank, send USDC on {info.network} to your deposit address. "
            f"Minimum deposit is ${_format_usd(info.minimum_deposit)}. "
            f"I recommend depositing ${_format_usd(info.suggested_deposit)} for about {suggested_swaps} swaps."
        )


_gas_budget_tracker: Optional[GasBudgetTracker] = None


def get_gas_budget_tracker() -> GasBudgetTracker:
    """Get the singleton Gas Tank tracker."""
    global _gas_budget_tracker
    if _gas_budget_tracker is None:
        _gas_budget_tracker = GasBudgetTracker()
    return _gas_budget_tracker


__all__ = ["GasBudgetTracker", "get_gas_budget_tracker"]
