"""Prepaid Gas Tank for x402-gated backend calls."""

from .models import (
    DepositInfo,
    GasBudgetState,
    PaymentAuthorization,
    SWAP_TOTAL_COST,
    X402_PRICING,
)
from .tracker import GasBudgetTracker, get_gas_budget_tracker

__all__ = [
    "DepositInfo",
    "GasBudgetState",
    "PaymentAuthorization",
    "SWAP_TOTAL_COST",
    "X402_PRICING",
    "GasBudgetTracker",
    "get_gas_budget_tracker",
]
