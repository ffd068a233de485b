"""
Gas Tank models.

The Gas Tank is a prepaid USDC balance that pays for x402-gated backend
calls so the user does not settle every request on-chain.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional


# x402 pricing for each paid backend endpoint (USD)
X402_PRICING: Dict[str, Decimal] = {
    "/quote": Decimal("0.001"),
    "/route": Decimal("0.005"),
    "/execute": Decimal("0.02"),
    "/status": Decimal("0.001"),
}

# Total cost for a full quote -> route -> execute -> status flow (~$0.027)
SWAP_TOTAL_COST: Decimal = sum(X402_PRICING.values(), Decimal("0"))


@dataclass
class GasBudgetState:
    """Snapshot of the Gas Tank."""
    balance: Decimal
    total_deposited: Decimal
    total_spent: Decimal
    deposit_address: str
    last_deposit: Optional[float] = None  # epoch ms
    last_usage: Optional[float] = None  # epoch ms
    swaps_remaining: int = 0
    is_low: bool = False

    def to_dict(self) -> Dict:
        return {
            "balance": str(self.balance),
            "total_deposited": str(self.total_deposited),
            "total_spent": str(self.total_spent),
            "deposit_address": self.deposit_address,
            "last_deposit": self.last_deposit,
            "last_usage": self.last_usage,
            "swaps_remaining": self.swaps_remaining,
            "is_low": self.is_low,
        }


@dataclass(frozen=True)
class DepositInfo:
    address: str
    network: str
    token: str
    minimum_deposit: Decimal
    suggested_deposit: Decimal

    def to_dict(self) -> Dict:
        return {
            "address": self.address,
            "network": self.network,
            "token": self.token,
            "minimum_deposit": str(self.minimum_deposit),
            "suggested_deposit": str(self.suggested_deposit),
        }


@dataclass(frozen=True)
class PaymentAuthorization:
    """Result of generating a prepaid payment header for one request."""
    success: bool
    payment_header: Optional[str] = None
    error: Optional[str] = None
