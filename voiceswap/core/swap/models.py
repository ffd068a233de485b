"""Wire models for the x402 swap executor backend."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    NOT_FOUND = "not_found"


class TokenInfo(BaseModel):
    """One side of a quote."""

    address: str = Field("", description="Token contract address")
    symbol: str = Field(..., description="Token symbol")
    decimals: int = Field(18, description="Token decimals")
    amount: str = Field(..., description="Human-readable amount")
    amount_raw: str = Field("", alias="amountRaw", description="Amount in base units")

    class Config:
        populate_by_name = True
        frozen = True


class Quote(BaseModel):
    """Price quote for a swap. Never mutated once received."""

    token_in: TokenInfo = Field(..., alias="tokenIn")
    token_out: TokenInfo = Field(..., alias="tokenOut")
    price_impact: str = Field("0", alias="priceImpact", description="Price impact in percent")
    route: List[str] = Field(default_factory=list, description="Pool path")
    estimated_gas: str = Field("0", alias="estimatedGas")
    timestamp: int = Field(0, description="Quote time, epoch ms")

    class Config:
        populate_by_name = True
        frozen = True


class Route(Quote):
    """Quote plus executable calldata."""

    calldata: Optional[str] = None
    value: Optional[str] = None
    to: Optional[str] = None
    slippage_tolerance: float = Field(0.5, alias="slippageTolerance")
    deadline: int = 0


class SwapParams(BaseModel):
    token_in: str = Field(..., alias="tokenIn")
    token_out: str = Field(..., alias="tokenOut")
    amount_in: str = Field(..., alias="amountIn")
    recipient: str
    slippage_tolerance: Optional[float] = Field(None, alias="slippageTolerance")
    # Present only for session-delegated execution
    session_signature: Optional[str] = Field(None, alias="sessionSignature")

    class Config:
        populate_by_name = True

    @property
    def is_delegated(self) -> bool:
        return self.session_signature is not None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ExecutionResult(BaseModel):
    status: ExecutionStatus
    tx_hash: Optional[str] = Field(None, alias="txHash")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class StatusResponse(BaseModel):
    status: TransactionStatus
    tx_hash: str = Field("", alias="txHash")
    block_number: Optional[int] = Field(None, alias="blockNumber")
    confirmations: Optional[int] = None
    gas_used: Optional[str] = Field(None, alias="gasUsed")
    effective_gas_price: Optional[str] = Field(None, alias="effectiveGasPrice")

    class Config:
        populate_by_name = True


class BackendToken(BaseModel):
    address: str
    symbol: str
    decimals: int


class ApiEnvelope(BaseModel):
    """`{success, data?, error?, code?}` wrapper used by every backend response."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    code: Optional[str] = None
