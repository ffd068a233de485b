from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ..core.voice.orchestrator import ConversationOrchestrator
from ..core.wallet import SessionOptions


router = APIRouter(prefix="/voice")


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Voice orchestrator is not running")
    return orchestrator


class TranscriptRequest(BaseModel):
    text: str = Field(min_length=1, description="Final transcript of one utterance")


class TurnResponse(BaseModel):
    state: str
    spoken: List[str]
    intent: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class CreateSessionRequest(BaseModel):
    duration_minutes: Optional[int] = Field(default=None, ge=1, description="Session lifetime")
    max_per_tx_usd: Optional[Decimal] = Field(default=None, gt=0, description="Per-swap cap in USD")
    max_total_usd: Optional[Decimal] = Field(default=None, gt=0, description="Total spend cap in USD")
    allowed_tokens: Optional[List[str]] = Field(default=None, description="Token allow list")


class ConnectWalletRequest(BaseModel):
    address: str = Field(min_length=1, description="Wallet address that receives swaps")


@router.post("/transcripts", response_model=TurnResponse)
async def post_transcript(
    req: TranscriptRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> TurnResponse:
    outcome = await orchestrator.submit_transcript(req.text)
    return TurnResponse(**outcome.to_dict())


@router.get("/state")
async def get_state(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    return orchestrator.context.to_dict()


@router.post("/reset")
async def post_reset(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    orchestrator.reset()
    return orchestrator.context.to_dict()


@router.post("/wallet")
async def post_wallet(
    req: ConnectWalletRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    await orchestrator.connect_wallet(req.address)
    return orchestrator.context.to_dict()


@router.get("/session")
async def get_session(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    info = await orchestrator.refresh_session_info()
    return info.to_dict()


@router.post("/session")
async def create_session(
    req: CreateSessionRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    options = SessionOptions(
        duration_minutes=req.duration_minutes,
        max_per_tx_usd=req.max_per_tx_usd,
        max_total_usd=req.max_total_usd,
        allowed_tokens=req.allowed_tokens,
    )
    session = await orchestrator.create_session(options)
    if session is None:
        raise HTTPException(
            status_code=400,
            detail=orchestrator.context.last_response or "Failed to create session",
        )
    return {"session": session.to_dict(), "info": orchestrator.session_info.to_dict()}


@router.delete("/session")
async def delete_session(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    revoked = await orchestrator.revoke_session()
    return {"revoked": revoked, "info": orchestrator.session_info.to_dict()}


@router.get("/gas-tank")
async def get_gas_tank(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    gas_tank = orchestrator.gas_tank
    return {
        **gas_tank.get_state().to_dict(),
        "deposit": gas_tank.get_deposit_info().to_dict(),
    }


@router.get("/history")
async def get_history(
    limit: int = Query(default=20, ge=1, le=100, description="Newest entries to return"),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in orchestrator.history.entries()[:limit]]
