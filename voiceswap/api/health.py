from fastapi import APIRouter, Request
from typing import Dict, Any

from ..config import settings
from ..providers.coingecko import CoingeckoProvider

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint that verifies provider status"""

    orchestrator = getattr(request.app.state, "orchestrator", None)

    provider_status = {}

    # The swap backend is required; price data is optional
    if orchestrator is not None:
        provider_status["swap_backend"] = await orchestrator.swap_client.health_check()
    else:
        provider_status["swap_backend"] = {"status": "unavailable", "reason": "orchestrator not started"}

    if settings.price_source.lower() == "coingecko":
        coingecko = CoingeckoProvider()
        provider_status["coingecko"] = await coingecko.health_check()

    swap_backend_healthy = provider_status["swap_backend"]["status"] == "healthy"
    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] == "healthy"
    )

    return {
        "status": "healthy" if swap_backend_healthy else "degraded",
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
        "conversation_state": orchestrator.state.value if orchestrator is not None else None,
    }
