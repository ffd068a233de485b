from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, voice
from .config import settings
from .core.voice.orchestrator import ConversationOrchestrator
from .core.voice.transcription import InMemoryTranscriptionChannel
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()


def build_orchestrator() -> ConversationOrchestrator:
    # Speech runs on the client; the server channel only records what would be spoken
    return ConversationOrchestrator.from_settings(InMemoryTranscriptionChannel())


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = build_orchestrator()
    await orchestrator.initialize()
    app.state.orchestrator = orchestrator
    try:
        yield
    finally:
        await orchestrator.stop()
        app.state.orchestrator = None


# Create FastAPI app
app = FastAPI(
    title="VoiceSwap API",
    description="Voice-command token swaps over an x402 swap backend",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(voice.router, tags=["Voice"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "VoiceSwap API",
        "version": "0.1.0",
        "description": "Voice-command token swaps over an x402 swap backend",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "voiceswap.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
