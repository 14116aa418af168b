"""FastAPI application instance and router configuration."""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api.routes import analysis, messages
from .core.logging import setup_logging

# Setup logging
setup_logging(settings.log_dir)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Chat Insights API",
    description="API for tier-based communication analysis of chat conversations",
    version="1.0.0",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Include routers
app.include_router(analysis.router, tags=["analysis"])
app.include_router(messages.router, tags=["messages"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "message": "Chat Insights API",
        "provider": settings.llm_provider,
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


logger.info("FastAPI application initialized")
logger.info(
    "LLM provider: %s (fallback: %s)",
    settings.llm_provider,
    settings.llm_fallback_provider or "none",
)
