"""
RAI FastAPI Application.

HTTP and socket API for conversations with the assistant.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rai import __version__
from rai.api.errors import register_exception_handlers
from rai.api.routes import ai, chat, conversations, messages, realtime, users
from rai.config import settings
from rai.gateway import build_gateway
from rai.logging_config import setup_logging
from rai.startup import run_all_startup_checks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests
    and builds the AI gateway shared by every request.
    """
    # Initialize logging first
    setup_logging(context="api")

    # Startup: Run all dependency checks
    logger.info("Running startup checks...")
    run_all_startup_checks()
    logger.info("✓ Startup checks passed")

    gateway = build_gateway(settings)
    app.state.gateway = gateway
    logger.info(f"✓ AI gateway ready: {gateway.describe()}")

    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="RAI API",
    description="Chat assistant backend proxying to AI providers",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "RAI API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    from rai.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"
    gateway = getattr(app.state, "gateway", None)

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
        "ai": gateway.describe() if gateway is not None else None,
    }


app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(
    conversations.router, prefix="/conversations", tags=["conversations"]
)
app.include_router(messages.router, prefix="/messages", tags=["messages"])
app.include_router(chat.router, prefix="/chat", tags=["chat"])
app.include_router(ai.router, prefix="/ai", tags=["ai"])
app.include_router(realtime.router, tags=["realtime"])
