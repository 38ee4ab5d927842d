"""Shared FastAPI dependencies."""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from rai.db.connection import get_db
from rai.gateway import AIGateway
from rai.services import ConversationOrchestrator


def get_gateway(request: Request) -> AIGateway:
    """AI gateway built at startup and stored on app.state."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI gateway is not initialized",
        )
    return gateway


def get_orchestrator(
    session: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_gateway),
) -> ConversationOrchestrator:
    """Request-scoped orchestrator bound to the request's session."""
    return ConversationOrchestrator(session, gateway)
