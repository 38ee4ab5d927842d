"""
Chat API routes.

One conversation turn over HTTP; the result has the same shape as the
socket's message_response frame.
"""

from fastapi import APIRouter, Depends

from rai.api.auth import AuthContext, get_auth_context
from rai.api.deps import get_orchestrator
from rai.api.schemas import ChatRequest
from rai.models.exchange import ExchangeResult
from rai.services import ConversationOrchestrator

router = APIRouter()


@router.post("", response_model=ExchangeResult, response_model_exclude_none=True)
def send_message(
    payload: ChatRequest,
    auth: AuthContext = Depends(get_auth_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> ExchangeResult:
    """Run one user/AI exchange and return both persisted messages."""
    return orchestrator.handle_turn(
        auth.user_id,
        payload.message,
        conversation_id=payload.conversation_id,
        message_type=payload.message_type,
        metadata=payload.metadata,
    )
