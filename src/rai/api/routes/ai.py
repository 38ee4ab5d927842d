"""
Direct AI capability routes.

These call the gateway without creating conversation messages. Usage is
still checked against the user's plan and counted.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rai.api.auth import AuthContext, get_auth_context
from rai.api.deps import get_gateway
from rai.api.schemas import GatewayResult, ImageRequest, SummarizeRequest, TranslateRequest
from rai.db.connection import get_db
from rai.gateway import AIGateway, GatewayResponse
from rai.models.db import UsageKind
from rai.services.access import load_active_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_result(response: GatewayResponse) -> GatewayResult:
    return GatewayResult(
        content=response.content,
        type=response.response_type,
        metadata=response.metadata,
    )


@router.post("/image", response_model=GatewayResult)
def generate_image(
    payload: ImageRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_gateway),
) -> GatewayResult:
    """Generate an image and return its URL."""
    user = load_active_user(session, auth.user_id)
    user.ensure_within_limit(UsageKind.IMAGES)
    response = gateway.generate_image(payload.prompt, payload.size)
    user.update_usage(UsageKind.IMAGES)
    session.commit()
    return _to_result(response)


@router.post("/translate", response_model=GatewayResult)
def translate(
    payload: TranslateRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_gateway),
) -> GatewayResult:
    """Translate text into the target language."""
    user = load_active_user(session, auth.user_id)
    user.ensure_within_limit(UsageKind.MESSAGES)
    response = gateway.translate(payload.text, payload.target_language)
    if not response.is_error:
        user.update_usage(UsageKind.MESSAGES)
        session.commit()
    return _to_result(response)


@router.post("/summarize", response_model=GatewayResult)
def summarize(
    payload: SummarizeRequest,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_gateway),
) -> GatewayResult:
    """Summarize text."""
    user = load_active_user(session, auth.user_id)
    user.ensure_within_limit(UsageKind.MESSAGES)
    response = gateway.summarize(payload.text)
    if not response.is_error:
        user.update_usage(UsageKind.MESSAGES)
        session.commit()
    return _to_result(response)
