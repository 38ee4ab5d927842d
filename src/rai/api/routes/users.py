"""
User API routes.

Registration and the acting user's profile, preferences and usage.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rai.api.auth import AuthContext, get_auth_context
from rai.api.schemas import PreferencesUpdate, UsageResponse, UserCreate, UserResponse
from rai.db.connection import get_db
from rai.db.repositories import UserRepository
from rai.models.db import USAGE_COUNTERS, SubscriptionPlan, UsageKind
from rai.services.access import load_active_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: UserCreate,
    session: Session = Depends(get_db),
) -> UserResponse:
    """
    Register a new user.

    Username and email are stored lowercase and must be unique.
    """
    user = UserRepository(session).register(
        payload.username,
        payload.email,
        payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    session.commit()
    session.refresh(user)
    logger.info(f"Registered user {user.username} ({user.id})")
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
def get_me(
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> UserResponse:
    """Get the acting user's profile."""
    return UserResponse.model_validate(load_active_user(session, auth.user_id))


@router.patch("/me/preferences", response_model=UserResponse)
def update_preferences(
    payload: PreferencesUpdate,
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> UserResponse:
    """Merge the given preference fields into the stored preferences."""
    user = load_active_user(session, auth.user_id)

    preferences = dict(user.preferences or {})
    changes = payload.model_dump(mode="json", exclude_none=True)
    notifications = changes.pop("notifications", None)
    preferences.update(changes)
    if notifications:
        preferences["notifications"] = {
            **preferences.get("notifications", {}),
            **notifications,
        }
    user.preferences = preferences

    session.commit()
    session.refresh(user)
    return UserResponse.model_validate(user)


@router.get("/me/usage", response_model=UsageResponse)
def get_usage(
    auth: AuthContext = Depends(get_auth_context),
    session: Session = Depends(get_db),
) -> UsageResponse:
    """Usage counters and the plan ceilings they are checked against."""
    user = load_active_user(session, auth.user_id)
    return UsageResponse(
        plan=SubscriptionPlan(user.subscription_plan),
        usage={USAGE_COUNTERS[kind]: user.usage_for(kind) for kind in UsageKind},
        limits={USAGE_COUNTERS[kind]: user.limit_for(kind) for kind in UsageKind},
        last_active=user.last_active,
    )
