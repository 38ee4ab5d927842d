"""
Authentication context for API endpoints.

Every user-scoped endpoint resolves the acting user from the X-User-Id
header through get_auth_context(). Token issuance and login flows live
in front of this service; the header is the contract with that layer.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from rai.db.connection import get_db
from rai.db.repositories import UserRepository


@dataclass
class AuthContext:
    """
    Authentication context for API requests.

    Attributes:
        user_id: UUID of the acting user
        username: Username of the acting user

    Example:
        >>> @router.get("/conversations/{id}")
        >>> def get_conversation(
        ...     id: UUID,
        ...     auth: AuthContext = Depends(get_auth_context),
        ...     session: Session = Depends(get_db),
        ... ):
        ...     return load_conversation(session, id, auth.user_id)
    """

    user_id: UUID
    username: str


def get_auth_context(
    x_user_id: Optional[str] = Header(
        None,
        description="UUID of the acting user (required)",
        alias="X-User-Id",
    ),
    session: Session = Depends(get_db),
) -> AuthContext:
    """
    FastAPI dependency to extract and validate the acting user.

    Args:
        x_user_id: User UUID from X-User-Id header
        session: Database session from dependency injection

    Returns:
        AuthContext for an existing, active user

    Raises:
        HTTPException(401): If the header is missing or the user is unknown
        HTTPException(400): If the user ID format is invalid
        HTTPException(403): If the user has been deactivated
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )

    try:
        user_uuid = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user ID format",
        )

    user = UserRepository(session).get(user_uuid)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return AuthContext(user_id=user.id, username=user.username)
