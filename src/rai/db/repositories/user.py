"""
User repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from rai.db.repositories.base import BaseRepository
from rai.exceptions import ValidationError
from rai.models.db import User


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, session: Session):
        super().__init__(User, session)

    def get_by_username(self, username: str) -> Optional[User]:
        """
        Get user by username (case-insensitive).

        Args:
            username: Username

        Returns:
            User instance or None
        """
        return (
            self.session.query(User)
            .filter(User.username == username.strip().lower())
            .first()
        )

    def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            User instance or None
        """
        return self.session.query(User).filter(User.email == email.strip().lower()).first()

    def get_active(self, id: uuid.UUID) -> Optional[User]:
        """Get a user only if it has not been deactivated."""
        return (
            self.session.query(User)
            .filter(User.id == id, User.is_active.is_(True))
            .first()
        )

    def register(self, username: str, email: str, password: str, **kwargs) -> User:
        """
        Create a new user with a hashed password.

        Username and email are normalized to lowercase before the uniqueness
        check so that "Alice" and "alice" cannot both register.

        Args:
            username: Unique handle (3-30 characters)
            email: Unique email address
            password: Plain-text password to hash
            **kwargs: Additional user fields (first_name, preferences, ...)

        Returns:
            Created user

        Raises:
            ValidationError: If the handle or email is malformed or taken
        """
        username = username.strip().lower()
        email = email.strip().lower()
        if not 3 <= len(username) <= 30:
            raise ValidationError("Username must be between 3 and 30 characters")
        if "@" not in email:
            raise ValidationError("Please enter a valid email")

        existing = (
            self.session.query(User)
            .filter(or_(User.username == username, User.email == email))
            .first()
        )
        if existing:
            field = "username" if existing.username == username else "email"
            raise ValidationError(f"A user with this {field} already exists")

        user = User(id=uuid.uuid4(), username=username, email=email, **kwargs)
        user.set_password(password)
        self.session.add(user)
        self.session.flush()
        return user

    def search(self, term: str, limit: int = 20) -> List[User]:
        """
        Search active users by username or name.

        Args:
            term: Substring to match
            limit: Maximum results

        Returns:
            Matching users
        """
        return (
            self.session.query(User)
            .filter(
                User.is_active.is_(True),
                or_(
                    User.username.icontains(term, autoescape=True),
                    User.first_name.icontains(term, autoescape=True),
                    User.last_name.icontains(term, autoescape=True),
                ),
            )
            .order_by(User.username.asc())
            .limit(limit)
            .all()
        )
