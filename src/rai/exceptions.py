"""Custom exceptions for RAI."""

from typing import Optional


class RaiError(Exception):
    """Base class for all application errors."""


class NotFoundError(RaiError):
    """Raised when a user, conversation or message does not exist."""

    def __init__(self, entity: str, entity_id: object = None):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found"
        if entity_id is not None:
            message += f": {entity_id}"
        super().__init__(message)


class AccessDeniedError(RaiError):
    """Raised when a user acts on a resource they neither own nor share."""


class ValidationError(RaiError):
    """Raised for malformed or oversized input."""


class UsageLimitExceededError(RaiError):
    """Raised when a user's subscription ceiling for a feature is reached."""

    def __init__(self, kind: str, plan: str, limit: int):
        self.kind = kind
        self.plan = plan
        self.limit = limit
        super().__init__(
            f"Usage limit reached for {kind} on the {plan} plan ({limit})"
        )


class ProviderError(RaiError):
    """Raised when an external AI provider call fails."""

    def __init__(self, provider: str, message: str, cause: Optional[Exception] = None):
        self.provider = provider
        self.cause = cause
        super().__init__(f"{provider}: {message}")


class PersistenceError(RaiError):
    """Raised when a storage write fails during a conversation turn."""

    def __init__(self, step: str, cause: Optional[Exception] = None):
        self.step = step
        self.cause = cause
        message = f"Failed to persist {step}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
