"""Domain exceptions raised by the engine and service layers.

Each exception carries the HTTP status the API layer answers with, so routes
can let them propagate and a single handler in ``app.main`` renders them.
"""
from typing import Any, Dict, Optional


class CampaignError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    error: str = "Internal error"

    def __init__(self, detail: str = "", **context: Any):
        super().__init__(detail or self.error)
        self.detail = detail or self.error
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error, "detail": self.detail}
        if self.context:
            payload["context"] = {k: str(v) for k, v in self.context.items()}
        return payload


class ValidationError(CampaignError):
    """Malformed input or a failed transition guard. Never retried."""

    status_code = 400
    error = "Validation failed"


class UnknownProfileError(ValidationError):
    error = "Invalid version profile"


class PermissionDeniedError(CampaignError):
    status_code = 403
    error = "Insufficient permissions"


class NotFoundError(CampaignError):
    status_code = 404
    error = "Not found"


class IllegalTransitionError(CampaignError):
    """Attempted status change that is not in the transition table."""

    status_code = 409
    error = "Illegal transition"

    def __init__(self, status: Any, action: Any, detail: Optional[str] = None):
        status_value = getattr(status, "value", status)
        action_value = getattr(action, "value", action)
        super().__init__(
            detail or f"Cannot {action_value} a message in status {status_value}",
            status=status_value,
            action=action_value,
        )
        self.status = status
        self.action = action


class ConcurrentModificationError(CampaignError):
    """Another writer changed the message since it was loaded."""

    status_code = 409
    error = "Concurrent modification"


class GenerationError(CampaignError):
    """The text-generation collaborator failed or is not configured."""

    status_code = 502
    error = "Failed to generate content"
