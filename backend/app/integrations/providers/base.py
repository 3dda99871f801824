"""Base provider class for all publishing platforms."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import structlog


class SendResult:
    """Outcome of one provider send, with success/failure tracking."""

    SENT = "sent"
    FAILED = "failed"

    def __init__(
        self,
        status: str,
        id: Optional[str] = None,
        error: Optional[str] = None,
    ):
        self.status = status
        self.id = id
        self.error = error

    @property
    def ok(self) -> bool:
        return self.status == self.SENT

    @classmethod
    def sent(cls, id: Optional[str]) -> "SendResult":
        """Create successful result."""
        return cls(status=cls.SENT, id=id)

    @classmethod
    def fail(cls, error: str) -> "SendResult":
        """Create failed result."""
        return cls(status=cls.FAILED, error=error)

    def __repr__(self) -> str:
        return f"SendResult(status={self.status!r}, id={self.id!r}, error={self.error!r})"


class PlatformProvider(ABC):
    """Delivers a message to one external platform."""

    name: str = "provider"

    def __init__(self):
        self.logger = structlog.get_logger(provider=self.name)

    @abstractmethod
    async def send(
        self,
        recipients: List[str],
        subject: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> SendResult:
        """Send ``content`` and report the external id or the failure reason."""
