"""Simulated provider for platforms without a live integration."""
import time
from typing import Any, Dict, List

from app.integrations.providers.base import PlatformProvider, SendResult
from app.models.enums import Platform


class SimulatedProvider(PlatformProvider):
    """Accepts every send and returns a ``sim_<millis>`` external id."""

    name = "simulated"

    def __init__(self, platform: Platform):
        super().__init__()
        self.platform = platform

    async def send(
        self,
        recipients: List[str],
        subject: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> SendResult:
        external_id = f"sim_{int(time.time() * 1000)}"
        self.logger.info(
            "Simulated publish",
            platform=self.platform.value,
            subject=subject[:50],
            external_id=external_id,
        )
        return SendResult.sent(external_id)
