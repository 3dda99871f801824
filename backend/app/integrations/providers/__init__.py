"""Publishing providers and the per-campaign provider lookup."""
from typing import Any, Dict, Optional

import structlog

from app.config import settings
from app.integrations.providers.base import PlatformProvider, SendResult
from app.integrations.providers.email import ResendEmailProvider
from app.integrations.providers.simulated import SimulatedProvider
from app.models.enums import Platform

logger = structlog.get_logger()


class ProviderRegistry:
    """
    Resolves the provider for a campaign and platform.

    Explicitly registered providers win; otherwise the provider is built from
    ``campaign.provider_settings[<PLATFORM>]``. A platform entry with
    ``"enabled": false`` means no provider is available.
    """

    def __init__(self, providers: Optional[Dict[Platform, PlatformProvider]] = None):
        self._providers: Dict[Platform, PlatformProvider] = dict(providers or {})

    def register(self, platform: Platform, provider: PlatformProvider) -> None:
        self._providers[platform] = provider

    def for_campaign(self, campaign: Any, platform: Platform) -> Optional[PlatformProvider]:
        if platform in self._providers:
            return self._providers[platform]

        config: Dict[str, Any] = (getattr(campaign, "provider_settings", None) or {}).get(platform.value, {})
        if config.get("enabled") is False:
            return None

        if platform == Platform.EMAIL:
            provider = ResendEmailProvider(
                api_key=config.get("api_key"),
                from_email=config.get("from_email"),
                from_name=config.get("from_name"),
                reply_to=config.get("reply_to"),
            )
            if not provider.is_configured:
                logger.warning("Email provider not configured", campaign_id=str(getattr(campaign, "id", "")))
                return None
            return provider

        if settings.simulate_social_platforms or config.get("simulate"):
            return SimulatedProvider(platform)
        return None


__all__ = [
    "PlatformProvider",
    "SendResult",
    "ResendEmailProvider",
    "SimulatedProvider",
    "ProviderRegistry",
]
