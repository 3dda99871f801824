"""Version Generator - adapts campaign content to audience profiles with the LLM."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from app.engine.audience_profiles import AudienceProfile
from app.engine.prompt_compiler import (
    build_adaptation_prompt,
    build_user_prompt,
    compile_prompt,
    max_tokens_for_platform,
)
from app.exceptions import CampaignError, GenerationError
from app.integrations.openai_client import OpenAIClient
from app.models.base import utcnow
from app.models.enums import Platform
from app.schemas.campaign import CampaignContext

logger = structlog.get_logger()

TITLE_PREVIEW_CHARS = 50
_SUBJECT_RE = re.compile(r"^Subject:\s*", re.IGNORECASE)


@dataclass
class GeneratedContent:
    """Model output ready to be stored as a message or a version."""
    content: str
    profile_id: str
    platform: Platform
    title: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    generated_at: datetime = field(default_factory=utcnow)


def extract_title(content: str, platform: Platform) -> str:
    """Suggest a title: the subject line for email, the headline for press releases."""
    lines = content.split("\n")
    if platform == Platform.EMAIL:
        return _SUBJECT_RE.sub("", lines[0]).strip()

    if platform == Platform.PRESS_RELEASE:
        for index, line in enumerate(lines[:-1]):
            if "FOR IMMEDIATE RELEASE" in line and lines[index + 1].strip():
                return lines[index + 1].strip()

    suffix = "..." if len(content) > TITLE_PREVIEW_CHARS else ""
    return content[:TITLE_PREVIEW_CHARS] + suffix


def to_html(text: str) -> str:
    """Convert plain text with newlines to HTML paragraphs."""
    if not text:
        return ""

    # If already HTML, return as-is
    if "<p>" in text or "<br" in text:
        return text

    paragraphs = []
    for para in text.split("\n\n"):
        para = para.strip()
        if para:
            paragraphs.append(f"<p>{para.replace(chr(10), '<br>')}</p>")
    return "".join(paragraphs)


class VersionGenerator:
    """
    Generates campaign content with:
    - The compiled audience system prompt
    - Platform formatting requirements
    - Per-platform token limits
    """

    def __init__(self, openai_client: Optional[OpenAIClient] = None):
        self.openai = openai_client or OpenAIClient()

    async def generate_message(
        self,
        campaign: CampaignContext,
        prompt: str,
        profile: AudienceProfile,
        platform: Platform,
    ) -> GeneratedContent:
        """
        Generate fresh content from a free-form request.

        Args:
            campaign: Candidate and campaign context
            prompt: What the message should say
            profile: Audience profile to write for
            platform: Target platform (drives formatting and length)

        Returns:
            GeneratedContent with HTML content and a suggested title
        """
        logger.info("Generating message", profile=profile.id, platform=platform.value)
        return await self._generate(campaign, prompt, profile, platform)

    async def generate_version(
        self,
        campaign: CampaignContext,
        content: str,
        profile: AudienceProfile,
        platform: Platform,
    ) -> GeneratedContent:
        """Adapt existing message content to one audience profile."""
        logger.info("Generating version", profile=profile.id, platform=platform.value)
        adaptation = build_adaptation_prompt(content, profile, platform)
        return await self._generate(campaign, adaptation, profile, platform)

    async def _generate(
        self,
        campaign: CampaignContext,
        prompt: str,
        profile: AudienceProfile,
        platform: Platform,
    ) -> GeneratedContent:
        system = compile_prompt(campaign, profile)
        user_prompt = build_user_prompt(prompt, platform)

        try:
            completion = await self.openai.complete(
                prompt=user_prompt,
                system=system,
                temperature=0.7,
                max_tokens=max_tokens_for_platform(platform),
            )
        except CampaignError:
            raise
        except Exception as e:
            logger.error("Generation failed", profile=profile.id, error=str(e))
            raise GenerationError(str(e), profile_id=profile.id) from e

        text = completion.content.strip()
        if not text:
            raise GenerationError("Model returned empty content", profile_id=profile.id)

        return GeneratedContent(
            content=to_html(text),
            profile_id=profile.id,
            platform=platform,
            title=extract_title(text, platform),
            metadata={"model": completion.model, **completion.usage},
        )
