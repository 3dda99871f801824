"""Tests for LLM-backed content generation."""
import uuid

import pytest

from app.engine.audience_profiles import ProfileRegistry
from app.engine.version_generator import VersionGenerator, extract_title, to_html
from app.exceptions import GenerationError, NotFoundError, UnknownProfileError, ValidationError
from app.integrations.openai_client import OpenAIClient
from app.models.enums import Platform
from app.schemas.campaign import CampaignContext
from app.services.activity import ActivityLogger, ActivityType
from app.services.messages import MessageService
from conftest import AUTHOR, FakeLLM


def _context():
    return CampaignContext(candidate_name="Jane Doe", office="State Senate")


class TestHelpers:
    def test_email_title_is_subject_line(self):
        assert extract_title("Subject: Rally Saturday\n\nHi friends", Platform.EMAIL) == "Rally Saturday"

    def test_press_release_title_is_headline(self):
        text = "FOR IMMEDIATE RELEASE\nDoe Unveils Jobs Plan\n\nSPRINGFIELD -"
        assert extract_title(text, Platform.PRESS_RELEASE) == "Doe Unveils Jobs Plan"

    def test_other_platforms_use_preview(self):
        text = "x" * 60
        assert extract_title(text, Platform.TWITTER) == "x" * 50 + "..."
        assert extract_title("short", Platform.SMS) == "short"

    def test_to_html(self):
        assert to_html("Hello\nthere\n\nBye") == "<p>Hello<br>there</p><p>Bye</p>"
        assert to_html("<p>kept</p>") == "<p>kept</p>"
        assert to_html("") == ""


class TestVersionGenerator:
    async def test_generate_message(self):
        llm = FakeLLM()
        profile = ProfileRegistry().get("union")

        generated = await VersionGenerator(openai_client=llm).generate_message(
            _context(), "Announce the rally", profile, Platform.EMAIL
        )

        assert generated.title == "Standing with working families"
        assert generated.content.startswith("<p>Subject: Standing with working families</p>")
        assert generated.profile_id == "union"
        assert generated.metadata == {"model": "fake-model", "total_tokens": 42}

        call = llm.calls[0]
        assert "AUDIENCE PROFILE: Union" in call["system"]
        assert call["prompt"].startswith("Announce the rally")
        assert call["max_tokens"] == 800

    async def test_generate_version_uses_adaptation_prompt(self):
        llm = FakeLLM(content="Adapted text")
        profile = ProfileRegistry().get("youth")

        await VersionGenerator(openai_client=llm).generate_version(
            _context(), "<p>Original</p>", profile, Platform.FACEBOOK
        )

        assert "adapt the following message for the Youth audience" in llm.calls[0]["prompt"]

    async def test_llm_failure_becomes_generation_error(self):
        llm = FakeLLM(error=RuntimeError("upstream down"))
        with pytest.raises(GenerationError) as exc_info:
            await VersionGenerator(openai_client=llm).generate_message(
                _context(), "Hi", ProfileRegistry().get("senior"), Platform.SMS
            )
        assert exc_info.value.status_code == 502

    async def test_empty_output_is_an_error(self):
        with pytest.raises(GenerationError):
            await VersionGenerator(openai_client=FakeLLM(content="   ")).generate_message(
                _context(), "Hi", ProfileRegistry().get("senior"), Platform.SMS
            )

    async def test_unconfigured_client(self):
        client = OpenAIClient()
        client.client = None
        with pytest.raises(GenerationError):
            await client.complete("Hi")


class TestServiceGeneration:
    async def test_generate_version_stores_version(self, db, service, campaign, fake_llm):
        message = await service.create_message(campaign.id, AUTHOR, "Rally", "<p>Join us</p>", Platform.EMAIL)

        version = await service.generate_version(message.id, "rural", AUTHOR)
        await db.commit()

        assert version.version_profile == "rural"
        assert version.content.startswith("<p>")
        assert "Candidate speaks English, Spanish" in fake_llm.calls[0]["system"]

        activities = await ActivityLogger(db).recent(campaign.id)
        generated = [a for a in activities if a.type == ActivityType.VERSION_GENERATED.value]
        assert generated[0].details["tokens_used"] == 42

    async def test_failed_generation_stores_nothing(self, db, campaign):
        service = MessageService(db, generator=VersionGenerator(openai_client=FakeLLM(error=RuntimeError("boom"))))
        message = await service.create_message(campaign.id, AUTHOR, "Rally", "<p>Join us</p>", Platform.EMAIL)

        with pytest.raises(GenerationError):
            await service.generate_version(message.id, "union", AUTHOR)

        assert message.versions == []

    async def test_unknown_profile_is_rejected_before_generation(self, service, campaign, fake_llm):
        message = await service.create_message(campaign.id, AUTHOR, "Rally", "<p>Join us</p>", Platform.EMAIL)

        with pytest.raises(UnknownProfileError):
            await service.generate_version(message.id, "martians", AUTHOR)
        assert fake_llm.calls == []

    async def test_generate_message_requires_prompt(self, service, campaign):
        with pytest.raises(ValidationError):
            await service.generate_message(campaign.id, "  ", "union", Platform.EMAIL)

    async def test_generate_message_unknown_campaign(self, service):
        with pytest.raises(NotFoundError):
            await service.generate_message(uuid.uuid4(), "Hello", "union", Platform.EMAIL)
