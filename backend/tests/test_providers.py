"""Tests for provider lookup and the Resend email provider."""
from types import SimpleNamespace

import resend

from app.integrations.providers import ProviderRegistry, ResendEmailProvider, SendResult, SimulatedProvider
from app.models.enums import Platform
from conftest import FakeProvider


def _campaign(provider_settings=None):
    return SimpleNamespace(id="c-1", provider_settings=provider_settings)


class TestProviderRegistry:
    def test_registered_provider_wins(self):
        fake = FakeProvider()
        registry = ProviderRegistry({Platform.EMAIL: fake})
        assert registry.for_campaign(_campaign({"EMAIL": {"enabled": False}}), Platform.EMAIL) is fake

    def test_disabled_platform(self):
        registry = ProviderRegistry()
        assert registry.for_campaign(_campaign({"FACEBOOK": {"enabled": False}}), Platform.FACEBOOK) is None

    def test_email_from_campaign_settings(self):
        provider = ProviderRegistry().for_campaign(
            _campaign({"EMAIL": {"api_key": "re_test", "from_email": "jane@example.com", "from_name": "Jane"}}),
            Platform.EMAIL,
        )
        assert isinstance(provider, ResendEmailProvider)
        assert provider.from_email == "jane@example.com"

    def test_social_platforms_are_simulated(self):
        provider = ProviderRegistry().for_campaign(_campaign({"INSTAGRAM": {"simulate": True}}), Platform.INSTAGRAM)
        assert isinstance(provider, SimulatedProvider)

    def test_register(self):
        registry = ProviderRegistry()
        fake = FakeProvider()
        registry.register(Platform.SMS, fake)
        assert registry.for_campaign(_campaign(), Platform.SMS) is fake


class TestResendEmailProvider:
    async def test_send(self, monkeypatch):
        sent = []
        monkeypatch.setattr(resend, "api_key", None)
        monkeypatch.setattr(resend.Emails, "send", lambda params: sent.append(params) or {"id": "re_123"})
        provider = ResendEmailProvider(api_key="re_test", from_email="jane@example.com", from_name="Jane")

        result = await provider.send(["a@example.com"], "Rally", "<p>Join us</p>", {"reply_to": "hq@example.com"})

        assert result.ok
        assert result.id == "re_123"
        assert sent[0]["from"] == "Jane <jane@example.com>"
        assert sent[0]["reply_to"] == "hq@example.com"
        assert "<p>Join us</p>" in sent[0]["html"]

    async def test_sdk_error_is_a_failed_result(self, monkeypatch):
        def boom(params):
            raise RuntimeError("invalid api key")

        monkeypatch.setattr(resend, "api_key", None)
        monkeypatch.setattr(resend.Emails, "send", boom)
        provider = ResendEmailProvider(api_key="re_test", from_email="jane@example.com")

        result = await provider.send(["a@example.com"], "Rally", "Hi", {})

        assert result.status == SendResult.FAILED
        assert result.error == "invalid api key"

    async def test_no_recipients(self):
        provider = ResendEmailProvider(api_key="re_test", from_email="jane@example.com")
        result = await provider.send([], "Rally", "Hi", {})
        assert result.error == "No recipients"

    def test_plain_text_is_escaped(self):
        html = ResendEmailProvider(api_key="k")._to_html("a < b\nc")
        assert "a &lt; b<br>" in html


class TestSimulatedProvider:
    async def test_returns_sim_id(self):
        result = await SimulatedProvider(Platform.FACEBOOK).send([], "Post", "Hello", {})
        assert result.ok
        assert result.id.startswith("sim_")
