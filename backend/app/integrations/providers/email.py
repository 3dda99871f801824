"""Resend integration for campaign email publishing."""
import asyncio
import html
from typing import Any, Dict, List, Optional

import resend

from app.config import settings
from app.integrations.providers.base import PlatformProvider, SendResult


class ResendEmailProvider(PlatformProvider):
    """
    Email provider backed by the Resend SDK.

    Sender identity defaults to the application settings and can be
    overridden per campaign (``provider_settings["EMAIL"]``).
    """

    name = "resend"

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ):
        super().__init__()
        self.api_key = api_key or settings.resend_api_key
        self.from_email = from_email or settings.resend_from_email
        self.from_name = from_name or settings.resend_from_name
        self.reply_to = reply_to or settings.resend_reply_to

    @property
    def is_configured(self) -> bool:
        """Check if Resend is configured."""
        return bool(self.api_key and self.from_email)

    async def send(
        self,
        recipients: List[str],
        subject: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> SendResult:
        if not self.is_configured:
            self.logger.warning("Resend not configured")
            return SendResult.fail("Resend not configured")
        if not recipients:
            return SendResult.fail("No recipients")

        params: Dict[str, Any] = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": list(recipients),
            "subject": subject,
            "html": self._to_html(content),
        }
        reply_to = metadata.get("reply_to") or self.reply_to
        if reply_to:
            params["reply_to"] = reply_to
        tags = metadata.get("tags")
        if tags:
            params["tags"] = [{"name": str(tag), "value": "1"} for tag in tags]

        # The SDK sets its key globally and is blocking
        resend.api_key = self.api_key
        try:
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            self.logger.error("Resend send error", error=str(e), recipients=len(recipients))
            return SendResult.fail(str(e))

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        self.logger.info(
            "Email sent via Resend",
            recipients=len(recipients),
            subject=subject[:50],
            message_id=message_id,
        )
        return SendResult.sent(message_id)

    def _to_html(self, content: str) -> str:
        """Wrap message content in a minimal HTML document.

        Content that already carries markup (``<p>``, ``<br>``, ``<div>``) is
        used as-is; plain text is escaped and newlines become ``<br>``.
        """
        is_html = any(tag in content for tag in ("<p>", "<br>", "<br/>", "<div>"))
        body = content if is_html else html.escape(content).replace("\n", "<br>\n")
        return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; font-size: 14px; line-height: 1.6; color: #333;">
    {body}
</body>
</html>
"""
