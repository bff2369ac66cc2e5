"""Completion e-mails sent through the Resend HTTP API."""

from __future__ import annotations

import html
import logging

import httpx

from src.config import Settings

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"


def completion_email_html(video_title: str, job_url: str) -> str:
    title = html.escape(video_title)
    return (
        "<h2>Your summary is ready!</h2>\n"
        f"<p>We've finished summarizing: <strong>{title}</strong></p>\n"
        f'<p><a href="{job_url}" style="display: inline-block; padding: 12px 24px; '
        "background: #000; color: #fff; text-decoration: none; border-radius: 6px;\">"
        "View Your Summary</a></p>\n"
        '<p style="color: #666; font-size: 14px;">This link will remain active so you '
        "can access your summary anytime.</p>"
    )


class EmailNotifier:
    """Sends the "summary ready" e-mail; a missing Resend key disables sending."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self.api_key = settings.resend_api_key
        self.sender = settings.email_from
        self.app_url = settings.app_url.rstrip("/")
        self.timeout = settings.http_timeout_seconds
        self._http_client = http_client

    async def send_completion_email(self, to: str, job_id: str, video_title: str) -> bool:
        """Send the e-mail.

        Returns:
            ``True`` if the provider accepted it, ``False`` if sending is not configured.

        Raises:
            httpx.HTTPError: The provider could not be reached or rejected the request.
        """
        if not self.api_key:
            logger.warning("Resend API key not configured, skipping notification email")
            return False

        payload = {
            "from": self.sender,
            "to": to,
            "subject": f"Your podcast summary is ready: {video_title}",
            "html": completion_email_html(video_title, f"{self.app_url}/job/{job_id}"),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        if self._http_client is not None:
            response = await self._http_client.post(RESEND_EMAILS_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(RESEND_EMAILS_URL, json=payload, headers=headers)
        response.raise_for_status()
        return True
