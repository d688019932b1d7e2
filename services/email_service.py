"""Transactional email via Resend."""

from __future__ import annotations

import html
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

import resend

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    """Result of an email send operation."""

    success: bool
    message_id: Optional[str]
    error: Optional[str]


class EmailService:
    """Email service using the Resend API.

    An unconfigured service (no API key) never raises; every send returns a
    failed EmailResult so callers can report it and carry on.
    """

    def __init__(
        self,
        api_key: Optional[str],
        from_address: str = "notification@urbangaragesales.com.au",
        from_name: str = "Urban Garage Sale",
        site_url: str = "http://localhost:5173",
        retry_delay: float = 1.0,
    ) -> None:
        self._api_key = api_key
        self._from_address = from_address
        self._from_name = from_name
        self._site_url = site_url.rstrip("/")
        self._retry_delay = retry_delay

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def send(
        self,
        to: List[str],
        subject: str,
        html_content: str,
        max_retries: int = 3,
    ) -> EmailResult:
        """Send an HTML email, retrying with exponential backoff.

        Returns:
            EmailResult with success status and message ID
        """
        if not self._api_key:
            logger.warning("Email service not configured, skipping '%s' to %s", subject, to)
            return EmailResult(success=False, message_id=None, error="Email service not configured")

        resend.api_key = self._api_key
        from_str = f"{self._from_name} <{self._from_address}>"
        params: resend.Emails.SendParams = {
            "from": from_str,
            "to": to,
            "subject": subject,
            "html": html_content,
        }

        for attempt in range(max_retries):
            try:
                response = resend.Emails.send(params)
            except Exception as e:
                if attempt < max_retries - 1:
                    time.sleep(self._retry_delay * 2**attempt)
                    continue
                logger.error("Email '%s' to %s failed after %d attempts: %s", subject, to, max_retries, e)
                return EmailResult(
                    success=False,
                    message_id=None,
                    error=f"Failed after {max_retries} attempts: {e}",
                )

            # Response is a dict with 'id' key on success
            if isinstance(response, dict) and "id" in response:
                logger.info("Email '%s' sent to %s", subject, to)
                return EmailResult(success=True, message_id=response["id"], error=None)

            return EmailResult(success=False, message_id=None, error=f"Unexpected response: {response}")

        return EmailResult(success=False, message_id=None, error="No send attempts made")

    def send_listing_approved(self, to: str, listing_title: str) -> EmailResult:
        title = html.escape(listing_title)
        html_content = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #1e3a5f; padding: 20px; text-align: center;">
    <h1 style="color: white; margin: 0;">Your listing is live!</h1>
  </div>
  <div style="background-color: #f5f1e8; padding: 30px;">
    <p style="font-size: 16px; color: #333;">Good news! Your listing <strong>{title}</strong> has been approved
    and is now visible to buyers on Urban Garage Sale.</p>
    <p style="font-size: 14px; color: #666;">
      <a href="{self._site_url}" style="color: #FF9500; text-decoration: none;">Visit Urban Garage Sale</a>
    </p>
  </div>
</div>
"""
        return self.send(
            to=[to],
            subject=f'Your listing "{listing_title}" has been approved!',
            html_content=html_content,
        )

    def send_contact_response(
        self,
        to: str,
        user_name: Optional[str],
        original_message: str,
        response_message: str,
    ) -> EmailResult:
        name = html.escape(user_name or "there")
        html_content = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #1e3a5f; padding: 20px; text-align: center;">
    <h1 style="color: white; margin: 0;">You Have a Response!</h1>
  </div>
  <div style="background-color: #f5f1e8; padding: 30px;">
    <p style="font-size: 16px; color: #333;">Hi {name},</p>
    <p style="font-size: 16px; color: #333;">Thank you for contacting Urban Garage Sale!
    We've received your message and our team has responded.</p>
    <div style="background-color: white; padding: 15px; border-left: 4px solid #FF9500; margin: 20px 0;">
      <p style="margin: 0 0 10px 0; color: #666; font-size: 14px;"><strong>Your Message:</strong></p>
      <p style="margin: 0; color: #333; font-size: 14px; white-space: pre-wrap;">{html.escape(original_message)}</p>
    </div>
    <div style="background-color: #e8f4f8; padding: 15px; border-left: 4px solid #1e3a5f; margin: 20px 0;">
      <p style="margin: 0 0 10px 0; color: #333; font-size: 14px;"><strong>Our Response:</strong></p>
      <p style="margin: 0; color: #333; font-size: 14px; white-space: pre-wrap;">{html.escape(response_message)}</p>
    </div>
    <p style="font-size: 14px; color: #666;">If you have any follow-up questions, feel free to contact us again.<br>
      <a href="{self._site_url}" style="color: #FF9500; text-decoration: none;">Visit Urban Garage Sale</a>
    </p>
  </div>
</div>
"""
        return self.send(
            to=[to],
            subject="Re: Your Urban Garage Sale Inquiry",
            html_content=html_content,
        )


__all__ = ["EmailResult", "EmailService"]
