"""
Email delivery for account emails (verification, password reset, notices).

Delivery is a strategy chosen at startup: a logging stub while email is
disabled, or Resend when it is enabled and configured.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from html import escape
from typing import Optional, Protocol

import resend

from yearbook.core.config import Settings
from yearbook.core.errors import EmailConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None
    email_id: Optional[str] = None


class EmailSender(Protocol):
    name: str

    async def send(self, to: str, subject: str, html_content: str) -> EmailResult: ...


def infer_email_type(subject: str) -> str:
    if "Verify" in subject:
        return "verification"
    if "Password" in subject:
        return "password_reset"
    return "notification"


class LoggingEmailSender:
    """Logs what would be sent. Used while email delivery is disabled."""

    name = "logging"

    async def send(self, to: str, subject: str, html_content: str) -> EmailResult:
        logger.info(
            "Email delivery disabled; would send %s email to %s: %s",
            infer_email_type(subject),
            to,
            subject,
        )
        return EmailResult(success=True)


class ResendEmailSender:
    name = "resend"

    def __init__(self, api_key: str, from_email: str):
        if not api_key or not from_email:
            raise EmailConfigurationError(
                "Resend credentials not configured. Please set RESEND_API_KEY and "
                "RESEND_FROM_EMAIL environment variables."
            )
        self.from_email = from_email
        resend.api_key = api_key

    async def send(self, to: str, subject: str, html_content: str) -> EmailResult:
        params: resend.Emails.SendParams = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html_content,
        }
        try:
            # The SDK is synchronous; keep it off the event loop.
            email = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            logger.error("Failed to send email to %s (%s): %s", to, subject, e)
            return EmailResult(success=False, error=str(e) or "Failed to send email")

        email_id = email.get("id") if isinstance(email, dict) else getattr(email, "id", None)
        logger.info("Email sent successfully to %s, id: %s", to, email_id)
        return EmailResult(success=True, email_id=email_id)


def build_email_sender(settings: Settings) -> EmailSender:
    if not settings.EMAIL_ENABLED:
        return LoggingEmailSender()
    return ResendEmailSender(settings.RESEND_API_KEY, settings.RESEND_FROM_EMAIL)


def render_verification_email(verification_url: str) -> str:
    safe_url = escape(verification_url, quote=True)
    return f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: system-ui, sans-serif; line-height: 1.6; color: #1f2937;">
        <div style="max-width: 600px; margin: 0 auto; padding: 40px 20px;">
            <h1>Verify Your Email</h1>
            <p>Thanks for signing up. Please confirm your email address to finish
            setting up your yearbook account.</p>
            <p><a href="{safe_url}">Verify Email</a></p>
            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all;">{safe_url}</p>
            <p>If you didn't create an account, you can safely ignore this email.</p>
        </div>
    </body>
    </html>
    """


async def send_verification_email(
    sender: EmailSender, to: str, token: str, base_url: str
) -> EmailResult:
    verification_url = f"{base_url.rstrip('/')}/verify-email/{token}"
    return await sender.send(
        to=to,
        subject="Verify your yearbook account email",
        html_content=render_verification_email(verification_url),
    )
