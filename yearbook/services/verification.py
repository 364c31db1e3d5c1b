from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from yearbook.core.config import Settings
from yearbook.services.email_sender import EmailSender, send_verification_email

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = (
    "Email verification is currently disabled. "
    "All new accounts are automatically verified."
)


@dataclass
class VerificationResult:
    success: bool
    message: str


@dataclass
class IssuedVerification:
    token: Optional[str]
    email_sent: bool


class EmailVerifier(Protocol):
    async def issue(self, email: str) -> IssuedVerification: ...

    def verify(self, token: str) -> VerificationResult: ...


class AutoVerifier:
    """Every account counts as verified; no email goes out."""

    async def issue(self, email: str) -> IssuedVerification:
        logger.info("Email verification disabled; %s is verified automatically", email)
        return IssuedVerification(token=None, email_sent=False)

    def verify(self, token: str) -> VerificationResult:
        return VerificationResult(success=True, message=DISABLED_MESSAGE)


class TokenVerifier:
    """
    One-time verification tokens kept in memory.

    A token is consumed on first successful use and rejected after
    `ttl_seconds`.
    """

    def __init__(
        self,
        sender: EmailSender,
        base_url: str,
        ttl_seconds: float = 72 * 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.sender = sender
        self.base_url = base_url
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._pending: Dict[str, tuple[str, float]] = {}
        self.verified_emails: set[str] = set()

    def _evict_expired(self, now: float) -> None:
        expired = [t for t, (_, expires_at) in self._pending.items() if expires_at < now]
        for token in expired:
            del self._pending[token]

    async def issue(self, email: str) -> IssuedVerification:
        now = self._clock()
        self._evict_expired(now)
        token = secrets.token_urlsafe(32)
        self._pending[token] = (email, now + self.ttl_seconds)
        result = await send_verification_email(self.sender, email, token, self.base_url)
        if not result.success:
            logger.warning("Verification email to %s was not delivered: %s", email, result.error)
        return IssuedVerification(token=token, email_sent=result.success)

    def verify(self, token: str) -> VerificationResult:
        entry = self._pending.get(token)
        if entry is None:
            return VerificationResult(success=False, message="Invalid or already used verification link")

        email, expires_at = entry
        del self._pending[token]
        if self._clock() > expires_at:
            return VerificationResult(success=False, message="Verification link has expired")

        self.verified_emails.add(email)
        return VerificationResult(success=True, message="Email verified successfully. You can now log in.")


def build_verifier(settings: Settings, sender: EmailSender) -> EmailVerifier:
    if not settings.EMAIL_VERIFICATION_ENABLED:
        return AutoVerifier()
    return TokenVerifier(
        sender=sender,
        base_url=settings.APP_BASE_URL,
        ttl_seconds=settings.VERIFICATION_TTL_HOURS * 3600,
    )
