"""
TaskFlow Calendar — Verification Codes and Invitations.

Issues 6-digit one-time codes over the SMS port and checks them. Codes
live in an in-process map keyed by phone number: they expire after the
configured TTL, are removed on first successful use, and survive wrong
guesses until then. Nothing here is persisted across restarts.

Also sends invitation messages and tracks the advisory resend countdown.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable
from urllib.parse import quote

from taskflow.core.errors import ValidationError
from taskflow.core.forms import is_valid_phone

if TYPE_CHECKING:
    from taskflow.ports.sms_port import SmsPort

logger = logging.getLogger(__name__)


def generate_verification_code() -> str:
    """Return a random 6-digit numeric code."""
    return str(random.randint(100000, 999999))


@dataclass
class PendingCode:
    code: str
    expires_at: float      # epoch seconds


class VerificationService:
    """Issue and check one-time verification codes."""

    def __init__(
        self,
        sms: SmsPort,
        ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds is None:
            from taskflow.config import settings
            ttl_seconds = settings.VERIFICATION_CODE_TTL_SECONDS
        self._sms = sms
        self._ttl = ttl_seconds
        self._clock = clock
        self._pending: dict[str, PendingCode] = {}

    async def request_code(self, phone: str) -> str:
        """Generate a code for phone, send it, and return it.

        Raises TransportError if the SMS could not be sent; no code is left
        pending in that case.
        """
        code = generate_verification_code()
        self._pending[phone] = PendingCode(code=code, expires_at=self._clock() + self._ttl)
        try:
            await self._sms.send_sms(phone, f"Your TaskFlow verification code is {code}")
        except Exception:
            self._pending.pop(phone, None)
            raise
        logger.info("Verification code issued for %s", phone)
        return code

    def check_code(self, phone: str, code: str) -> bool:
        """Return True if code matches the pending, unexpired code for phone."""
        pending = self._pending.get(phone)
        if pending is None:
            return False

        if self._clock() > pending.expires_at:
            del self._pending[phone]
            logger.warning("Expired verification code for %s", phone)
            return False

        if pending.code == code:
            del self._pending[phone]
            return True

        logger.warning("Wrong verification code for %s", phone)
        return False

    def has_pending(self, phone: str) -> bool:
        return phone in self._pending


# ---------------------------------------------------------------------------
# Resend countdown (advisory only)
# ---------------------------------------------------------------------------


class ResendCooldown:
    """Per-phone countdown that disables the resend affordance.

    Nothing server-side depends on it; a code can still be requested
    directly through VerificationService.
    """

    def __init__(
        self,
        seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if seconds is None:
            from taskflow.config import settings
            seconds = settings.RESEND_COOLDOWN_SECONDS
        self._seconds = seconds
        self._clock = clock
        self._started: dict[str, float] = {}

    def start(self, phone: str) -> None:
        self._started[phone] = self._clock()

    def seconds_remaining(self, phone: str) -> int:
        started = self._started.get(phone)
        if started is None:
            return 0
        left = self._seconds - (self._clock() - started)
        return max(0, math.ceil(left))

    def can_resend(self, phone: str) -> bool:
        return self.seconds_remaining(phone) == 0


def format_countdown(seconds: int) -> str:
    """Format seconds as m:ss, e.g. 600 -> '10:00'."""
    mins, secs = divmod(max(0, seconds), 60)
    return f"{mins}:{secs:02d}"


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


def build_invitation_message(
    phone: str, inviter_name: str, role: str, base_url: str,
) -> str:
    link = (
        f"{base_url.rstrip('/')}/login?invited=true"
        f"&phone={quote(phone, safe='')}&role={quote(role, safe='')}"
    )
    return (
        f"{inviter_name} has invited you to join TaskFlow Calendar as a {role}. "
        f"Click here to create your account: {link}"
    )


async def send_invitation(
    sms: SmsPort,
    phone: str,
    inviter_name: str,
    role: str,
) -> str:
    """Send an invitation SMS. Returns the message text.

    Raises ValidationError for an invalid phone and TransportError when the
    SMS port fails.
    """
    from taskflow.config import settings

    if not is_valid_phone(phone):
        raise ValidationError("Please enter a valid phone number")

    message = build_invitation_message(phone, inviter_name, role, settings.APP_BASE_URL)
    await sms.send_sms(phone, message, delay=settings.INVITE_SEND_DELAY_SECONDS)
    logger.info("Invitation sent to %s for role %s by %s", phone, role, inviter_name)
    return message
