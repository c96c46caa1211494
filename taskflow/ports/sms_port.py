"""SMS port — abstract interface for sending text messages to phone numbers.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from typing import Protocol


class TransportError(Exception):
    """Raised when an SMS provider fails to deliver a message."""


class SmsPort(Protocol):
    """Abstract SMS interface used by core modules."""

    async def send_sms(self, phone: str, text: str, delay: float | None = None) -> None: ...
