"""Simulated SMS adapter — implements SmsPort.

Nothing leaves the process: messages are logged, kept in an outbox and
delivered after an artificial delay. Set ``fail=True`` to simulate a
provider outage.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from taskflow.ports.sms_port import TransportError

logger = logging.getLogger(__name__)


@dataclass
class SentMessage:
    phone: str
    text: str


class MockSmsSender:
    """In-memory implementation of SmsPort."""

    def __init__(self, delay: float | None = None, fail: bool = False) -> None:
        if delay is None:
            from taskflow.config import settings
            delay = settings.SMS_SEND_DELAY_SECONDS
        self._delay = delay
        self.fail = fail
        self.outbox: list[SentMessage] = []

    async def send_sms(self, phone: str, text: str, delay: float | None = None) -> None:
        wait = self._delay if delay is None else delay
        if wait > 0:
            await asyncio.sleep(wait)
        if self.fail:
            logger.error("[SMS MOCK] Delivery to %s failed", phone)
            raise TransportError(f"Failed to deliver SMS to {phone}")
        self.outbox.append(SentMessage(phone=phone, text=text))
        logger.info("[SMS MOCK] To %s: %s", phone, text)
