"""
TaskFlow Calendar — Authentication and Sessions.

Login is a phone-number lookup followed by an optional SMS code check.
The password is required to be present but is not compared against
anything: there is no credential storage.

A Session is created at start-up from the persisted slot, changed only by
login/logout, and passed explicitly to whoever needs the current user.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from taskflow.core.errors import AuthError, ValidationError
from taskflow.core.forms import format_phone_number, is_valid_phone
from taskflow.data.models import User

if TYPE_CHECKING:
    from taskflow.core.verification import ResendCooldown, VerificationService
    from taskflow.data.store import DataStore

logger = logging.getLogger(__name__)

SESSION_KEY = "current-user"


@dataclass
class Session:
    """The logged-in user for one client, persisted under slot_key."""

    slot_key: str = SESSION_KEY
    current_user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None


class AuthService:
    """Phone-based login backed by the domain store."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    def restore_session(self, slot_key: str = SESSION_KEY) -> Session:
        """Rehydrate a session from its persisted slot (empty if absent)."""
        data = self._store.kv.read(slot_key, None)
        user = User(**data) if data else None
        return Session(slot_key=slot_key, current_user=user)

    def login(self, session: Session, phone: str, password: str) -> User | None:
        """Log in the user with this phone. Returns None if no such user."""
        if not phone or not password:
            raise ValidationError("Please enter both phone number and password")

        user = self._store.find_user_by_phone(phone)
        if user is None:
            logger.warning("Login failed: no user with phone %s", phone)
            return None

        self._store.kv.write(session.slot_key, asdict(user))
        session.current_user = user
        logger.info("User %s logged in (%s)", user.id, session.slot_key)
        return user

    def logout(self, session: Session) -> None:
        self._store.kv.remove(session.slot_key)
        if session.current_user is not None:
            logger.info("User %s logged out (%s)", session.current_user.id, session.slot_key)
        session.current_user = None


class LoginState(enum.Enum):
    IDLE = "idle"
    CODE_SENT = "code_sent"
    VERIFIED = "verified"
    LOGGED_IN = "logged_in"


class LoginAttempt:
    """One pass through the login form.

    IDLE -> CODE_SENT -> VERIFIED -> LOGGED_IN, or IDLE -> LOGGED_IN when
    verification is not required.
    """

    def __init__(
        self,
        auth: AuthService,
        verification: VerificationService,
        cooldown: ResendCooldown,
        session: Session,
        require_verification: bool | None = None,
    ) -> None:
        if require_verification is None:
            from taskflow.config import settings
            require_verification = settings.REQUIRE_VERIFICATION
        self._auth = auth
        self._verification = verification
        self._cooldown = cooldown
        self._session = session
        self.require_verification = require_verification
        self.state = LoginState.IDLE
        self.phone = ""

    def set_phone(self, raw_phone: str) -> str:
        phone = format_phone_number(raw_phone)
        if not is_valid_phone(phone):
            raise ValidationError("Please enter a valid phone number")
        self.phone = phone
        return phone

    async def send_code(self) -> str:
        """Request a code for the current phone. TransportError propagates."""
        if not self.phone:
            raise ValidationError("Please enter a valid phone number")
        code = await self._verification.request_code(self.phone)
        self._cooldown.start(self.phone)
        self.state = LoginState.CODE_SENT
        return code

    def verify(self, code: str) -> None:
        if not code.strip():
            raise ValidationError("Please enter the verification code")
        if not self._verification.check_code(self.phone, code.strip()):
            raise AuthError("Invalid or expired verification code")
        self.state = LoginState.VERIFIED

    def complete(self, password: str) -> User:
        """Finish the login. Raises AuthError if the phone is unknown."""
        if self.require_verification and self.state is not LoginState.VERIFIED:
            raise AuthError("Please enter the verification code")

        user = self._auth.login(self._session, self.phone, password)
        if user is None:
            raise AuthError("Invalid phone number or password")
        self.state = LoginState.LOGGED_IN
        return user

    def resend_wait(self) -> int:
        """Seconds until resend is offered again (advisory)."""
        return self._cooldown.seconds_remaining(self.phone)
