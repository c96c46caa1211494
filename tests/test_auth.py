"""Tests for taskflow.core.auth — sessions and the login flow."""

import pytest

from taskflow.core.auth import AuthService, LoginAttempt, LoginState, Session
from taskflow.core.errors import AuthError, ValidationError
from taskflow.core.verification import ResendCooldown, VerificationService

ADMIN_PHONE = "+1234567890"


@pytest.fixture
def auth(store):
    return AuthService(store)


def _attempt(auth, sms, clock, session, require_verification=True):
    verification = VerificationService(sms, ttl_seconds=300, clock=clock)
    cooldown = ResendCooldown(seconds=600, clock=clock)
    return LoginAttempt(auth, verification, cooldown, session, require_verification=require_verification)


class TestAuthService:
    def test_login_persists_slot(self, auth, store):
        session = Session()
        user = auth.login(session, ADMIN_PHONE, "secret")

        assert user.id == "1"
        assert session.is_authenticated
        assert store.kv.read("current-user")["phone"] == ADMIN_PHONE

    def test_unknown_phone(self, auth, store):
        session = Session()
        assert auth.login(session, "+1999999999", "secret") is None
        assert not session.is_authenticated
        assert store.kv.contains("current-user") is False

    @pytest.mark.parametrize("phone, password", [("", "secret"), (ADMIN_PHONE, "")])
    def test_missing_credentials(self, auth, phone, password):
        with pytest.raises(ValidationError):
            auth.login(Session(), phone, password)

    def test_restore_after_login(self, auth):
        auth.login(Session(slot_key="current-user:42"), "+1987654321", "pw")
        restored = auth.restore_session("current-user:42")
        assert restored.current_user.name == "Manager User"

    def test_restore_empty_slot(self, auth):
        assert auth.restore_session("current-user:7").is_authenticated is False

    def test_logout_clears_slot(self, auth, store):
        session = Session()
        auth.login(session, ADMIN_PHONE, "pw")
        auth.logout(session)

        assert session.current_user is None
        assert store.kv.contains("current-user") is False
        assert auth.restore_session().is_authenticated is False

    def test_slots_are_independent(self, auth):
        a, b = Session(slot_key="current-user:1"), Session(slot_key="current-user:2")
        auth.login(a, ADMIN_PHONE, "pw")
        auth.login(b, "+1555123456", "pw")
        auth.logout(a)
        assert auth.restore_session("current-user:2").current_user.role == "staff"


class TestLoginAttempt:
    @pytest.mark.asyncio
    async def test_full_flow(self, auth, sms, clock):
        session = Session()
        attempt = _attempt(auth, sms, clock, session)

        attempt.set_phone("1234567890")
        code = await attempt.send_code()
        assert attempt.state is LoginState.CODE_SENT
        assert attempt.resend_wait() == 600

        attempt.verify(code)
        assert attempt.state is LoginState.VERIFIED

        user = attempt.complete("pw")
        assert user.role == "admin"
        assert attempt.state is LoginState.LOGGED_IN
        assert session.current_user == user

    def test_invalid_phone(self, auth, sms, clock):
        attempt = _attempt(auth, sms, clock, Session())
        with pytest.raises(ValidationError):
            attempt.set_phone("12345")

    @pytest.mark.asyncio
    async def test_wrong_code(self, auth, sms, clock):
        attempt = _attempt(auth, sms, clock, Session())
        attempt.set_phone(ADMIN_PHONE)
        code = await attempt.send_code()
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(AuthError):
            attempt.verify(wrong)
        assert attempt.state is LoginState.CODE_SENT

    @pytest.mark.asyncio
    async def test_blank_code(self, auth, sms, clock):
        attempt = _attempt(auth, sms, clock, Session())
        attempt.set_phone(ADMIN_PHONE)
        await attempt.send_code()
        with pytest.raises(ValidationError):
            attempt.verify("  ")

    def test_complete_requires_verification(self, auth, sms, clock):
        attempt = _attempt(auth, sms, clock, Session())
        attempt.set_phone(ADMIN_PHONE)
        with pytest.raises(AuthError):
            attempt.complete("pw")

    def test_skip_verification(self, auth, sms, clock):
        session = Session()
        attempt = _attempt(auth, sms, clock, session, require_verification=False)
        attempt.set_phone(ADMIN_PHONE)
        attempt.complete("pw")
        assert session.is_authenticated

    @pytest.mark.asyncio
    async def test_verified_but_unknown_user(self, auth, sms, clock):
        attempt = _attempt(auth, sms, clock, Session())
        attempt.set_phone("+1999999999")
        attempt.verify(await attempt.send_code())
        with pytest.raises(AuthError, match="Invalid phone number or password"):
            attempt.complete("pw")
