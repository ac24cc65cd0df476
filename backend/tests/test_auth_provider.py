"""
Auth providers: local one-time codes, purpose fallback, auth events, sessions.
"""

from datetime import timedelta

import pytest

from conftest import KIM_EMAIL
from giftdesk.extensions import db, get_runtime
from giftdesk.models import OtpCode, SessionToken
from giftdesk.services import session_service
from giftdesk.services.auth_provider import (
    SIGNED_IN,
    SIGNED_OUT,
    AuthError,
    AuthProvider,
    AuthSession,
    verify_with_fallback,
)
from giftdesk.services.table_store import RemoteError
from giftdesk.time_utils import utcnow


class PickyProvider(AuthProvider):
    """Accepts the code only under one purpose; records every attempt."""

    def __init__(self, accepted_purpose, error=AuthError):
        super().__init__()
        self.accepted_purpose = accepted_purpose
        self.error = error
        self.attempts = []

    def _verify(self, email, code, purpose):
        self.attempts.append(purpose)
        if purpose != self.accepted_purpose:
            raise self.error(f"{purpose} rejected")
        return AuthSession(email=email, access_token="tok")


class TestVerifyFallback:

    def test_walks_purposes_in_order(self):
        provider = PickyProvider("signup")
        session = verify_with_fallback(provider, KIM_EMAIL, "123456")

        assert session.access_token == "tok"
        assert provider.attempts == ["magiclink", "email", "signup"]

    def test_first_success_wins(self):
        provider = PickyProvider("magiclink")
        verify_with_fallback(provider, KIM_EMAIL, "123456")
        assert provider.attempts == ["magiclink"]

    def test_all_rejected(self):
        provider = PickyProvider("none")
        with pytest.raises(AuthError) as exc:
            verify_with_fallback(provider, KIM_EMAIL, "123456")
        assert str(exc.value) == "인증번호가 일치하지 않거나 만료되었습니다."

    def test_remote_errors_also_fall_through(self):
        provider = PickyProvider("email", error=RemoteError)
        session = verify_with_fallback(provider, KIM_EMAIL, "123456")
        assert session.email == KIM_EMAIL


class TestEvents:

    def test_subscribe_and_unsubscribe(self):
        provider = PickyProvider("email")
        events = []
        unsubscribe = provider.subscribe(lambda event, payload: events.append(event))

        provider.verify_otp(KIM_EMAIL, "1", "email")
        unsubscribe()
        provider.verify_otp(KIM_EMAIL, "1", "email")

        assert events == [SIGNED_IN]

    def test_failing_handler_does_not_break_verification(self):
        provider = PickyProvider("email")

        def broken(event, payload):
            raise RuntimeError("boom")

        provider.subscribe(broken)
        assert provider.verify_otp(KIM_EMAIL, "1", "email").access_token == "tok"


class TestLocalOtpProvider:

    def test_code_is_mailed_and_stored_hashed(self, app, mailer):
        get_runtime(app).auth.send_otp(" Kim@GSChargEV.co.kr")

        assert mailer.sent[-1][0] == KIM_EMAIL
        code = mailer.last_code(KIM_EMAIL)
        assert len(code) == 6 and code.isdigit()

        row = db.session.query(OtpCode).filter_by(email=KIM_EMAIL).one()
        assert row.code_hash != code
        assert row.purpose == "email"

    def test_verify_creates_session(self, app, mailer):
        auth = get_runtime(app).auth
        auth.send_otp(KIM_EMAIL)

        session = verify_with_fallback(auth, KIM_EMAIL, mailer.last_code(KIM_EMAIL))

        assert session.email == KIM_EMAIL
        assert auth.get_session(session.access_token).email == KIM_EMAIL
        stored = db.session.query(SessionToken).one()
        assert stored.token_hash == session_service.hash_token(session.access_token)

    def test_code_is_single_use(self, app, mailer):
        auth = get_runtime(app).auth
        auth.send_otp(KIM_EMAIL)
        code = mailer.last_code(KIM_EMAIL)

        verify_with_fallback(auth, KIM_EMAIL, code)
        with pytest.raises(AuthError):
            verify_with_fallback(auth, KIM_EMAIL, code)

    def test_wrong_code_rejected(self, app, mailer):
        auth = get_runtime(app).auth
        auth.send_otp(KIM_EMAIL)
        code = mailer.last_code(KIM_EMAIL)
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(AuthError):
            verify_with_fallback(auth, KIM_EMAIL, wrong)

    def test_new_code_supersedes_old(self, app, mailer):
        auth = get_runtime(app).auth
        auth.send_otp(KIM_EMAIL)
        first = mailer.last_code(KIM_EMAIL)
        auth.send_otp(KIM_EMAIL)
        second = mailer.last_code(KIM_EMAIL)

        if first != second:
            with pytest.raises(AuthError):
                verify_with_fallback(auth, KIM_EMAIL, first)
        assert verify_with_fallback(auth, KIM_EMAIL, second).email == KIM_EMAIL

    def test_expired_code_rejected(self, app, mailer):
        auth = get_runtime(app).auth
        auth.send_otp(KIM_EMAIL)
        row = db.session.query(OtpCode).filter_by(email=KIM_EMAIL).one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        with pytest.raises(AuthError):
            verify_with_fallback(auth, KIM_EMAIL, mailer.last_code(KIM_EMAIL))

    def test_sign_out_revokes_and_emits(self, app, mailer):
        auth = get_runtime(app).auth
        events = []
        unsubscribe = auth.subscribe(lambda event, payload: events.append((event, payload)))
        try:
            auth.send_otp(KIM_EMAIL)
            session = verify_with_fallback(auth, KIM_EMAIL, mailer.last_code(KIM_EMAIL))
            auth.sign_out(session.access_token)
        finally:
            unsubscribe()

        assert auth.get_session(session.access_token) is None
        assert (SIGNED_OUT, session.access_token) in events


class TestSessionService:

    def test_idle_session_is_revoked(self, app):
        session, token = session_service.create_session(KIM_EMAIL)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db.session.commit()

        assert session_service.validate_session(token) is None
        db.session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_expired_session_rejected(self, app):
        session, token = session_service.create_session(KIM_EMAIL)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_cleanup_removes_old_revoked(self, app):
        session, token = session_service.create_session(KIM_EMAIL)
        session_service.revoke_session(token)
        session.created_at = utcnow() - timedelta(days=31)
        db.session.commit()

        assert session_service.cleanup_expired_sessions() == 1
