# Overview: One-time-code email authentication providers (hosted and local).

"""
Auth Provider

Surface used by the application:
- send_otp(email)                       -> mails a numeric one-time code
- verify_otp(email, code, purpose)      -> AuthSession (emits SIGNED_IN)
- get_session(access_token)             -> AuthSession | None
- sign_out(access_token)                -> emits SIGNED_OUT
- subscribe(handler)                    -> unsubscribe callable

Providers only prove control of an email address. Admission is decided by the
allow-list during bootstrap.

The hosted provider has been observed to accept a freshly issued code under
different verification purposes depending on whether the address already had
an account, so verify_with_fallback() walks VERIFY_PURPOSES in order.
"""
from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import bcrypt
import httpx

from ..extensions import db
from ..models import OtpCode
from ..records import normalize_email
from ..time_utils import utcnow
from . import session_service
from .table_store import RemoteError


logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

# Tried in this order until one verification succeeds
VERIFY_PURPOSES = ("magiclink", "email", "signup")

OTP_LENGTH = 6
OTP_TTL = timedelta(minutes=10)
OTP_HASH_ROUNDS = 10
LOCAL_OTP_PURPOSE = "email"


class AuthError(Exception):
    """The provider rejected a code or credential."""


@dataclass(frozen=True)
class AuthSession:
    email: str
    access_token: str
    expires_at: datetime | None = None


AuthHandler = Callable[[str, "AuthSession | str | None"], None]


class AuthProvider:
    """
    Base provider: keeps the auth-event subscribers and emits SIGNED_IN /
    SIGNED_OUT around the backend-specific _verify/_sign_out.
    """

    name = "abstract"

    def __init__(self):
        self._handlers: list[AuthHandler] = []
        self._handlers_lock = threading.Lock()

    def subscribe(self, handler: AuthHandler) -> Callable[[], None]:
        with self._handlers_lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._handlers_lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def _emit(self, event: str, payload) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event, payload)
            except Exception:
                logger.exception("Auth event handler failed for %s", event)

    def send_otp(self, email: str) -> None:
        raise NotImplementedError

    def get_session(self, access_token: str) -> AuthSession | None:
        raise NotImplementedError

    def verify_otp(self, email: str, code: str, purpose: str) -> AuthSession:
        session = self._verify(normalize_email(email), str(code or "").strip(), purpose)
        self._emit(SIGNED_IN, session)
        return session

    def sign_out(self, access_token: str) -> None:
        self._sign_out(access_token)
        self._emit(SIGNED_OUT, access_token)

    def _verify(self, email: str, code: str, purpose: str) -> AuthSession:
        raise NotImplementedError

    def _sign_out(self, access_token: str) -> None:
        raise NotImplementedError


def verify_with_fallback(
    provider: AuthProvider,
    email: str,
    code: str,
    purposes: tuple[str, ...] = VERIFY_PURPOSES,
) -> AuthSession:
    """
    Verify a code against each purpose in order; first success wins.

    Raises AuthError if every purpose is rejected.
    """
    last_error: Exception | None = None
    for purpose in purposes:
        try:
            return provider.verify_otp(email, code, purpose)
        except (AuthError, RemoteError) as e:
            logger.info("OTP verification as %s failed for %s: %s", purpose, email, e)
            last_error = e
    raise AuthError("인증번호가 일치하지 않거나 만료되었습니다.") from last_error


def _log_mailer(email: str, code: str) -> None:
    logger.warning("Local OTP provider: sign-in code for %s is %s", email, code)


class LocalOtpProvider(AuthProvider):
    """
    Self-hosted provider for development and deployments without the hosted
    auth service. Codes are issued for the "email" purpose only; session
    tokens come from session_service.

    Requires an application context (uses db.session).
    """

    name = "local"

    def __init__(self, mailer: Callable[[str, str], None] | None = None):
        super().__init__()
        self._mailer = mailer or _log_mailer

    def send_otp(self, email: str) -> None:
        email = normalize_email(email)
        code = f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"
        now = utcnow()

        # A new code supersedes any outstanding one
        db.session.query(OtpCode).filter(
            OtpCode.email == email,
            OtpCode.consumed_at.is_(None),
        ).update({"consumed_at": now}, synchronize_session=False)

        db.session.add(OtpCode(
            email=email,
            purpose=LOCAL_OTP_PURPOSE,
            code_hash=bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt(rounds=OTP_HASH_ROUNDS)).decode("utf-8"),
            created_at=now,
            expires_at=now + OTP_TTL,
        ))
        db.session.commit()

        self._mailer(email, code)

    def _verify(self, email: str, code: str, purpose: str) -> AuthSession:
        now = utcnow()
        pending = db.session.query(OtpCode).filter(
            OtpCode.email == email,
            OtpCode.purpose == purpose,
            OtpCode.consumed_at.is_(None),
            OtpCode.expires_at > now,
        ).order_by(OtpCode.id.desc()).first()

        if pending is None:
            raise AuthError("Token has expired or is invalid")

        try:
            matches = bcrypt.checkpw(code.encode("utf-8"), pending.code_hash.encode("utf-8"))
        except ValueError:
            matches = False
        if not matches:
            raise AuthError("Token has expired or is invalid")

        pending.consumed_at = now
        db.session.commit()

        session, token = session_service.create_session(email)
        return AuthSession(email=email, access_token=token, expires_at=session.expires_at)

    def get_session(self, access_token: str) -> AuthSession | None:
        context = session_service.validate_session(access_token)
        if context is None:
            return None
        return AuthSession(email=context.email, access_token=access_token, expires_at=context.expires_at)

    def _sign_out(self, access_token: str) -> None:
        session_service.revoke_session(access_token, reason="User logout")


class SupabaseAuthProvider(AuthProvider):
    """
    Hosted email OTP through supabase-py.

    A fresh non-persisting client is built per call: the library keeps the
    signed-in session on the client object, which must not leak between
    requests served by the same process.
    """

    name = "supabase"

    def __init__(self, client_factory: Callable[[], object]):
        super().__init__()
        self._client_factory = client_factory

    def _call(self, action: str, fn):
        from supabase import AuthError as SupabaseAuthError

        try:
            return fn(self._client_factory())
        except SupabaseAuthError as e:
            raise AuthError(getattr(e, "message", None) or str(e)) from e
        except httpx.HTTPError as e:
            logger.error("Auth provider %s failed: %s", action, e)
            raise RemoteError(str(e)) from e

    def send_otp(self, email: str) -> None:
        email = normalize_email(email)
        self._call("send_otp", lambda c: c.auth.sign_in_with_otp({
            "email": email,
            "options": {"should_create_user": True},
        }))

    def _verify(self, email: str, code: str, purpose: str) -> AuthSession:
        resp = self._call("verify_otp", lambda c: c.auth.verify_otp({
            "email": email,
            "token": code,
            "type": purpose,
        }))
        session = getattr(resp, "session", None)
        if session is None or not session.access_token:
            raise AuthError("Verification returned no session")

        user = getattr(resp, "user", None)
        verified_email = normalize_email(getattr(user, "email", None) or email)
        expires_at = None
        if getattr(session, "expires_at", None):
            expires_at = datetime.fromtimestamp(session.expires_at, timezone.utc).replace(tzinfo=None)
        return AuthSession(email=verified_email, access_token=session.access_token, expires_at=expires_at)

    def get_session(self, access_token: str) -> AuthSession | None:
        if not access_token:
            return None
        try:
            resp = self._call("get_user", lambda c: c.auth.get_user(access_token))
        except AuthError:
            return None
        user = getattr(resp, "user", None)
        if user is None or not user.email:
            return None
        return AuthSession(email=normalize_email(user.email), access_token=access_token)

    def _sign_out(self, access_token: str) -> None:
        self._call("sign_out", lambda c: c.auth.admin.sign_out(access_token))


def create_auth_provider(app) -> AuthProvider:
    """Build the provider named by AUTH_BACKEND."""
    backend = app.config.get("AUTH_BACKEND", "local")

    if backend == "supabase":
        from supabase import create_client
        from supabase import ClientOptions

        url = app.config.get("SUPABASE_URL")
        key = app.config.get("SUPABASE_KEY")
        if not url or not key:
            raise RuntimeError("AUTH_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY")

        def factory():
            return create_client(url, key, options=ClientOptions(
                persist_session=False,
                auto_refresh_token=False,
            ))

        return SupabaseAuthProvider(factory)

    if backend == "local":
        return LocalOtpProvider(mailer=app.config.get("OTP_MAILER"))

    raise RuntimeError(f"Unknown AUTH_BACKEND: {backend}")
