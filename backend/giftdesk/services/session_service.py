# Overview: Service-layer operations for bearer tokens issued by the local OTP provider.

"""
Local Session Tokens

Once a mailed code checks out, the local provider hands the browser an opaque
bearer token. Only its SHA-256 digest is stored; the token itself is random
with 256 bits of entropy so a fast hash is enough.

LIFETIME:
- hard expiry SESSION_ABSOLUTE_TIMEOUT after issue
- revoked after SESSION_IDLE_TIMEOUT without a request
- revoked on sign-out

A token only proves control of an email address. Admission to the gift desk
is the allow-list's job, checked at bootstrap.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..extensions import db
from ..models import SessionToken
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=12)
REVOKED_RETENTION = timedelta(days=30)


@dataclass(frozen=True)
class TokenGrant:
    """What a live token resolves to."""
    email: str
    expires_at: datetime


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_row(token: str):
    if not token:
        return None
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()


def _mark_revoked(row: SessionToken, reason: str) -> None:
    row.is_revoked = True
    row.revoked_at = utcnow()
    row.revoked_reason = reason


def create_session(email: str) -> tuple[SessionToken, str]:
    """Issue a token for `email`. Returns (row, token); only the row is persisted."""
    token = secrets.token_hex(32)
    issued = utcnow()

    row = SessionToken(
        email=email,
        token_hash=hash_token(token),
        created_at=issued,
        last_used_at=issued,
        expires_at=issued + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )
    db.session.add(row)
    db.session.commit()

    return row, token


def validate_session(token: str) -> TokenGrant | None:
    """
    Resolve a presented token, touching last_used_at.

    Unknown, revoked and expired tokens give None. A token idle for longer
    than SESSION_IDLE_TIMEOUT is revoked on the spot and also gives None.
    """
    row = _live_row(token)
    if row is None:
        return None

    now = utcnow()
    if row.expires_at < now:
        return None

    if now - row.last_used_at > SESSION_IDLE_TIMEOUT:
        _mark_revoked(row, "Idle timeout")
        db.session.commit()
        return None

    row.last_used_at = now
    db.session.commit()
    return TokenGrant(email=row.email, expires_at=row.expires_at)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token was unknown or already revoked."""
    row = _live_row(token)
    if row is None:
        return False

    _mark_revoked(row, reason)
    db.session.commit()
    return True


def cleanup_expired_sessions() -> int:
    """Delete dead tokens (expired or revoked) issued more than REVOKED_RETENTION ago."""
    now = utcnow()
    dead = db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True))

    deleted = db.session.query(SessionToken).filter(
        dead,
        SessionToken.created_at < now - REVOKED_RETENTION,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
