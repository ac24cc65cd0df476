from __future__ import annotations

from ..extensions import db


class OtpCode(db.Model):
    """
    One-time sign-in codes issued by the local OTP provider.

    SECURITY NOTES:
    - Only a bcrypt hash of the code is stored
    - Codes expire after a short window and are single use
    - purpose records which verification flow the code was issued for
    """
    __tablename__ = "otp_codes"
    __table_args__ = (
        db.Index("ix_otp_codes_email_active", "email", "consumed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    purpose = db.Column(db.String(32), nullable=False, default="email")
    code_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    consumed_at = db.Column(db.DateTime(timezone=True), nullable=True)


class SessionToken(db.Model):
    """
    Bearer tokens handed out by the local provider after a verified code.

    Keyed by email, not by allow-list row: removing someone from the
    allow-list does not touch their token, the next bootstrap refuses it.

    SECURITY NOTES:
    - Only the SHA-256 digest is stored
    - Lifetimes live in services/session_service.py
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_email_active", "email", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)
