from __future__ import annotations

from ..extensions import db


class AllowedUser(db.Model):
    """
    Allow-list of employees permitted to sign in.

    WHY: The OTP provider will happily issue codes to any address; admission
    to the application is decided here. Rows are created by administrators
    only, never by self-registration.

    is_admin is stored as text-compatible boolean; legacy rows imported from
    spreadsheets carry "TRUE"/"true" and are normalized on read.
    """
    __tablename__ = "users"

    email = db.Column(db.String(255), primary_key=True)
    name = db.Column(db.String(128), nullable=False, default="")
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
