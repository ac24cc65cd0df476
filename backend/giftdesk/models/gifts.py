from __future__ import annotations

from ..extensions import db


class ClientRow(db.Model):
    """
    Gift recipient contact with its embedded gift lines.

    OWNERSHIP: registered_email is the row-level visibility key; non-admin
    employees only ever see rows they registered.

    gift_history is an ordered JSON list of gift line objects. Each line keeps
    a snapshot of the catalog item name and computed price at save time.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_registered_email", "registered_email"),
        db.Index("ix_clients_created_at", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(128), nullable=False, default="")
    company = db.Column(db.String(255), nullable=False, default="")
    position = db.Column(db.String(128), nullable=False, default="")
    phone = db.Column(db.String(64), nullable=False, default="")
    postcode = db.Column(db.String(16), nullable=False, default="")
    address = db.Column(db.String(512), nullable=False, default="")
    address_detail = db.Column(db.String(512), nullable=False, default="")
    category = db.Column(db.String(32), nullable=False, default="B(일반)")
    registered_by = db.Column(db.String(128), nullable=False, default="")
    registered_email = db.Column(db.String(255), nullable=False, default="")
    gift_history = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class CatalogItemRow(db.Model):
    """Gift SKU scoped to exactly one client tier (target_category)."""
    __tablename__ = "catalog"
    __table_args__ = (
        db.Index("ix_catalog_target_category", "target_category"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit_price = db.Column(db.Numeric(14, 2, asdecimal=False), nullable=False, default=0)
    target_category = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
