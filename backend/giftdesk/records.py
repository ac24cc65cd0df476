# Overview: Typed records for allow-listed users, clients, gift lines and catalog items.

# backend/giftdesk/records.py
"""
In-memory record types and their normalizers.

Rows arrive from the remote store as loosely typed dicts (snake_case columns,
legacy string booleans, missing columns on old rows). Every record type has a
from_row()/from_dict() that is total over its fields and applies named
defaults, so nothing past the store boundary has to guess at shapes.

Records are frozen; collections are tuples. Services build new values with
dataclasses.replace() instead of mutating cached state.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from typing import Any


CATEGORY_VIP = "A(VIP)"
CATEGORY_GENERAL = "B(일반)"
CATEGORY_PROSPECT = "C(잠재)"
CATEGORIES = (CATEGORY_VIP, CATEGORY_GENERAL, CATEGORY_PROSPECT)
DEFAULT_CATEGORY = CATEGORY_GENERAL

HOLIDAY_SEOLLAL = "설날"
HOLIDAY_CHUSEOK = "추석"
HOLIDAYS = (HOLIDAY_SEOLLAL, HOLIDAY_CHUSEOK)
DEFAULT_HOLIDAY = HOLIDAY_SEOLLAL

STATUS_PREPARING = "준비중"
STATUS_SHIPPED = "발송완료"
STATUS_IN_TRANSIT = "배송중"
STATUS_RECEIVED = "수령확인"
GIFT_STATUSES = (STATUS_PREPARING, STATUS_SHIPPED, STATUS_IN_TRANSIT, STATUS_RECEIVED)
DEFAULT_STATUS = STATUS_PREPARING

# Item name recorded when a gift line's catalog reference cannot be resolved
FALLBACK_ITEM_NAME = "기타"

_TRUE_LITERALS = ("TRUE", "true")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _number(value: Any, default: int | float = 0) -> int | float:
    """Coerce a currency/amount column; integral values stay ints."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        num = value
    else:
        try:
            num = float(str(value).strip())
        except ValueError:
            return default
    if isinstance(num, float) and not math.isfinite(num):
        return default
    if isinstance(num, float) and num.is_integer():
        return int(num)
    return num


def _int(value: Any, default: int) -> int:
    num = _number(value, default)
    try:
        return int(num)
    except (TypeError, ValueError, OverflowError):
        return default


def coerce_admin_flag(value: Any) -> bool:
    """Admin flag as stored by older sheets/imports: True, "TRUE" or "true"."""
    return value is True or value in _TRUE_LITERALS


def normalize_email(value: Any) -> str:
    return _text(value).strip().lower()


def new_record_id() -> str:
    """Opaque unique id for clients, gift lines and catalog items."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class User:
    email: str
    name: str
    is_admin: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "User":
        return cls(
            email=normalize_email(row.get("email")),
            name=_text(row.get("name")).strip(),
            is_admin=coerce_admin_flag(row.get("is_admin")),
        )

    def to_row(self) -> dict:
        return {"email": self.email, "name": self.name, "is_admin": self.is_admin}

    def to_dict(self) -> dict:
        return self.to_row()


@dataclass(frozen=True)
class GiftCatalogItem:
    id: str
    name: str
    unit_price: int | float
    target_category: str

    @classmethod
    def from_row(cls, row: dict) -> "GiftCatalogItem":
        return cls(
            id=_text(row.get("id")),
            name=_text(row.get("name")),
            unit_price=_number(row.get("unit_price")),
            target_category=_text(row.get("target_category")) or DEFAULT_CATEGORY,
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit_price": self.unit_price,
            "target_category": self.target_category,
        }

    def to_dict(self) -> dict:
        return self.to_row()


@dataclass(frozen=True)
class GiftRecord:
    """
    One gift shipment line embedded in a client row.

    item_name and price are a snapshot taken when the line was saved; they do
    not follow later catalog edits or deletions.
    """
    id: str
    year: int
    holiday: str = DEFAULT_HOLIDAY
    catalog_item_id: str = ""
    item_name: str = FALLBACK_ITEM_NAME
    quantity: int = 1
    price: int | float = 0
    status: str = DEFAULT_STATUS
    note: str | None = None

    @classmethod
    def from_dict(cls, data: dict, *, default_year: int = 0) -> "GiftRecord":
        # Embedded lines have been written with camelCase keys by the web
        # client; accept both spellings.
        def pick(snake: str, camel: str):
            if snake in data:
                return data.get(snake)
            return data.get(camel)

        note = data.get("note")
        return cls(
            id=_text(data.get("id")),
            year=_int(data.get("year"), default_year),
            holiday=_text(data.get("holiday")) or DEFAULT_HOLIDAY,
            catalog_item_id=_text(pick("catalog_item_id", "catalogItemId")),
            item_name=_text(pick("item_name", "itemName")) or FALLBACK_ITEM_NAME,
            quantity=_int(data.get("quantity"), 1),
            price=_number(data.get("price")),
            status=_text(data.get("status")) or DEFAULT_STATUS,
            note=None if note is None else _text(note),
        )

    def to_row(self) -> dict:
        """Wire shape inside clients.gift_history (camelCase, as stored)."""
        row = {
            "id": self.id,
            "year": self.year,
            "holiday": self.holiday,
            "catalogItemId": self.catalog_item_id,
            "itemName": self.item_name,
            "quantity": self.quantity,
            "price": self.price,
            "status": self.status,
        }
        if self.note is not None:
            row["note"] = self.note
        return row

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "year": self.year,
            "holiday": self.holiday,
            "catalog_item_id": self.catalog_item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "price": self.price,
            "status": self.status,
            "note": self.note,
        }


@dataclass(frozen=True)
class Client:
    id: str
    name: str = ""
    company: str = ""
    position: str = ""
    phone: str = ""
    postcode: str = ""
    address: str = ""
    address_detail: str = ""
    category: str = DEFAULT_CATEGORY
    registered_by: str = ""
    registered_email: str = ""
    gift_history: tuple[GiftRecord, ...] = ()

    @classmethod
    def from_row(cls, row: dict) -> "Client":
        history = row.get("gift_history") or []
        return cls(
            id=_text(row.get("id")),
            name=_text(row.get("name")),
            company=_text(row.get("company")),
            position=_text(row.get("position")),
            phone=_text(row.get("phone")),
            postcode=_text(row.get("postcode")),
            address=_text(row.get("address")),
            address_detail=_text(row.get("address_detail")),
            category=_text(row.get("category")) or DEFAULT_CATEGORY,
            registered_by=_text(row.get("registered_by")),
            registered_email=normalize_email(row.get("registered_email")),
            gift_history=tuple(
                GiftRecord.from_dict(item) for item in history if isinstance(item, dict)
            ),
        )

    @property
    def gift_count(self) -> int:
        return len(self.gift_history)

    @property
    def gift_total(self) -> int | float:
        return sum(record.price for record in self.gift_history)

    def mutable_row(self) -> dict:
        """Columns an edit is allowed to overwrite (never id or the registrant stamp)."""
        return {
            "name": self.name,
            "company": self.company,
            "position": self.position,
            "phone": self.phone,
            "postcode": self.postcode,
            "address": self.address,
            "address_detail": self.address_detail,
            "category": self.category,
            "gift_history": [record.to_row() for record in self.gift_history],
        }

    def to_row(self) -> dict:
        row = {"id": self.id}
        row.update(self.mutable_row())
        row["registered_by"] = self.registered_by
        row["registered_email"] = self.registered_email
        return row

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "position": self.position,
            "phone": self.phone,
            "postcode": self.postcode,
            "address": self.address,
            "address_detail": self.address_detail,
            "category": self.category,
            "registered_by": self.registered_by,
            "registered_email": self.registered_email,
            "gift_history": [record.to_dict() for record in self.gift_history],
        }


@dataclass(frozen=True)
class DashboardStats:
    total_clients: int = 0
    total_gifts: int = 0
    total_budget: int | float = 0
    # Keyed by registrant display name; counted over every client, not just
    # the visible ones.
    user_stats: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_clients": self.total_clients,
            "total_gifts": self.total_gifts,
            "total_budget": self.total_budget,
            "user_stats": dict(self.user_stats),
        }


@dataclass(frozen=True)
class AppState:
    """
    Everything a signed-in session works against.

    loading stays True only while a bootstrap is running; a bootstrap that
    hits its deadline hands back loading=False with whatever it had.
    """
    current_user: User | None = None
    users: tuple[User, ...] = ()
    clients: tuple[Client, ...] = ()
    catalog: tuple[GiftCatalogItem, ...] = ()
    loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.is_admin

    def find_client(self, client_id: str) -> Client | None:
        return next((c for c in self.clients if c.id == client_id), None)

    def find_item(self, item_id: str) -> GiftCatalogItem | None:
        return next((i for i in self.catalog if i.id == item_id), None)

    def find_user(self, email: str) -> User | None:
        wanted = normalize_email(email)
        return next((u for u in self.users if u.email == wanted), None)

    def summary(self) -> dict:
        return {
            "user": self.current_user.to_dict() if self.current_user else None,
            "is_admin": self.is_admin,
            "loading": self.loading,
            "user_count": len(self.users),
            "client_count": len(self.clients),
            "catalog_count": len(self.catalog),
        }
