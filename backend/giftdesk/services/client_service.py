# Overview: Client Record Manager; saves and deletes client contacts with their gift line.

"""
Client Record Manager

save_client() and delete_client() take the session's AppState and return a
new one. The remote write happens first; the returned state only differs from
the input after the store confirmed the write. On any error the caller's
state is untouched.

GIFT LINE SNAPSHOT: before either save path the gift line is materialized
from the live catalog: item name and price = unit_price x quantity are copied
into the line and never follow later catalog edits or deletions.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from ..records import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_HOLIDAY,
    DEFAULT_STATUS,
    FALLBACK_ITEM_NAME,
    GIFT_STATUSES,
    HOLIDAYS,
    AppState,
    Client,
    GiftCatalogItem,
    GiftRecord,
    new_record_id,
)
from ..time_utils import current_year
from ..validation import (
    ValidationError,
    parse_quantity,
    require_choice,
    require_confirmation,
    require_object,
    require_text,
)
from .access_service import AccessDeniedError, can_modify, items_for_category
from .table_store import TableStore


CLIENTS_TABLE = "clients"

ADDRESS_REQUIRED_MESSAGE = "주소 검색을 통해 주소를 입력해 주세요."
DELETE_CONFIRM_MESSAGE = "정말로 삭제하시겠습니까?"


class ClientNotFoundError(LookupError):
    """No such client in the caller's visible set."""


@dataclass(frozen=True)
class GiftDraft:
    id: str | None = None
    year: Any = None
    holiday: str | None = None
    catalog_item_id: str = ""
    quantity: Any = 1
    status: str | None = None
    note: str | None = None

    @classmethod
    def from_payload(cls, payload: dict | None) -> "GiftDraft":
        payload = require_object(payload, "gift")
        return cls(
            id=payload.get("id") or None,
            year=payload.get("year"),
            holiday=payload.get("holiday"),
            catalog_item_id=str(payload.get("catalog_item_id") or ""),
            quantity=payload.get("quantity", 1),
            status=payload.get("status"),
            note=payload.get("note"),
        )


@dataclass(frozen=True)
class ClientDraft:
    """Form contents for a create (id=None) or an edit of an existing client."""
    id: str | None = None
    name: str = ""
    company: str = ""
    position: str = ""
    phone: str = ""
    postcode: str = ""
    address: str = ""
    address_detail: str = ""
    category: str = DEFAULT_CATEGORY
    gift: GiftDraft = GiftDraft()

    @classmethod
    def from_payload(cls, payload: dict, client_id: str | None = None) -> "ClientDraft":
        payload = require_object(payload)

        def text(key: str) -> str:
            value = payload.get(key)
            return "" if value is None else str(value).strip()

        return cls(
            id=client_id,
            name=text("name"),
            company=text("company"),
            position=text("position"),
            phone=text("phone"),
            postcode=text("postcode"),
            address=text("address"),
            address_detail=text("address_detail"),
            category=text("category") or DEFAULT_CATEGORY,
            gift=GiftDraft.from_payload(payload.get("gift")),
        )


def _parse_year(value: Any) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return current_year()
    try:
        year = int(str(value).strip())
    except ValueError:
        raise ValidationError("year must be a whole number")
    if year < 1900 or year > 9999:
        raise ValidationError("year is out of range")
    return year


def materialize_gift_line(
    draft: GiftDraft,
    catalog: tuple[GiftCatalogItem, ...],
    category: str,
    *,
    existing: GiftRecord | None = None,
) -> GiftRecord:
    """
    Build the gift line to store.

    The catalog item is looked up among items for the client's category only;
    an item for another tier or one that no longer exists is deselected and
    the line is recorded as FALLBACK_ITEM_NAME at price 0.
    """
    quantity = parse_quantity(draft.quantity)
    selected = None
    if draft.catalog_item_id:
        selected = next(
            (i for i in items_for_category(catalog, category) if i.id == draft.catalog_item_id),
            None,
        )

    unit_price = selected.unit_price if selected else 0
    note = draft.note
    if note is not None:
        note = str(note)

    return GiftRecord(
        id=draft.id or (existing.id if existing else new_record_id()),
        year=_parse_year(draft.year),
        holiday=require_choice(draft.holiday, HOLIDAYS, "holiday", default=DEFAULT_HOLIDAY),
        catalog_item_id=selected.id if selected else "",
        item_name=selected.name if selected else FALLBACK_ITEM_NAME,
        quantity=quantity,
        price=unit_price * quantity,
        status=require_choice(draft.status, GIFT_STATUSES, "status", default=DEFAULT_STATUS),
        note=note,
    )


def _validate(draft: ClientDraft) -> str:
    if not draft.postcode or not draft.address:
        raise ValidationError(ADDRESS_REQUIRED_MESSAGE)
    require_text(draft.company, "업체명을 입력해 주세요.")
    require_text(draft.name, "성함을 입력해 주세요.")
    return require_choice(draft.category, CATEGORIES, "category", default=DEFAULT_CATEGORY)


def save_client(store: TableStore, state: AppState, draft: ClientDraft) -> tuple[AppState, Client]:
    """
    Create or update a client and its single current gift line.

    Create: mints an id, stamps registered_by/registered_email from the
    current identity, inserts, and prepends (newest first).
    Update: writes every mutable column keyed by id and replaces by id.

    Raises:
        ValidationError: missing address/postcode or bad field values
        ClientNotFoundError: edit target not visible to the identity
        RemoteError: the store rejected the write (state unchanged)
    """
    identity = state.current_user
    if identity is None:
        raise AccessDeniedError("로그인이 필요합니다.")

    category = _validate(draft)

    if draft.id:
        existing = state.find_client(draft.id)
        if existing is None or not can_modify(identity, existing):
            raise ClientNotFoundError("Client not found")

        gift = materialize_gift_line(
            draft.gift,
            state.catalog,
            category,
            existing=existing.gift_history[0] if existing.gift_history else None,
        )
        updated = replace(
            existing,
            name=draft.name,
            company=draft.company,
            position=draft.position,
            phone=draft.phone,
            postcode=draft.postcode,
            address=draft.address,
            address_detail=draft.address_detail,
            category=category,
            gift_history=(gift,),
        )
        store.update(CLIENTS_TABLE, updated.mutable_row(), {"id": updated.id})
        clients = tuple(updated if c.id == updated.id else c for c in state.clients)
        return replace(state, clients=clients), updated

    gift = materialize_gift_line(draft.gift, state.catalog, category)
    created = Client(
        id=new_record_id(),
        name=draft.name,
        company=draft.company,
        position=draft.position,
        phone=draft.phone,
        postcode=draft.postcode,
        address=draft.address,
        address_detail=draft.address_detail,
        category=category,
        registered_by=identity.name,
        registered_email=identity.email,
        gift_history=(gift,),
    )
    store.insert(CLIENTS_TABLE, [created.to_row()])
    return replace(state, clients=(created,) + state.clients), created


def delete_client(store: TableStore, state: AppState, client_id: str, *, confirmed: bool) -> AppState:
    """Remove a client the identity owns (or any client, for admins)."""
    require_confirmation(confirmed, DELETE_CONFIRM_MESSAGE)

    existing = state.find_client(client_id)
    if existing is None or not can_modify(state.current_user, existing):
        raise ClientNotFoundError("Client not found")

    store.delete(CLIENTS_TABLE, {"id": client_id})
    return replace(state, clients=tuple(c for c in state.clients if c.id != client_id))
