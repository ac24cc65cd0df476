# Overview: Catalog Manager; administrator edits to the gift item catalog.

"""
Catalog Manager

All mutations are administrator-only and take/return an AppState.

Editing or deleting an item never touches gift lines that already reference
it: their item name and price are snapshots taken at save time.
"""
from __future__ import annotations

from dataclasses import replace

from ..records import CATEGORIES, AppState, GiftCatalogItem, new_record_id
from ..validation import (
    ValidationError,
    parse_non_negative_number,
    require_choice,
    require_confirmation,
)
from .access_service import require_admin
from .concurrency import run_with_deadline
from .table_store import TableStore


CATALOG_TABLE = "catalog"
DEFAULT_INSERT_TIMEOUT = 8.0

ITEM_INPUT_MESSAGE = "품목명과 가격을 정확히 입력해 주세요."
DELETE_CONFIRM_MESSAGE = "정말로 이 품목을 삭제하시겠습니까?"


class CatalogItemNotFoundError(LookupError):
    pass


def add_item(
    store: TableStore,
    state: AppState,
    name,
    unit_price,
    target_category,
    *,
    timeout: float = DEFAULT_INSERT_TIMEOUT,
) -> tuple[AppState, GiftCatalogItem]:
    """
    Validate and insert a catalog item, then append it to the state.

    The insert is raced against `timeout`; on expiry RemoteTimeoutError is
    raised and the state is left as it was (the row may still land remotely
    and will show up on the next bootstrap).
    """
    require_admin(state.current_user)

    clean_name = "" if name is None else str(name).strip()
    price = parse_non_negative_number(unit_price)
    if not clean_name or price is None:
        raise ValidationError(ITEM_INPUT_MESSAGE)
    category = require_choice(target_category, CATEGORIES, "target_category")

    item = GiftCatalogItem(
        id=new_record_id(),
        name=clean_name,
        unit_price=price,
        target_category=category,
    )
    run_with_deadline(
        lambda: store.insert(CATALOG_TABLE, [item.to_row()]),
        timeout,
        what="catalog insert",
    )
    return replace(state, catalog=state.catalog + (item,)), item


def update_price(store: TableStore, state: AppState, item_id: str, new_price) -> AppState:
    """
    Set an item's unit price.

    Unparsable or negative input is ignored: no remote call, state returned
    unchanged.
    """
    require_admin(state.current_user)

    price = parse_non_negative_number(new_price)
    if price is None:
        return state

    if state.find_item(item_id) is None:
        raise CatalogItemNotFoundError("Catalog item not found")

    store.update(CATALOG_TABLE, {"unit_price": price}, {"id": item_id})
    catalog = tuple(
        replace(i, unit_price=price) if i.id == item_id else i for i in state.catalog
    )
    return replace(state, catalog=catalog)


def remove_item(store: TableStore, state: AppState, item_id: str, *, confirmed: bool) -> AppState:
    require_admin(state.current_user)
    require_confirmation(confirmed, DELETE_CONFIRM_MESSAGE)

    if state.find_item(item_id) is None:
        raise CatalogItemNotFoundError("Catalog item not found")

    store.delete(CATALOG_TABLE, {"id": item_id})
    return replace(state, catalog=tuple(i for i in state.catalog if i.id != item_id))
