# Overview: Flask API routes for the gift item catalog.

from flask import Blueprint, current_app, request, g

from ..decorators import commit_state, require_admin, require_auth
from ..extensions import get_runtime
from ..records import CATEGORIES
from ..services.access_service import catalog_by_category, items_for_category
from ..services.catalog_service import (
    CatalogItemNotFoundError,
    add_item,
    remove_item,
    update_price,
)
from ..validation import require_object

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("")
@require_auth
def list_catalog_route():
    """
    Catalog items bucketed by target category.

    Query params:
    - category: str (optional) - only items for this tier
    """
    catalog = g.state.catalog
    category = request.args.get("category")
    if category:
        if category not in CATEGORIES:
            return {"error": f"category must be one of: {', '.join(CATEGORIES)}"}, 400
        return {"category": category, "items": [i.to_dict() for i in items_for_category(catalog, category)]}

    return {
        "items": [i.to_dict() for i in catalog],
        "by_category": {
            name: [i.to_dict() for i in items]
            for name, items in catalog_by_category(catalog).items()
        },
    }


@catalog_bp.post("")
@require_auth
@require_admin
def add_catalog_item_route():
    payload = require_object(request.get_json(silent=True))
    runtime = get_runtime()

    with runtime.guard.hold((g.access_token, "catalog-add")):
        state, item = add_item(
            runtime.store,
            g.state,
            payload.get("name"),
            payload.get("unit_price"),
            payload.get("target_category"),
            timeout=current_app.config["CATALOG_INSERT_TIMEOUT_SECONDS"],
        )
    commit_state(state)

    return {"item": item.to_dict(), "message": "품목이 성공적으로 등록되었습니다."}, 201


@catalog_bp.patch("/<item_id>")
@require_auth
@require_admin
def update_catalog_price_route(item_id: str):
    """Update unit price. Invalid prices are ignored (item returned unchanged)."""
    payload = require_object(request.get_json(silent=True))
    runtime = get_runtime()

    try:
        state = update_price(runtime.store, g.state, item_id, payload.get("unit_price"))
    except CatalogItemNotFoundError:
        return {"error": "Catalog item not found"}, 404
    if state is not g.state:
        commit_state(state)

    item = g.state.find_item(item_id)
    if item is None:
        return {"error": "Catalog item not found"}, 404
    return {"item": item.to_dict()}


@catalog_bp.delete("/<item_id>")
@require_auth
@require_admin
def delete_catalog_item_route(item_id: str):
    """Remove an item. Requires ?confirm=true. Existing gift lines keep their snapshot."""
    confirmed = request.args.get("confirm", "").strip().lower() in ("1", "true", "yes")
    runtime = get_runtime()

    try:
        state = remove_item(runtime.store, g.state, item_id, confirmed=confirmed)
    except CatalogItemNotFoundError:
        return {"error": "Catalog item not found"}, 404
    commit_state(state)

    return {"deleted": item_id}
