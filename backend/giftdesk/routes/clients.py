# Overview: Flask API routes for client contacts, their gift line and the CSV export.

# backend/giftdesk/routes/clients.py
"""
Client routes.

VISIBILITY: every route works on the caller's visible set (all clients for
administrators, own registrations for everyone else). A client outside that
set answers 404 exactly like a missing one.

Writes go to the store first; the session's cached state is replaced only
after the store accepted them.
"""
from flask import Blueprint, Response, request, g

from ..decorators import commit_state, require_auth
from ..extensions import get_runtime
from ..services.access_service import search_clients, visible_clients
from ..services.client_service import (
    ClientDraft,
    ClientNotFoundError,
    delete_client,
    save_client,
)
from ..services.export_service import export_csv_bytes, export_filename
from ..validation import require_object

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def _confirmed() -> bool:
    return request.args.get("confirm", "").strip().lower() in ("1", "true", "yes")


def _visible_searched():
    state = g.state
    return search_clients(visible_clients(state.clients, state.current_user), request.args.get("q"))


@clients_bp.get("")
@require_auth
def list_clients_route():
    """
    List visible clients, newest first.

    Query params:
    - q: str (optional) - substring of name, company, position or registrant
    """
    clients = _visible_searched()
    return {"clients": [c.to_dict() for c in clients], "count": len(clients)}


@clients_bp.post("")
@require_auth
def create_client_route():
    payload = require_object(request.get_json(silent=True))
    draft = ClientDraft.from_payload(payload)
    runtime = get_runtime()

    with runtime.guard.hold((g.access_token, "client-save")):
        state, created = save_client(runtime.store, g.state, draft)
    commit_state(state)

    return {"client": created.to_dict()}, 201


@clients_bp.put("/<client_id>")
@require_auth
def update_client_route(client_id: str):
    payload = require_object(request.get_json(silent=True))
    draft = ClientDraft.from_payload(payload, client_id=client_id)
    runtime = get_runtime()

    try:
        with runtime.guard.hold((g.access_token, "client-save")):
            state, updated = save_client(runtime.store, g.state, draft)
    except ClientNotFoundError:
        return {"error": "Client not found"}, 404
    commit_state(state)

    return {"client": updated.to_dict()}


@clients_bp.delete("/<client_id>")
@require_auth
def delete_client_route(client_id: str):
    """Delete a client. Requires ?confirm=true."""
    runtime = get_runtime()

    try:
        with runtime.guard.hold((g.access_token, "client-delete")):
            state = delete_client(runtime.store, g.state, client_id, confirmed=_confirmed())
    except ClientNotFoundError:
        return {"error": "Client not found"}, 404
    commit_state(state)

    return {"deleted": client_id}


@clients_bp.get("/export")
@require_auth
def export_clients_route():
    """CSV of every gift line across the visible, searched clients."""
    body = export_csv_bytes(_visible_searched())
    filename = export_filename()
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
