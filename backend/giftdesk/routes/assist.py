# Overview: Flask API routes for AI greeting drafts and gift suggestions.

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..extensions import get_runtime
from ..records import DEFAULT_HOLIDAY, HOLIDAYS
from ..services.access_service import visible_clients
from ..validation import require_choice, require_object

assist_bp = Blueprint("assist", __name__, url_prefix="/api/assist")


def _target():
    """Resolve (client, holiday) from the JSON body; client must be visible."""
    payload = require_object(request.get_json(silent=True))
    client_id = str(payload.get("client_id") or "").strip()
    if not client_id:
        return None, None, ({"error": "거래처를 선택해 주세요."}, 400)

    holiday = require_choice(payload.get("holiday"), HOLIDAYS, "holiday", default=DEFAULT_HOLIDAY)
    state = g.state
    client = next(
        (c for c in visible_clients(state.clients, state.current_user) if c.id == client_id),
        None,
    )
    if client is None:
        return None, None, ({"error": "Client not found"}, 404)
    return client, holiday, None


@assist_bp.post("/greeting")
@require_auth
def greeting_route():
    client, holiday, error = _target()
    if error:
        return error

    runtime = get_runtime()
    with runtime.guard.hold((g.access_token, "assist")):
        message = runtime.assistant.greeting(client, holiday)

    return {"client_id": client.id, "holiday": holiday, "message": message}


@assist_bp.post("/suggestion")
@require_auth
def suggestion_route():
    client, holiday, error = _target()
    if error:
        return error

    runtime = get_runtime()
    with runtime.guard.hold((g.access_token, "assist")):
        suggestions = runtime.assistant.suggest_gifts(client.category, holiday)

    return {
        "client_id": client.id,
        "category": client.category,
        "holiday": holiday,
        "suggestions": suggestions,
    }
