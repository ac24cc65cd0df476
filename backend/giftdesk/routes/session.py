# Overview: Flask API routes for the signed-in session's state and the dashboard.

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..extensions import get_runtime
from ..services.access_service import (
    compute_stats,
    ranked_user_stats,
    recent_gifts,
    visible_clients,
)

session_bp = Blueprint("session", __name__, url_prefix="/api")


@session_bp.get("/session")
@require_auth
def session_route():
    """Identity, role and cached collection sizes for the caller."""
    return g.state.summary()


@session_bp.post("/session/refresh")
@require_auth
def refresh_route():
    """Re-run the bootstrap for this session (same as reloading the app)."""
    state = get_runtime().bootstrap.refresh(g.auth_session)
    if not state.is_authenticated:
        return {"error": "시스템에 등록되지 않은 사용자입니다."}, 401
    return state.summary()


@session_bp.get("/dashboard")
@require_auth
def dashboard_route():
    """
    Dashboard figures.

    Query params:
    - limit: int (optional) - recent gift lines to include (default 10)
    """
    limit = request.args.get("limit", default=10, type=int)
    if limit is None or limit < 0:
        limit = 10

    state = g.state
    visible = visible_clients(state.clients, state.current_user)
    stats = compute_stats(state.clients, state.current_user)
    ranked = ranked_user_stats(stats)
    top = max((count for _, count in ranked), default=0)

    recent = []
    for client, record in recent_gifts(visible, limit=limit):
        row = record.to_dict()
        row["client_id"] = client.id
        row["company"] = client.company
        row["client_name"] = client.name
        # Registrant is only shown to administrators
        if state.is_admin:
            row["registered_by"] = client.registered_by
        recent.append(row)

    return {
        "stats": stats.to_dict(),
        "participants": len(stats.user_stats),
        "ranking": [
            {
                "name": name,
                "count": count,
                "share": round(count / top * 100, 1) if top else 0,
            }
            for name, count in ranked
        ],
        "recent_gifts": recent,
    }
