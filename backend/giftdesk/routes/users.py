# Overview: Flask API routes for the allow-list of users (administrators only).

from flask import Blueprint, current_app, request, g

from ..decorators import commit_state, require_admin, require_auth
from ..extensions import get_runtime
from ..records import coerce_admin_flag
from ..services.user_service import (
    UserNotFoundError,
    add_user,
    delete_user,
    toggle_admin,
)
from ..validation import require_object

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    return {"users": [u.to_dict() for u in g.state.users]}


@users_bp.post("")
@require_auth
@require_admin
def add_user_route():
    payload = require_object(request.get_json(silent=True))
    runtime = get_runtime()

    with runtime.guard.hold((g.access_token, "user-add")):
        state, user = add_user(
            runtime.store,
            g.state,
            payload.get("email"),
            payload.get("name"),
            coerce_admin_flag(payload.get("is_admin")),
            domain=current_app.config["CORPORATE_EMAIL_DOMAIN"],
        )
    commit_state(state)

    return {"user": user.to_dict()}, 201


@users_bp.delete("/<email>")
@require_auth
@require_admin
def delete_user_route(email: str):
    """Remove an address from the allow-list. Requires ?confirm=true."""
    confirmed = request.args.get("confirm", "").strip().lower() in ("1", "true", "yes")
    runtime = get_runtime()

    try:
        state = delete_user(
            runtime.store,
            g.state,
            email,
            confirmed=confirmed,
            protected_email=current_app.config["SEED_ADMIN_EMAIL"],
        )
    except UserNotFoundError:
        return {"error": "User not found"}, 404
    commit_state(state)

    return {"deleted": email.strip().lower()}


@users_bp.post("/<email>/toggle-admin")
@require_auth
@require_admin
def toggle_admin_route(email: str):
    runtime = get_runtime()

    try:
        state, user = toggle_admin(runtime.store, g.state, email)
    except UserNotFoundError:
        return {"error": "User not found"}, 404
    commit_state(state)

    return {"user": user.to_dict()}
