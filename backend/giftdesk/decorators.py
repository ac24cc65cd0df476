# Overview: Request decorators for API routes (bearer-token session and admin checks).

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import get_runtime
from .services.table_store import RemoteError


def require_auth(f):
    """
    Require a signed-in, allow-listed session.

    Sets the following Flask g attributes:
    - g.access_token: the bearer token as presented
    - g.auth_session: the AuthSession the provider resolved it to
    - g.state: the session's AppState (cached, or bootstrapped on a miss)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Token unknown, expired or revoked at the provider
    - The session's email is not on the allow-list
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        runtime = get_runtime()

        try:
            session = runtime.auth.get_session(token)
        except RemoteError:
            current_app.logger.exception("Auth provider unavailable while resolving session")
            session = None

        if session is None:
            runtime.bootstrap.cache.evict(token)
            return jsonify({"error": "Invalid or expired token"}), 401

        state = runtime.bootstrap.state_for(session)
        if not state.is_authenticated:
            return jsonify({"error": "시스템에 등록되지 않은 사용자입니다."}), 401

        g.access_token = token
        g.auth_session = session
        g.state = state

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the signed-in identity to be an administrator. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        state = getattr(g, "state", None)
        if state is None or not state.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not state.is_admin:
            return jsonify({"error": "관리자 권한이 필요합니다."}), 403
        return f(*args, **kwargs)

    return decorated_function


def commit_state(state):
    """Replace the session's cached state after a confirmed remote write."""
    g.state = get_runtime().bootstrap.commit(g.access_token, state)
    return g.state
