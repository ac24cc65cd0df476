# backend/giftdesk/routes/system.py
"""
System health endpoint.

Reports which store and auth backends are configured and whether the local
database answers. With the hosted backends the database check only covers the
local OTP/session tables.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db, get_runtime
from ..models import SessionToken
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at > utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_sessions": active_sessions},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database check failed
    """
    runtime = get_runtime()
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "backends": {
            "store": runtime.store.name,
            "auth": runtime.auth.name,
        },
        "cached_sessions": len(runtime.bootstrap.cache),
        "checks": {"database": database_health},
    }, http_status
