# Overview: Flask API routes for one-time-code sign-in and sign-out.

# backend/giftdesk/routes/auth.py
"""
Authentication API routes

FLOW:
1. POST /api/auth/otp     corporate suffix + allow-list check, then the
                          provider mails a six-digit code
2. POST /api/auth/verify  code checked under each verification purpose in
                          turn; the SIGNED_IN event bootstraps the session
3. POST /api/auth/logout  provider sign-out; SIGNED_OUT evicts cached state

SECURITY: Proving control of an address is not enough. Only allow-listed
emails get a usable session token back.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..extensions import get_runtime
from ..records import normalize_email
from ..services.auth_provider import AuthError, verify_with_fallback
from ..services.bootstrap_service import fetch_users
from ..services.table_store import RemoteError
from ..services.user_service import is_corporate_email
from ..validation import require_object
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/otp")
def send_otp_route():
    data = require_object(request.get_json(silent=True))
    email = normalize_email(data.get("email"))
    domain = current_app.config["CORPORATE_EMAIL_DOMAIN"]

    if not email or not is_corporate_email(email, domain):
        return jsonify({"error": f"사내 이메일({domain})만 사용 가능합니다."}), 400

    runtime = get_runtime()
    allowed = fetch_users(runtime.store)
    if not any(u.email == email for u in allowed):
        return jsonify({"error": "시스템에 등록되지 않은 이메일입니다. 관리자에게 문의하세요."}), 403

    try:
        runtime.auth.send_otp(email)
    except (AuthError, RemoteError):
        current_app.logger.exception("Failed to send sign-in code to %s", email)
        return jsonify({"error": "인증번호 발송 실패. 잠시 후 다시 시도해 주세요."}), 502

    return jsonify({"message": "이메일로 6자리 인증번호가 발송되었습니다."}), 200


@auth_bp.post("/verify")
def verify_otp_route():
    """
    Verify a code and admit the session.

    Returns the bearer token and a summary of the hydrated state. A verified
    address that is not on the allow-list gets 403 and its session is ended.
    """
    data = require_object(request.get_json(silent=True))
    email = normalize_email(data.get("email"))
    code = str(data.get("code") or data.get("token") or "").strip()

    if not email or not code:
        return jsonify({"error": "email and code required"}), 400

    runtime = get_runtime()
    try:
        session = verify_with_fallback(runtime.auth, email, code)
    except AuthError as e:
        return jsonify({"error": str(e)}), 401

    state = runtime.bootstrap.state_for(session)
    if not state.is_authenticated:
        try:
            runtime.auth.sign_out(session.access_token)
        except (AuthError, RemoteError):
            current_app.logger.warning("Could not end session for non-allow-listed %s", email)
        return jsonify({"error": "인증 성공했으나 등록된 사용자 정보가 없습니다."}), 403

    return jsonify({
        "token": session.access_token,
        "expires_at": to_utc_z(session.expires_at),
        "state": state.summary(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    runtime = get_runtime()
    try:
        runtime.auth.sign_out(g.access_token)
    except AuthError:
        # Provider already considers the token dead
        current_app.logger.warning("Provider rejected sign-out; dropping cached state only")
        runtime.bootstrap.cache.evict(g.access_token)
    return jsonify({"message": "Logged out"}), 200
