# Overview: JSON error responses for exceptions that escape the API routes.

"""
Routes answer 404 for records outside the caller's visible set themselves.
Everything else a route can raise is mapped here:

- ValidationError      -> 400
- ConfirmationRequired -> 409 (body carries confirm_required)
- AccessDeniedError    -> 403
- BusyError            -> 409 (same action already in flight)
- RemoteTimeoutError   -> 504 (stopped waiting; the write may still land)
- RemoteError          -> 502
- anything else        -> 500, logged
"""
from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .services.access_service import AccessDeniedError
from .services.concurrency import BusyError
from .services.table_store import RemoteError, RemoteTimeoutError
from .validation import ConfirmationRequired, ValidationError


def register_error_handlers(app):

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(AccessDeniedError)
    def handle_access_denied(e):
        return jsonify({"error": str(e)}), 403

    @app.errorhandler(ConfirmationRequired)
    def handle_confirmation(e):
        return jsonify({"error": str(e), "confirm_required": True}), 409

    @app.errorhandler(BusyError)
    def handle_busy(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(RemoteTimeoutError)
    def handle_remote_timeout(e):
        return jsonify({"error": str(e)}), 504

    @app.errorhandler(RemoteError)
    def handle_remote(e):
        current_app.logger.warning("Remote store failure: %s", e)
        return jsonify({"error": str(e) or "Remote store error"}), 502

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500
