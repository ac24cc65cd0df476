# backend/giftdesk/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, GiftDeskRuntime


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Service runtime: store gateway, auth provider, session bootstrap, AI
    from .services.ai_service import create_assistant
    from .services.auth_provider import create_auth_provider
    from .services.bootstrap_service import SessionBootstrap
    from .services.concurrency import InFlightGuard
    from .services.table_store import create_store

    store = create_store(app)
    auth = create_auth_provider(app)
    bootstrapper = SessionBootstrap(
        app,
        store,
        auth,
        timeout=app.config["BOOTSTRAP_TIMEOUT_SECONDS"],
    )
    bootstrapper.attach()

    app.extensions["giftdesk"] = GiftDeskRuntime(
        store=store,
        auth=auth,
        bootstrap=bootstrapper,
        assistant=create_assistant(app),
        guard=InFlightGuard(),
    )

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.session import session_bp
    from .routes.clients import clients_bp
    from .routes.catalog import catalog_bp
    from .routes.users import users_bp
    from .routes.assist import assist_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(assist_bp)

    from .errors import register_error_handlers
    register_error_handlers(app)

    allowed_origins = set(app.config.get("CORS_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "Content-Disposition"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
