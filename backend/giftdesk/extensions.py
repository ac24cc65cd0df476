# Overview: Flask extension instances for database and migrations, plus the app's service runtime.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


@dataclass
class GiftDeskRuntime:
    """Collaborators built once per app and shared by every request."""
    store: object
    auth: object
    bootstrap: object
    assistant: object
    guard: object = None


def get_runtime(app=None) -> GiftDeskRuntime:
    return (app or current_app).extensions["giftdesk"]
