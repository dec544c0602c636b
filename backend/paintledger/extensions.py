# Overview: Flask extension instances for database and migrations, plus the record store accessor.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def get_store():
    """Record store bound to the current application (see store.build_store)."""
    return current_app.extensions["record_store"]
