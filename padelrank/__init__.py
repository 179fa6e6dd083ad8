"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .constants import (
    CONFIG_BACKUPS_COLLECTION,
    FIRESTORE_BATCH_LIMIT,
    MIGRATION_PREVIEW_SAMPLE_SIZE,
    MIGRATION_RETRY_ATTEMPTS,
    MIGRATION_RETRY_BASE_DELAY,
    PLAYERS_COLLECTION,
    RANKINGS_COLLECTION,
)
from .extensions import csrf


def _env_flag(name, default):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def init_firebase(app):
    """Initialize the Firebase Admin SDK from env, file, or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        RANKINGS_COLLECTION=os.environ.get("RANKINGS_COLLECTION")
        or RANKINGS_COLLECTION,
        CONFIG_BACKUPS_COLLECTION=os.environ.get("CONFIG_BACKUPS_COLLECTION")
        or CONFIG_BACKUPS_COLLECTION,
        PLAYERS_COLLECTION=os.environ.get("PLAYERS_COLLECTION") or PLAYERS_COLLECTION,
        MIGRATION_BATCH_SIZE=min(
            int(os.environ.get("MIGRATION_BATCH_SIZE") or FIRESTORE_BATCH_LIMIT),
            FIRESTORE_BATCH_LIMIT,
        ),
        MIGRATION_RETRY_ATTEMPTS=int(
            os.environ.get("MIGRATION_RETRY_ATTEMPTS") or MIGRATION_RETRY_ATTEMPTS
        ),
        MIGRATION_RETRY_BASE_DELAY=float(
            os.environ.get("MIGRATION_RETRY_BASE_DELAY") or MIGRATION_RETRY_BASE_DELAY
        ),
        MIGRATION_PREVIEW_SAMPLE_SIZE=int(
            os.environ.get("MIGRATION_PREVIEW_SAMPLE_SIZE")
            or MIGRATION_PREVIEW_SAMPLE_SIZE
        ),
        MIGRATION_KEEP_BACKUPS=_env_flag("MIGRATION_KEEP_BACKUPS", "true"),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        init_firebase(app)

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
