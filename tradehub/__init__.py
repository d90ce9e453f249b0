"""Initialize the Flask app and the group services."""

import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, db, firestore
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import INVITE_TTL_DAYS, MAX_GROUP_MEMBERS
from .core.stores import DocumentStore, RealtimeStore
from .group.services import GroupService


def _load_credentials(app):
    """Find Firebase credentials: env JSON, then a local file, then ADC."""
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
            project_id = app.config.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    return cred, project_id or app.config.get("FIREBASE_PROJECT_ID")


def _init_firebase(app):
    cred, project_id = _load_credentials(app)
    if not cred or firebase_admin._apps:
        return

    firebase_options = {}
    if project_id:
        firebase_options["projectId"] = project_id
    database_url = app.config.get("FIREBASE_DATABASE_URL")
    if not database_url and project_id:
        database_url = f"https://{project_id}-default-rtdb.firebaseio.com"
    if database_url:
        firebase_options["databaseURL"] = database_url

    try:
        firebase_admin.initialize_app(cred, firebase_options)
    except ValueError:
        # This can happen if the app is already initialized, which is fine.
        app.logger.info("Firebase app already initialized.")


def _build_service(app):
    documents = app.config.get("DOCUMENT_STORE")
    realtime = app.config.get("REALTIME_STORE")
    if documents is None and not app.config.get("TESTING"):
        documents = DocumentStore(firestore.client())
    if realtime is None and not app.config.get("TESTING"):
        realtime = RealtimeStore(db.reference("/"))
    if documents is None or realtime is None:
        app.logger.warning("Group service disabled: no data store configured.")
        return None

    return GroupService(
        documents,
        realtime,
        max_members=app.config["GROUP_MAX_MEMBERS"],
        invite_ttl_days=app.config["GROUP_INVITE_TTL_DAYS"],
    )


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        FIREBASE_PROJECT_ID=os.environ.get("FIREBASE_PROJECT_ID"),
        FIREBASE_DATABASE_URL=os.environ.get("FIREBASE_DATABASE_URL"),
        GROUP_MAX_MEMBERS=int(os.environ.get("GROUP_MAX_MEMBERS") or MAX_GROUP_MEMBERS),
        GROUP_INVITE_TTL_DAYS=int(
            os.environ.get("GROUP_INVITE_TTL_DAYS") or INVITE_TTL_DAYS
        ),
        LOG_LEVEL=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
    )

    if test_config:
        app.config.update(test_config)

    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    app.extensions["tradehub"] = {"groups": _build_service(app)}

    # Register blueprints
    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
