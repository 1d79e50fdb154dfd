"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with the webhook pipeline, blueprints and error
handlers. Gunicorn serves it as ``usersync.flask_app:create_app()``.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from usersync.config import AppConfig, load_settings
from usersync.core.dispatcher import WebhookDispatcher
from usersync.core.identity import IdentityProviderClient
from usersync.core.publisher import MetadataPublisher
from usersync.core.store import UserStore
from usersync.core.sync_service import UserSyncService
from usersync.core.verification import WebhookVerifier


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[AppConfig] = None,
    *,
    store: Optional[UserStore] = None,
    publisher: Optional[MetadataPublisher] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Explicit configuration (defaults to load_settings())
        store: User store override (defaults to one built from cfg.database_url)
        publisher: Metadata publisher override (defaults to one built from
            cfg when a provider secret key is configured)

    Raises:
        ConfigurationError: If the webhook secret is missing or invalid;
            the app refuses to start rather than fail requests one by one
    """
    # Load configuration
    if cfg is None:
        cfg = load_settings()

    # Fails fast on a missing/invalid secret
    verifier = WebhookVerifier(cfg.webhook_secret, tolerance=cfg.webhook_tolerance)

    if store is None:
        _ensure_sqlite_dir(cfg.database_url)
        store = UserStore(cfg.database_url)
        store.create_schema()

    if publisher is None and cfg.publish_enabled:
        client = IdentityProviderClient(cfg.identity_api_url, cfg.identity_secret_key)
        publisher = MetadataPublisher(client, metadata_key=cfg.metadata_key)

    # Create Flask app
    app = Flask(__name__)
    app.config.setdefault(
        "OPENAPI_SPEC_PATH",
        str(Path(app.root_path).parent / "openapi" / "webhooks_openapi.yaml"),
    )

    # Store config and collaborators for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_payload_bytes or None
    app.config["USER_STORE"] = store
    app.config["WEBHOOK_DISPATCHER"] = WebhookDispatcher(
        verifier,
        UserSyncService(store),
        publisher,
    )

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Register blueprints
    from usersync.api import docs, errors, health, webhooks

    app.register_blueprint(health.bp)
    app.register_blueprint(webhooks.bp)
    app.register_blueprint(docs.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Log startup info
    print("[usersync] Webhook endpoint registered at /api/webhooks/clerk")
    if publisher is None:
        print("[usersync] WARNING: Metadata write-back disabled (no CLERK_SECRET_KEY)")

    return app


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────
def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        return
    db_path = database_url[len(prefix):]
    if not db_path or db_path == ":memory:":
        return
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
