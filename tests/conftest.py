"""Pytest shared fixtures for the webhook sync pipeline."""
import base64
import json
import pathlib
import sys
import time
from unittest.mock import MagicMock

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from usersync.config import AppConfig
from usersync.core import audit
from usersync.core.publisher import MetadataPublisher
from usersync.core.store import UserStore
from usersync.core.verification import sign
from usersync.flask_app import create_app

SIGNING_KEY = b"test-webhook-signing-key"
WEBHOOK_SECRET = "whsec_" + base64.b64encode(SIGNING_KEY).decode("ascii")


# ─────────────────────────────────────────────────────────────────────────────
# Network & Filesystem Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting the live identity provider API.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _fail(method):
        def _stub(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _stub

    for method in ("get", "post", "put", "patch", "delete"):
        monkeypatch.setattr(requests, method, _fail(method.upper()))


@pytest.fixture(autouse=True)
def audit_file(monkeypatch, tmp_path):
    """Redirect the audit trail into the test's temporary directory."""
    audit_dir = tmp_path / "audit"
    log_file = audit_dir / "sync-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", log_file)
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-audit-signing-key")
    monkeypatch.delenv("AUDIT_LOG_SIGNING_KEY_FILE", raising=False)
    return log_file


# ─────────────────────────────────────────────────────────────────────────────
# Delivery Helpers
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def make_headers():
    """Build correctly signed Svix headers for a body."""

    def _make(body: bytes, delivery_id: str = "msg_1", timestamp=None, key: bytes = SIGNING_KEY) -> dict:
        ts = str(int(time.time()) if timestamp is None else timestamp)
        return {
            "svix-id": delivery_id,
            "svix-timestamp": ts,
            "svix-signature": f"v1,{sign(key, delivery_id, ts, body)}",
        }

    return _make


@pytest.fixture()
def envelope():
    """Serialize a webhook envelope to bytes."""

    def _envelope(event_type: str, data) -> bytes:
        return json.dumps({"type": event_type, "object": "event", "data": data}).encode("utf-8")

    return _envelope


# ─────────────────────────────────────────────────────────────────────────────
# Store & Application
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def store(tmp_path):
    """File-backed SQLite user store with schema created."""
    user_store = UserStore(f"sqlite:///{tmp_path / 'users.db'}")
    user_store.create_schema()
    yield user_store
    user_store.engine.dispose()


@pytest.fixture()
def publisher():
    """Metadata publisher double recording write-backs."""
    return MagicMock(spec=MetadataPublisher)


@pytest.fixture()
def app_config(tmp_path):
    return AppConfig(
        webhook_secret=WEBHOOK_SECRET,
        database_url=f"sqlite:///{tmp_path / 'users.db'}",
    )


@pytest.fixture()
def app(app_config, store, publisher):
    flask_app = create_app(app_config, store=store, publisher=publisher)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client
