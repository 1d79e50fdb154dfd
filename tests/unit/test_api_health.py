"""Tests for health check endpoints."""
import pytest
from flask import Flask

from usersync.api.health import bp as health_bp


@pytest.fixture()
def make_client():
    def _make(store):
        app = Flask(__name__)
        app.config["USER_STORE"] = store
        app.register_blueprint(health_bp)
        return app.test_client()
    return _make


def test_health_check(make_client):
    """Liveness does not depend on the store."""
    response = make_client(None).get("/health")
    assert response.status_code == 200
    assert response.data == b"ok"
    assert response.content_type.startswith("text/plain")


def test_readiness_check(make_client, store):
    response = make_client(store).get("/ready")
    assert response.status_code == 200
    assert response.data == b"ready"


def test_readiness_fails_when_store_down(make_client, tmp_path):
    from usersync.core.store import UserStore

    broken = UserStore(f"sqlite:///{tmp_path / 'nope' / 'x.db'}")
    response = make_client(broken).get("/ready")
    assert response.status_code == 503
    assert response.data == b"not ready"


def test_readiness_fails_without_store(make_client):
    assert make_client(None).get("/ready").status_code == 503
