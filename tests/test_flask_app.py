"""Tests for the application factory wiring."""
import pytest

from usersync.config import AppConfig
from usersync.core.exceptions import ConfigurationError
from usersync.core.publisher import MetadataPublisher
from usersync.core.store import UserStore
from usersync.flask_app import create_app


def test_missing_secret_refuses_to_start(tmp_path):
    with pytest.raises(ConfigurationError):
        create_app(AppConfig(webhook_secret="", database_url=f"sqlite:///{tmp_path / 'x.db'}"))


def test_default_store_created_with_schema(app_config, tmp_path):
    app_config.database_url = f"sqlite:///{tmp_path / 'nested' / 'users.db'}"

    app = create_app(app_config)

    store = app.config["USER_STORE"]
    assert isinstance(store, UserStore)
    assert store.list_users() == []
    assert (tmp_path / "nested" / "users.db").exists()


def test_publisher_only_built_with_secret_key(app_config, store):
    app = create_app(app_config, store=store)
    assert app.config["WEBHOOK_DISPATCHER"].publisher is None

    app_config.identity_secret_key = "sk_test_123"
    app = create_app(app_config, store=store)
    publisher = app.config["WEBHOOK_DISPATCHER"].publisher
    assert isinstance(publisher, MetadataPublisher)
    assert publisher.client.base_url == "https://api.clerk.com/v1"


def test_payload_limit_configured(app_config, store):
    app_config.max_payload_bytes = 1024
    app = create_app(app_config, store=store)
    assert app.config["MAX_CONTENT_LENGTH"] == 1024
