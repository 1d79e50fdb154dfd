"""End-to-end tests for the webhook endpoint (Flask test client + SQLite store)."""
import json

from usersync.core.exceptions import PublishError

ENDPOINT = "/api/webhooks/clerk"


def post(client, make_headers, body, **header_kwargs):
    return client.post(ENDPOINT, data=body, headers=make_headers(body, **header_kwargs),
                       content_type="application/json")


def test_user_created_mirrors_account(client, store, publisher, make_headers, envelope):
    body = envelope("user.created", {
        "id": "user_1",
        "email_addresses": [{"email_address": "a@b.com"}],
        "username": None,
        "first_name": "Ann",
        "last_name": "Lee",
        "image_url": "https://img.example/ann.png",
    })

    response = post(client, make_headers, body)

    assert response.status_code == 200
    data = response.get_json()
    assert data["message"] == "OK"
    user = data["user"]
    assert user["email"] == "a@b.com"
    assert user["username"] == "Anonymous"
    assert user["first_name"] == "Ann"
    assert user["photo"] == "https://img.example/ann.png"
    assert data["metadata"] == {"published": True}
    publisher.publish.assert_called_once_with(user["id"], "user_1")
    assert store.get("user_1").id == user["id"]
    assert response.headers["X-Delivery-Id"] == "msg_1"


def test_redelivered_create_is_idempotent(client, store, publisher, make_headers, envelope):
    body = envelope("user.created", {"id": "user_1"})

    first = post(client, make_headers, body).get_json()["user"]
    second = post(client, make_headers, body).get_json()["user"]

    assert first["id"] == second["id"]
    assert len(store.list_users()) == 1
    # Write-back is retried on duplicates so a failed first publish can heal
    assert publisher.publish.call_count == 2


def test_invalid_signature_rejected_without_side_effects(client, store, make_headers, envelope):
    body = envelope("user.created", {"id": "user_1"})

    response = post(client, make_headers, body, key=b"attacker-key")

    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidSignature"
    assert store.list_users() == []


def test_missing_signature_headers_rejected(client, envelope):
    body = envelope("user.created", {"id": "user_1"})
    response = client.post(ENDPOINT, data=body, content_type="application/json")
    assert response.status_code == 400
    assert response.get_json()["error"] == "MissingCredentials"


def test_stale_timestamp_rejected(client, make_headers, envelope):
    body = envelope("user.created", {"id": "user_1"})
    response = post(client, make_headers, body, timestamp=1_000_000_000)
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidTimestamp"


def test_huge_timestamp_rejected_and_audited(client, store, make_headers, envelope, audit_file):
    body = envelope("user.created", {"id": "user_1"})

    response = post(client, make_headers, body, timestamp="1" + "0" * 400)

    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidTimestamp"
    assert store.list_users() == []
    events = [json.loads(line) for line in audit_file.read_text().splitlines()]
    assert events[-1]["event_type"] == "delivery_rejected"
    assert events[-1]["details"] == {"reason": "InvalidTimestamp"}


def test_unhandled_event_returns_empty_200(client, store, make_headers, envelope):
    body = envelope("session.created", {"id": "sess_1"})

    response = post(client, make_headers, body)

    assert response.status_code == 200
    assert response.data == b""
    assert store.list_users() == []


def test_update_before_create_is_404(client, store, make_headers, envelope):
    body = envelope("user.updated", {"id": "user_1", "first_name": "Early"})

    response = post(client, make_headers, body)

    assert response.status_code == 404
    assert store.get("user_1") is None


def test_update_then_delete_lifecycle(client, store, make_headers, envelope):
    post(client, make_headers, envelope("user.created", {
        "id": "user_1", "username": "ann", "first_name": "Ann",
    }), delivery_id="msg_1")

    updated = post(client, make_headers, envelope("user.updated", {
        "id": "user_1", "first_name": "Anna", "email_addresses": [],
    }), delivery_id="msg_2")
    assert updated.status_code == 200
    user = updated.get_json()["user"]
    assert user["first_name"] == "Anna"
    assert user["username"] == "ann"
    assert user["email"] == "no-email@example.com"

    deleted = post(client, make_headers, envelope("user.deleted", {"id": "user_1", "deleted": True}),
                   delivery_id="msg_3")
    assert deleted.status_code == 200
    assert deleted.get_json()["user"]["id"] == user["id"]
    assert store.get("user_1") is None


def test_delete_unknown_user_is_noop(client, make_headers, envelope):
    response = post(client, make_headers, envelope("user.deleted", {"id": "user_404"}))
    assert response.status_code == 200
    assert response.get_json() == {"message": "OK", "user": {}}


def test_publish_failure_still_acknowledged(client, store, publisher, make_headers, envelope):
    publisher.publish.side_effect = PublishError("provider unavailable")
    body = envelope("user.created", {"id": "user_1"})

    response = post(client, make_headers, body)

    assert response.status_code == 200
    assert response.get_json()["metadata"]["published"] is False
    assert store.get("user_1") is not None


def test_malformed_body_rejected(client, make_headers):
    body = b'{"type": "user.created", "data": {}}'
    response = post(client, make_headers, body)
    assert response.status_code == 400
    assert response.get_json()["error"] == "MalformedEnvelope"


def test_oversized_payload_rejected(client, app, make_headers, envelope):
    app.config["MAX_CONTENT_LENGTH"] = 128
    body = envelope("user.created", {"id": "user_1", "first_name": "x" * 512})

    response = post(client, make_headers, body)

    assert response.status_code == 413


def test_get_not_allowed(client):
    response = client.get(ENDPOINT)
    assert response.status_code == 405


def test_rejections_are_audited(client, make_headers, envelope, audit_file):
    body = envelope("user.created", {"id": "user_1"})
    post(client, make_headers, body, key=b"attacker-key", delivery_id="msg_bad")

    events = [json.loads(line) for line in audit_file.read_text().splitlines()]
    assert events[-1]["event_type"] == "delivery_rejected"
    assert events[-1]["delivery_id"] == "msg_bad"
    assert events[-1]["details"] == {"reason": "InvalidSignature"}
