"""Tests for the OpenAPI documentation endpoint."""


def test_openapi_json_served(client):
    response = client.get("/openapi.json")
    assert response.status_code == 200
    spec = response.get_json()
    assert spec["openapi"].startswith("3.")
    assert "/api/webhooks/clerk" in spec["paths"]
    assert "post" in spec["paths"]["/api/webhooks/clerk"]


def test_missing_spec_file_is_500(app, tmp_path):
    app.config["OPENAPI_SPEC_PATH"] = str(tmp_path / "absent.yaml")
    response = app.test_client().get("/openapi.json")
    assert response.status_code == 500
    assert response.get_json()["error"] == "Internal Server Error"
