def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/health/ready")
    assert ready.status_code in {200, 503}
    payload = ready.json()
    assert set(payload["database"]) == {"ok", "schema_ok", "missing_tables", "missing_columns", "error"}


def test_security_headers_are_set(client):
    response = client.get("/api/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_oversized_request_is_rejected(client, school):
    response = client.post(
        f"/api/schools/{school.id}/lessons",
        content=b" " * 1_000_001,
        headers={**school.admin_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 413
    assert response.json()["success"] is False


def test_missing_or_foreign_token_is_refused(client, school):
    url = f"/api/schools/{school.id}/lessons"
    assert client.get(url).status_code in {401, 403}
    assert client.get(url, headers={"Authorization": "Bearer not-a-token"}).status_code == 401
