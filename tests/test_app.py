from bookledger.core.config import settings


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_request_id_is_echoed_or_generated(client):
    resp = client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert resp.headers["X-Request-Id"] == "abc-123"

    generated = client.get("/health").headers["X-Request-Id"]
    assert generated and generated != "abc-123"


def test_oversized_body_is_rejected(client):
    # The limit is fixed when the app is built.
    body = "x" * (settings.max_request_body_bytes + 1)
    resp = client.post(
        "/v1/auth/login",
        content=body,
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 413
    assert resp.json() == {"detail": "Payload too large"}


def test_chunked_body_over_limit_is_rejected(client, make_user, auth_headers):
    def chunks():
        chunk = b"x" * 64 * 1024
        for _ in range(settings.max_request_body_bytes // len(chunk) + 2):
            yield chunk

    resp = client.post(
        "/v1/library/return",
        content=chunks(),
        headers={**auth_headers(make_user()), "Content-Type": "application/json"},
    )
    assert "content-length" not in {k.lower() for k in resp.request.headers}
    assert resp.status_code == 413
    assert resp.json() == {"detail": "Payload too large"}


def test_body_within_limit_reaches_the_route(client, make_user, auth_headers):
    resp = client.post(
        "/v1/library/return",
        content=iter([b'{"borrowing_id": ', b'"missing"}']),
        headers={**auth_headers(make_user()), "Content-Type": "application/json"},
    )
    assert resp.status_code == 404
