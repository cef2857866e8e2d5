# Using fixtures from conftest.py


def test_dev_login_rate_limited(client):
    """Test that /api/v1/auth/dev-login is rate limited."""
    for i in range(5):
        response = client.post("/api/v1/auth/dev-login", json={"email": f"ratelimit{i}@example.com"})
        assert response.status_code == 200, f"Request {i+1} should succeed, got {response.status_code}"

    response = client.post("/api/v1/auth/dev-login", json={"email": "ratelimit@example.com"})
    assert response.status_code == 429


def test_score_preview_rate_limited(client, token_headers):
    for _ in range(30):
        assert client.post("/api/v1/survey/score", json={"answers": {"sg1": 3}}, headers=token_headers).status_code == 200

    response = client.post("/api/v1/survey/score", json={"answers": {"sg1": 3}}, headers=token_headers)
    assert response.status_code == 429


def test_rate_limit_breach_is_logged(client):
    from ministrypath.database import SessionLocal
    from ministrypath.models import LogEntry

    for i in range(6):
        client.post("/api/v1/auth/dev-login", json={"email": f"flood{i}@example.com"})

    db = SessionLocal()
    try:
        log = db.query(LogEntry).filter(LogEntry.event == "rate_limit_exceeded").first()
        assert log is not None
        assert log.level == "WARNING"
    finally:
        db.close()
