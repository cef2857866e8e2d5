from fastapi import status

from ministrypath.models import LogEntry


def test_get_logs_as_admin(client, admin_token_headers, db):
    db.add(LogEntry(level="INFO", event="test_event", user_email="t***@example.com"))
    db.commit()

    response = client.get("/api/v1/admin/logs", params={"event": "test_event"}, headers=admin_token_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["event"] == "test_event"
    assert set(data) == {"items", "total", "page", "limit", "pages"}


def test_get_logs_filtering(client, admin_token_headers, db):
    db.add(LogEntry(level="INFO", event="info_event", user_email="u***@example.com"))
    db.add(LogEntry(level="ERROR", event="error_event", user_email="x***@example.org"))
    db.commit()

    items = client.get("/api/v1/admin/logs?level=error", headers=admin_token_headers).json()["items"]
    assert items and all(d["level"] == "ERROR" for d in items)

    items = client.get("/api/v1/admin/logs?user_email=example.org", headers=admin_token_headers).json()["items"]
    assert [d["event"] for d in items] == ["error_event"]


def test_get_logs_sorting_and_pagination(client, admin_token_headers, db):
    for name in ("b_event", "a_event", "c_event"):
        db.add(LogEntry(level="WARNING", event=name))
    db.commit()

    response = client.get(
        "/api/v1/admin/logs",
        params={"level": "WARNING", "sort_by": "event", "order": "asc", "limit": 2, "page": 1},
        headers=admin_token_headers
    )
    data = response.json()
    assert [d["event"] for d in data["items"]] == ["a_event", "b_event"]
    assert data["total"] == 3
    assert data["pages"] == 2


def test_get_logs_rejects_unknown_sort_field(client, admin_token_headers):
    response = client.get("/api/v1/admin/logs", params={"sort_by": "__table__"}, headers=admin_token_headers)
    assert response.status_code == 400


def test_logs_forbidden_for_pastor(client, pastor_token_headers):
    response = client.get("/api/v1/admin/logs", headers=pastor_token_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_list_users(client, admin_token_headers, test_user, make_user):
    make_user("gone@example.com", is_archived=True)

    data = client.get("/api/v1/admin/users", headers=admin_token_headers).json()
    emails = [u["email"] for u in data["items"]]
    assert "test@example.com" in emails
    assert "gone@example.com" not in emails

    data = client.get(
        "/api/v1/admin/users", params={"include_archived": True}, headers=admin_token_headers
    ).json()
    assert "gone@example.com" in [u["email"] for u in data["items"]]


def test_list_users_role_filter(client, admin_token_headers, test_user, leader_user):
    data = client.get("/api/v1/admin/users", params={"role": "leader"}, headers=admin_token_headers).json()
    assert [u["email"] for u in data["items"]] == ["leader@example.com"]


def test_update_user_role_writes_audit_entry(client, admin_token_headers, admin_user, test_user, db):
    response = client.patch(
        f"/api/v1/admin/users/{test_user.id}",
        json={"role": "ministry-leader"},
        headers=admin_token_headers
    )

    assert response.status_code == 200
    assert response.json()["role"] == "leader"

    audit = db.query(LogEntry).filter(LogEntry.method == "AUDIT").one()
    assert audit.event == "user_updated_by_admin"
    assert audit.user_id == admin_user.id
    assert audit.path == f"audit:user:{test_user.id}"
    assert audit.context["previous_role"] == "member"
    assert audit.context["updates"] == {"role": "leader"}


def test_archive_user(client, admin_token_headers, test_user, token_headers, db):
    response = client.patch(
        f"/api/v1/admin/users/{test_user.id}", json={"is_archived": True}, headers=admin_token_headers
    )
    assert response.status_code == 200
    assert response.json()["is_archived"] is True

    # Archived accounts can no longer sign in with an existing token
    response = client.get("/api/v1/auth/me", headers=token_headers)
    assert response.status_code == 403


def test_update_user_unknown_role(client, admin_token_headers, test_user):
    response = client.patch(
        f"/api/v1/admin/users/{test_user.id}", json={"role": "bishop"}, headers=admin_token_headers
    )
    assert response.status_code == 422


def test_update_missing_user(client, admin_token_headers):
    response = client.patch("/api/v1/admin/users/9999", json={"role": "member"}, headers=admin_token_headers)
    assert response.status_code == 404


def test_update_user_forbidden_for_member(client, token_headers, test_user):
    response = client.patch(
        f"/api/v1/admin/users/{test_user.id}", json={"role": "owner"}, headers=token_headers
    )
    assert response.status_code == 403


def test_admin_cannot_promote_self_to_owner(client, admin_token_headers, admin_user, db):
    response = client.patch(
        f"/api/v1/admin/users/{admin_user.id}", json={"role": "owner"}, headers=admin_token_headers
    )

    assert response.status_code == 403
    db.refresh(admin_user)
    assert admin_user.role == "admin"
    assert db.query(LogEntry).filter(LogEntry.method == "AUDIT").count() == 0


def test_admin_cannot_assign_legacy_owner_role(client, admin_token_headers, test_user):
    response = client.patch(
        f"/api/v1/admin/users/{test_user.id}", json={"role": "system-admin"}, headers=admin_token_headers
    )
    assert response.status_code == 403


def test_admin_cannot_modify_owner(client, admin_token_headers, make_user, db):
    owner = make_user("owner@example.com", role="owner")

    response = client.patch(
        f"/api/v1/admin/users/{owner.id}", json={"role": "member"}, headers=admin_token_headers
    )
    assert response.status_code == 403

    response = client.patch(
        f"/api/v1/admin/users/{owner.id}", json={"is_archived": True}, headers=admin_token_headers
    )
    assert response.status_code == 403

    db.refresh(owner)
    assert owner.role == "owner"
    assert owner.is_archived is False


def test_admin_can_assign_own_role(client, admin_token_headers, test_user):
    response = client.patch(
        f"/api/v1/admin/users/{test_user.id}", json={"role": "admin"}, headers=admin_token_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "admin"


def test_owner_can_promote_to_owner(client, auth_headers, make_user, admin_user):
    owner = make_user("owner@example.com", role="owner")

    response = client.patch(
        f"/api/v1/admin/users/{admin_user.id}", json={"role": "owner"}, headers=auth_headers(owner)
    )
    assert response.status_code == 200
    assert response.json()["role"] == "owner"
