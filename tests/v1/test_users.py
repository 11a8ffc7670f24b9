# tests/v1/test_users.py


def test_read_me(client, member, auth_headers):
    r = client.get("/api/v1/users/me", headers=auth_headers(member))

    assert r.status_code == 200
    assert r.json()["id"] == member.id
    assert r.json()["role"] == "member"


def test_admin_sets_role_and_audit_log_records_it(client, member, moderator, admin, auth_headers):
    r = client.post(
        f"/api/v1/users/{member.id}/role",
        json={"role": "researcher", "reason": "Published peer-reviewed work"},
        headers=auth_headers(admin),
    )

    assert r.status_code == 200
    entry = r.json()
    assert (entry["old_role"], entry["new_role"]) == ("member", "researcher")
    assert entry["actor_id"] == admin.id

    log = client.get("/api/v1/audit-log", headers=auth_headers(moderator)).json()
    assert log["total"] == 1
    assert log["entries"][0]["id"] == entry["id"]


def test_role_change_guards(client, member, moderator, admin, auth_headers):
    r = client.post(
        f"/api/v1/users/{member.id}/role",
        json={"role": "admin", "reason": "Because"},
        headers=auth_headers(moderator),
    )
    assert r.status_code == 403

    r = client.post(
        f"/api/v1/users/{admin.id}/role",
        json={"role": "member", "reason": "Stepping down"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 409

    r = client.post(
        "/api/v1/users/999999/role",
        json={"role": "member", "reason": "Because"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"
