# tests/v1/test_promotions.py

JUSTIFICATION = (
    "I have reviewed flagged posts for six months and know the community guidelines well."
)
ENDORSEMENT = "Consistently fair in every review I have seen."


def test_endorsement_quorum_promotes(client, make_user, member, admin, auth_headers):
    moderators = [make_user("moderator", f"mod-{index}") for index in range(2)]

    r = client.post(
        "/api/v1/promotions",
        json={"requested_role": "moderator", "justification": JUSTIFICATION},
        headers=auth_headers(member),
    )
    assert r.status_code == 201
    request_id = r.json()["id"]

    pending = client.get("/api/v1/promotions/pending", headers=auth_headers(moderators[0])).json()
    assert [row["id"] for row in pending] == [request_id]

    for endorser in (*moderators, admin):
        r = client.post(
            f"/api/v1/promotions/{request_id}/endorsements",
            json={"justification": ENDORSEMENT},
            headers=auth_headers(endorser),
        )
        assert r.status_code == 200

    result = r.json()
    assert result["approved"] is True
    assert result["moderator_endorsements"] == 2
    assert result["admin_endorsements"] == 1
    assert result["endorsement"]["endorser_tier"] == "admin"
    assert result["audit_entry_id"] is not None

    me = client.get("/api/v1/users/me", headers=auth_headers(member)).json()
    assert me["role"] == "moderator"
    mine = client.get("/api/v1/promotions/mine", headers=auth_headers(member)).json()
    assert mine[0]["status"] == "approved"


def test_self_endorsement_conflicts(client, moderator, auth_headers):
    request_id = client.post(
        "/api/v1/promotions",
        json={"requested_role": "admin", "justification": JUSTIFICATION},
        headers=auth_headers(moderator),
    ).json()["id"]

    r = client.post(
        f"/api/v1/promotions/{request_id}/endorsements",
        json={"justification": ENDORSEMENT},
        headers=auth_headers(moderator),
    )

    assert r.status_code == 409


def test_member_cannot_endorse(client, member, make_user, auth_headers):
    other = make_user("member", "other")
    request_id = client.post(
        "/api/v1/promotions",
        json={"requested_role": "researcher", "justification": JUSTIFICATION},
        headers=auth_headers(other),
    ).json()["id"]

    r = client.post(
        f"/api/v1/promotions/{request_id}/endorsements",
        json={"justification": ENDORSEMENT},
        headers=auth_headers(member),
    )

    assert r.status_code == 403


def test_admin_rejects_request(client, member, admin, auth_headers):
    request_id = client.post(
        "/api/v1/promotions",
        json={"requested_role": "researcher", "justification": JUSTIFICATION},
        headers=auth_headers(member),
    ).json()["id"]

    r = client.post(
        f"/api/v1/promotions/{request_id}/reject",
        json={"notes": "Come back after more reviews"},
        headers=auth_headers(admin),
    )

    assert r.status_code == 200
    assert r.json()["status"] == "rejected"
    assert r.json()["resolution_notes"] == "Come back after more reviews"


def test_unknown_role_is_unprocessable(client, member, auth_headers):
    r = client.post(
        "/api/v1/promotions",
        json={"requested_role": "overlord", "justification": JUSTIFICATION},
        headers=auth_headers(member),
    )

    assert r.status_code == 422


def test_requester_sees_endorsements(client, member, moderator, auth_headers, make_user):
    request_id = client.post(
        "/api/v1/promotions",
        json={"requested_role": "researcher", "justification": JUSTIFICATION},
        headers=auth_headers(member),
    ).json()["id"]
    client.post(
        f"/api/v1/promotions/{request_id}/endorsements",
        json={"justification": ENDORSEMENT},
        headers=auth_headers(moderator),
    )

    r = client.get(f"/api/v1/promotions/{request_id}/endorsements", headers=auth_headers(member))
    assert r.status_code == 200
    assert [row["endorser_id"] for row in r.json()] == [moderator.id]

    outsider = make_user("member", "outsider")
    r = client.get(f"/api/v1/promotions/{request_id}/endorsements", headers=auth_headers(outsider))
    assert r.status_code == 403
