# tests/v1/test_jury.py
from trustgate.models import JuryAssignment, User

REASON = "The classifier misread a quotation as harassment."
REASONING = "Read in context this is clearly satire."


def test_split_jury_over_http(
    client, db_session, make_user, author, admin, auth_headers, flag_content
):
    for index in range(2):
        make_user("researcher", f"juror-{index}")
    content = flag_content(author)
    appeal_id = client.post(
        "/api/v1/appeals",
        json={"content_id": content.id, "reason": REASON},
        headers=auth_headers(author),
    ).json()["id"]

    r = client.post(
        "/api/v1/jury/deliberations",
        json={"appeal_id": appeal_id, "required_votes": 2},
        headers=auth_headers(admin),
    )
    assert r.status_code == 201
    deliberation_id = r.json()["id"]
    jurors = [
        db_session.get(User, row.juror_id)
        for row in db_session.query(JuryAssignment).filter_by(deliberation_id=deliberation_id)
    ]

    first = client.post(
        f"/api/v1/jury/deliberations/{deliberation_id}/votes",
        json={"vote": "uphold", "reasoning": REASONING},
        headers=auth_headers(jurors[0]),
    )
    assert first.status_code == 200
    assert first.json()["concluded"] is False
    cases = client.get("/api/v1/jury/cases", headers=auth_headers(jurors[1])).json()
    assert [case["id"] for case in cases] == [deliberation_id]

    second = client.post(
        f"/api/v1/jury/deliberations/{deliberation_id}/votes",
        json={"vote": "overturn", "reasoning": REASONING},
        headers=auth_headers(jurors[1]),
    )

    status = second.json()
    assert status["final_decision"] == "split"
    assert status["appeal_status"] == "rejected"
    assert status["total_votes"] == 2
    appeal = client.get(f"/api/v1/appeals/{appeal_id}", headers=auth_headers(author)).json()
    assert appeal["status"] == "rejected"
    assert appeal["jury_decision"] == "split"
    r = client.get(f"/api/v1/jury/deliberations/{deliberation_id}", headers=auth_headers(author))
    assert r.json()["concluded"] is True


def test_invalid_vote_value_is_unprocessable(
    client, make_user, author, admin, auth_headers, flag_content
):
    make_user("researcher")
    content = flag_content(author)
    appeal_id = client.post(
        "/api/v1/appeals",
        json={"content_id": content.id, "reason": REASON},
        headers=auth_headers(author),
    ).json()["id"]
    deliberation_id = client.post(
        "/api/v1/jury/deliberations",
        json={"appeal_id": appeal_id, "required_votes": 1},
        headers=auth_headers(admin),
    ).json()["id"]

    r = client.post(
        f"/api/v1/jury/deliberations/{deliberation_id}/votes",
        json={"vote": "abstain", "reasoning": REASONING},
        headers=auth_headers(admin),
    )

    assert r.status_code == 422


def test_not_enough_jurors_conflicts(client, author, admin, auth_headers, flag_content):
    content = flag_content(author)
    appeal_id = client.post(
        "/api/v1/appeals",
        json={"content_id": content.id, "reason": REASON},
        headers=auth_headers(author),
    ).json()["id"]

    r = client.post(
        "/api/v1/jury/deliberations",
        json={"appeal_id": appeal_id},
        headers=auth_headers(admin),
    )

    assert r.status_code == 409
    assert "Not enough eligible jurors" in r.json()["detail"]
