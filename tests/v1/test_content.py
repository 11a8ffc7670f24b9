# tests/v1/test_content.py


def test_create_and_revise_content(client, author, auth_headers):
    headers = auth_headers(author)

    payload = {"title": "Hello", "body": "First body"}
    r = client.post("/api/v1/content", json=payload, headers=headers)
    assert r.status_code == 201
    created = r.json()
    assert created["status"] == "draft"
    assert created["author_id"] == author.id
    assert created["current_version"]["number"] == 1

    r = client.post(
        f"/api/v1/content/{created['id']}/revisions",
        json={"title": "Hello again", "body": "Second body"},
        headers=headers,
    )
    assert r.status_code == 200
    version = r.json()["current_version"]
    assert version["number"] == 2
    assert version["body"] == "Second body"


def test_empty_body_is_a_validation_error(client, author, auth_headers):
    r = client.post("/api/v1/content", json={"body": "   "}, headers=auth_headers(author))
    assert r.status_code == 400
    assert r.json() == {"detail": "Content body cannot be empty", "code": "validation_error"}


def test_only_author_can_revise(client, author, member, auth_headers):
    r = client.post("/api/v1/content", json={"body": "Mine"}, headers=auth_headers(author))
    content_id = r.json()["id"]

    r = client.post(
        f"/api/v1/content/{content_id}/revisions",
        json={"body": "Not yours"},
        headers=auth_headers(member),
    )
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


def test_unpublished_content_is_hidden_from_others(
    client, author, member, moderator, auth_headers
):
    r = client.post("/api/v1/content", json={"body": "Draft"}, headers=auth_headers(author))
    content_id = r.json()["id"]

    r = client.get(f"/api/v1/content/{content_id}", headers=auth_headers(author))
    assert r.status_code == 200
    assert (
        client.get(f"/api/v1/content/{content_id}", headers=auth_headers(moderator)).status_code
        == 200
    )
    r = client.get(f"/api/v1/content/{content_id}", headers=auth_headers(member))
    assert r.status_code == 404
