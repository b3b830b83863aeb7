import pytest

from tests.conftest import generate_test_token
from tests.utils.api_client import api_path, auth_headers, data_of


async def _submit(client, author, payload):
    resp = await client.post(api_path("manuscripts"), json=payload, headers=author["headers"])
    assert resp.status_code == 201, resp.text
    return data_of(resp)


async def _move(client, actor, manuscript_id, status, note="ok", **extra):
    return await client.post(
        api_path(f"manuscripts/{manuscript_id}/transitions"),
        json={"status": status, "note": note, **extra},
        headers=actor["headers"],
    )


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client, fake_db):
    resp = await client.get(api_path("manuscripts/mine"))
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Authentication required", "type": "unauthorized"}


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client, fake_db, expired_token):
    resp = await client.get(api_path("users/me"), headers=auth_headers(expired_token))
    assert resp.status_code == 401
    assert resp.json()["type"] == "unauthorized"


@pytest.mark.asyncio
async def test_submit_and_read_back(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    created = await _submit(client, author, submission_payload)

    assert created["status"] == "submitted"
    assert created["version"] == 1
    assert created["author_id"] == author["id"]

    mine = data_of(await client.get(api_path("manuscripts/mine"), headers=author["headers"]))
    assert [m["id"] for m in mine] == [created["id"]]

    detail = data_of(await client.get(api_path(f"manuscripts/{created['id']}"), headers=author["headers"]))
    assert detail["title"] == submission_payload["title"]

    history = data_of(await client.get(api_path(f"manuscripts/{created['id']}/history"), headers=author["headers"]))
    assert len(history) == 1
    assert history[0]["previous_status"] is None
    assert history[0]["new_status"] == "submitted"


@pytest.mark.asyncio
async def test_invalid_submission_payload_is_422(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    resp = await client.post(
        api_path("manuscripts"),
        json={**submission_payload, "title": "abc"},
        headers=author["headers"],
    )
    assert resp.status_code == 422
    assert fake_db.rows("submissions") == []


@pytest.mark.asyncio
async def test_other_authors_cannot_see_submission(client, fake_db, make_user, submission_payload):
    owner = make_user("author")
    stranger = make_user("author")
    created = await _submit(client, owner, submission_payload)

    resp = await client.get(api_path(f"manuscripts/{created['id']}"), headers=stranger["headers"])
    assert resp.status_code == 403
    resp = await client.get(api_path(f"manuscripts/{created['id']}/history"), headers=stranger["headers"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_editor_queue_and_transitions(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    editor = make_user("editor")
    created = await _submit(client, author, submission_payload)
    ms_id = created["id"]

    resp = await client.get(api_path("manuscripts"), headers=author["headers"])
    assert resp.status_code == 403

    queue = data_of(await client.get(api_path("manuscripts?status=submitted"), headers=editor["headers"]))
    assert [m["id"] for m in queue] == [ms_id]

    targets = data_of(await client.get(api_path(f"manuscripts/{ms_id}/transitions"), headers=editor["headers"]))
    assert "pending_for_review" in targets

    resp = await _move(client, editor, ms_id, "pending_for_review", note="Queued for review")
    assert resp.status_code == 200
    moved = data_of(resp)
    assert moved["status"] == "pending_for_review"
    assert moved["version"] == 2

    latest = data_of(await client.get(api_path(f"manuscripts/{ms_id}/history/latest"), headers=author["headers"]))
    assert latest["previous_status"] == "submitted"
    assert latest["new_status"] == "pending_for_review"
    assert latest["changed_by_role"] == "editor"
    assert latest["note"] == "Queued for review"


@pytest.mark.asyncio
async def test_illegal_transition_is_409_and_writes_nothing(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    editor = make_user("editor")
    created = await _submit(client, author, submission_payload)

    resp = await _move(client, editor, created["id"], "accepted")
    assert resp.status_code == 409
    assert resp.json()["type"] == "invalid_transition"

    # 编辑无发布权限，但 submitted -> published 本身就不是合法边
    resp = await _move(client, editor, created["id"], "published")
    assert resp.status_code == 409
    assert resp.json()["type"] == "invalid_transition"
    assert fake_db.get("submissions", created["id"])["status"] == "submitted"
    assert len(fake_db.rows("manuscript_status_history")) == 1


@pytest.mark.asyncio
async def test_author_cannot_accept(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    editor = make_user("editor")
    created = await _submit(client, author, submission_payload)
    for status in ("pending_for_review", "under_peer_review"):
        assert (await _move(client, editor, created["id"], status)).status_code == 200

    resp = await _move(client, author, created["id"], "accepted")
    assert resp.status_code == 403
    assert resp.json()["type"] == "forbidden"
    assert fake_db.get("submissions", created["id"])["status"] == "under_peer_review"


@pytest.mark.asyncio
async def test_unknown_status_literal_is_422(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    editor = make_user("editor")
    created = await _submit(client, author, submission_payload)

    resp = await _move(client, editor, created["id"], "teleported")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_missing_manuscript_is_404(client, fake_db, make_user):
    editor = make_user("editor")
    resp = await client.get(
        api_path("manuscripts/00000000-0000-0000-0000-000000000000/history"),
        headers=editor["headers"],
    )
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Submission not found", "type": "not_found"}


@pytest.mark.asyncio
async def test_malformed_manuscript_id_is_404(client, fake_db, make_user):
    editor = make_user("editor")
    for suffix in ("", "/history", "/history/latest", "/transitions", "/reviews"):
        resp = await client.get(api_path(f"manuscripts/not-a-uuid{suffix}"), headers=editor["headers"])
        assert resp.status_code == 404, suffix
        assert resp.json()["type"] == "not_found"

    resp = await _move(client, editor, "not-a-uuid", "pending_for_review")
    assert resp.status_code == 404
    assert resp.json()["type"] == "not_found"


@pytest.mark.asyncio
async def test_reviews_round_trip(client, fake_db, make_user, submission_payload):
    author = make_user("author")
    editor = make_user("editor")
    created = await _submit(client, author, submission_payload)
    path = api_path(f"manuscripts/{created['id']}/reviews")

    resp = await client.post(path, json={"verdict": "approve", "comments": "Clear and well argued."}, headers=author["headers"])
    assert resp.status_code == 403

    resp = await client.post(path, json={"verdict": "approve", "comments": "Clear and well argued."}, headers=editor["headers"])
    assert resp.status_code == 201, resp.text

    reviews = data_of(await client.get(path, headers=author["headers"]))
    assert [r["comments"] for r in reviews] == ["Clear and well argued."]


@pytest.mark.asyncio
async def test_first_unknown_token_becomes_admin(client, fake_db):
    token = generate_test_token(user_id="auth-first", email="first@example.com", name="First User")
    me = data_of(await client.get(api_path("users/me"), headers=auth_headers(token)))
    assert me["role"] == "admin"
    assert "user:change_role" in me["allowed_actions"]

    second = generate_test_token(user_id="auth-second", email="second@example.com")
    me = data_of(await client.get(api_path("users/me"), headers=auth_headers(second)))
    assert me["role"] == "author"
    assert me["allowed_actions"] == sorted(me["allowed_actions"])
