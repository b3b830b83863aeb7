import pytest

from tests.utils.api_client import api_path, data_of


async def _accepted_submission(client, people, payload):
    resp = await client.post(api_path("manuscripts"), json=payload, headers=people["author"]["headers"])
    ms_id = data_of(resp)["id"]
    for status in ("pending_for_review", "under_peer_review", "accepted"):
        resp = await client.post(
            api_path(f"manuscripts/{ms_id}/transitions"),
            json={"status": status, "note": f"Moved to {status}"},
            headers=people["editor"]["headers"],
        )
        assert resp.status_code == 200, resp.text
    return ms_id


async def _published_issue(client, people, number=1):
    resp = await client.post(
        api_path("issues"),
        json={"title": f"Volume 2, Issue {number}", "volume": 2, "issue_number": number, "publication_date": "2026-06"},
        headers=people["editor"]["headers"],
    )
    assert resp.status_code == 201, resp.text
    issue = data_of(resp)
    resp = await client.put(
        api_path(f"issues/{issue['id']}/published"),
        json={"is_published": True},
        headers=people["admin"]["headers"],
    )
    assert resp.status_code == 200, resp.text
    return data_of(resp)


@pytest.fixture
def people(make_user):
    return {"admin": make_user("admin"), "editor": make_user("editor"), "author": make_user("author")}


@pytest.mark.asyncio
async def test_issue_permissions(client, fake_db, people):
    body = {"title": "Volume 1, Issue 1", "volume": 1, "issue_number": 1, "publication_date": "2026-01"}
    resp = await client.post(api_path("issues"), json=body, headers=people["author"]["headers"])
    assert resp.status_code == 403

    issue = data_of(await client.post(api_path("issues"), json=body, headers=people["editor"]["headers"]))
    resp = await client.put(
        api_path(f"issues/{issue['id']}/published"), json={"is_published": True}, headers=people["editor"]["headers"]
    )
    assert resp.status_code == 403

    listed = data_of(await client.get(api_path("issues")))
    assert [i["id"] for i in listed] == [issue["id"]]


@pytest.mark.asyncio
async def test_promote_publish_and_browse(client, fake_db, people, submission_payload):
    issue = await _published_issue(client, people)
    ms_id = await _accepted_submission(client, people, submission_payload)

    resp = await client.post(
        api_path(f"manuscripts/{ms_id}/promote"),
        json={"issue_id": issue["id"], "page_range": "1-12", "advance": True},
        headers=people["editor"]["headers"],
    )
    assert resp.status_code == 403

    resp = await client.post(
        api_path(f"manuscripts/{ms_id}/promote"),
        json={"issue_id": issue["id"], "page_range": "1-12", "advance": True},
        headers=people["admin"]["headers"],
    )
    assert resp.status_code == 201, resp.text
    result = data_of(resp)
    article = result["article"]
    assert result["submission"]["status"] == "published"
    assert article["slug"] == "effects-of-peer-tutoring-on-reading-fluency"

    latest = data_of(await client.get(api_path("articles/latest")))
    assert [a["id"] for a in latest] == [article["id"]]

    by_slug = data_of(await client.get(api_path(f"articles/{article['slug']}")))
    assert by_slug["id"] == article["id"]
    assert by_slug["page_range"] == "1-12"

    found = data_of(await client.get(api_path("articles/search"), params={"q": "peer tutoring"}))
    assert [a["id"] for a in found] == [article["id"]]
    assert data_of(await client.get(api_path("articles/search"), params={"q": ""})) == []

    in_issue = data_of(await client.get(api_path(f"issues/{issue['id']}/articles")))
    assert [a["id"] for a in in_issue] == [article["id"]]

    history = data_of(await client.get(api_path(f"manuscripts/{ms_id}/history"), headers=people["author"]["headers"]))
    assert [h["new_status"] for h in history][-2:] == ["pre_publication", "published"]


@pytest.mark.asyncio
async def test_counters_and_removal(client, fake_db, people, submission_payload):
    issue = await _published_issue(client, people)
    ms_id = await _accepted_submission(client, people, submission_payload)
    article = data_of(
        await client.post(
            api_path(f"manuscripts/{ms_id}/promote"),
            json={"issue_id": issue["id"], "advance": True},
            headers=people["admin"]["headers"],
        )
    )["article"]

    assert (await client.post(api_path(f"articles/{article['id']}/views"))).json() == {"success": True}
    assert (await client.post(api_path(f"articles/{article['id']}/downloads"))).json() == {"success": True}
    stored = fake_db.get("articles", article["id"])
    assert (stored["views"], stored["downloads"]) == (1, 1)

    resp = await client.delete(api_path(f"articles/{article['id']}"), headers=people["editor"]["headers"])
    assert resp.status_code == 403
    resp = await client.delete(api_path(f"articles/{article['id']}"), headers=people["admin"]["headers"])
    assert resp.status_code == 200, resp.text

    assert fake_db.get("submissions", ms_id)["status"] == "unpublished"
    assert data_of(await client.get(api_path("articles/latest"))) == []
    resp = await client.get(api_path(f"articles/{article['slug']}"))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unknown_article_is_404(client, fake_db):
    resp = await client.get(api_path("articles/does-not-exist"))
    assert resp.status_code == 404
    assert resp.json()["type"] == "not_found"
