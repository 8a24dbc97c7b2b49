import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from csrf import token_problem
from feed_store import get_feed_store
from main import app
from session import get_current_user


@pytest.fixture
def client(store, user_id):
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=user_id)
    app.dependency_overrides[get_feed_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def csrf_headers(client):
    resp = client.get("/csrf")
    assert resp.status_code == 200
    body = resp.json()
    return {body["header"]: body["csrf"]}


def test_feed_page_shape(client, store):
    for _ in range(3):
        store.add_video()

    resp = client.get("/feed", params={"limit": 2})

    assert resp.status_code == 200
    body = resp.json()
    assert len(body["items"]) == 2
    assert body["next_offset"] == 2
    assert body["source"] == "blended(collaborative=0,popular=2,interactive=0)"
    item = body["items"][0]
    assert item["source"] == "popular"
    assert item["public_url"].endswith(f"/videos/videos/{item['id']}.mp4")

    last = client.get("/feed", params={"limit": 2, "offset": 2}).json()
    assert len(last["items"]) == 1
    assert last["next_offset"] is None


def test_feed_reports_reset(client, store, user_id):
    vid = store.add_video()
    store.view(user_id, vid)

    body = client.get("/feed").json()

    assert body["source"].startswith("reset+blended(")
    assert [item["id"] for item in body["items"]] == [str(vid)]


def test_empty_feed(client):
    body = client.get("/feed").json()
    assert body == {"items": [], "next_offset": None, "source": "empty"}


def test_feed_store_unavailable(client, store):
    store.failing.add("collaborative_candidates")
    assert client.get("/feed").status_code == 503


def test_feed_rejects_negative_paging(client):
    assert client.get("/feed", params={"offset": -1}).status_code == 422


def test_single_content_feed(client, store):
    proposal = uuid.uuid4()
    first = store.add_video(target_id=proposal, age=timedelta(hours=2))
    second = store.add_video(target_id=proposal, target_type="proposal")

    body = client.get(f"/feed/content/proposal/{proposal}", params={"limit": 1}).json()

    assert [item["id"] for item in body["items"]] == [str(second)]
    assert body["next_offset"] == 1
    rest = client.get(f"/feed/content/proposal/{proposal}", params={"offset": 1}).json()
    assert [item["id"] for item in rest["items"]] == [str(first)]
    assert rest["next_offset"] is None


def test_single_content_feed_bad_target(client):
    assert client.get(f"/feed/content/podcast/{uuid.uuid4()}").status_code == 400
    assert client.get("/feed/content/proposal/123").status_code == 400


def test_mark_viewed(client, store, user_id, csrf_headers):
    vid = store.add_video()

    resp = client.post("/feed/viewed", json={"video_id": str(vid)}, headers=csrf_headers)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert (user_id, vid) in store.views


def test_mark_viewed_errors(client, store, csrf_headers):
    assert client.post("/feed/viewed", json={"video_id": str(store.add_video())}).status_code == 403
    assert client.post("/feed/viewed", json={"video_id": "nope"}, headers=csrf_headers).status_code == 400
    missing = client.post("/feed/viewed", json={"video_id": str(uuid.uuid4())}, headers=csrf_headers)
    assert missing.status_code == 404


def test_bookmark_toggle_and_list(client, store, csrf_headers):
    vid = store.add_video()

    on = client.post("/feed/bookmarks", json={"video_id": str(vid)}, headers=csrf_headers).json()
    assert on == {"video_id": str(vid), "bookmarked": True}
    listed = client.get("/feed/bookmarks").json()
    assert [item["id"] for item in listed["items"]] == [str(vid)]

    off = client.post("/feed/bookmarks", json={"video_id": str(vid)}, headers=csrf_headers).json()
    assert off["bookmarked"] is False
    assert client.get("/feed/bookmarks").json()["items"] == []


def test_vote_routes(client, store, csrf_headers):
    vid = store.add_video()

    resp = client.post(
        "/votes",
        json={"target_type": "video", "target_id": str(vid), "value": 1},
        headers=csrf_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"target_type": "video", "target_id": str(vid), "score": 1, "my_vote": 1}

    state = client.get(f"/votes/video/{vid}").json()
    assert state["score"] == 1

    bad = client.post(
        "/votes",
        json={"target_type": "video", "target_id": str(vid), "value": 3},
        headers=csrf_headers,
    )
    assert bad.status_code == 400
    assert bad.json()["detail"] == "value must be -1, 0, or 1"


def test_csrf_token_must_match_cookie(client, store, csrf_headers):
    vid = str(store.add_video())
    forged = {"x-csrf-token": csrf_headers["x-csrf-token"] + "x"}
    assert client.post("/feed/bookmarks", json={"video_id": vid}, headers=forged).status_code == 403


def test_token_problem():
    assert token_problem(None, "a") == "CSRF token missing"
    assert token_problem("a", "b") == "CSRF token mismatch"
    assert token_problem("a", "a") == "Invalid CSRF token"
