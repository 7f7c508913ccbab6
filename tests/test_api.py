"""HTTP surface tests: routing, parameter handling and error rendering."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from feedrank.clients.kafka_producer import publish_impression
from feedrank.clients.redis_client import get_redis
from feedrank.database import get_db
from feedrank.main import app
from feedrank.routers import explore
from feedrank.utils import new_id


@pytest.fixture
async def client(db, redis):
    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_redis] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


class TestFeedEndpoints:

    async def test_home_feed(self, client, factory):
        viewer = await factory.user("viewer")
        post = await factory.post(viewer, age_hours=0.5)

        resp = await client.get("/feed/", params={"viewer_id": viewer.user_id})

        assert resp.status_code == 200
        body = resp.json()
        assert body["surface"] == "home"
        assert [i["post_id"] for i in body["items"]] == [post.post_id]

    async def test_page_size_clamped(self, client, factory):
        viewer = await factory.user("viewer")
        resp = await client.get("/feed/", params={"viewer_id": viewer.user_id, "page_size": 500})
        assert resp.status_code == 200
        assert resp.json()["page_size"] == 50

    async def test_invalid_viewer_is_400(self, client):
        resp = await client.get("/feed/", params={"viewer_id": "nope"})
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Invalid viewer_id"}

    async def test_invalid_page_is_400(self, client, factory):
        viewer = await factory.user("viewer")
        resp = await client.get("/feed/", params={"viewer_id": viewer.user_id, "page": 0})
        assert resp.status_code == 400

    async def test_following_feed(self, client, factory):
        viewer = await factory.user("viewer")
        resp = await client.get(
            "/feed/following", params={"viewer_id": viewer.user_id, "interleave": "true"}
        )
        assert resp.status_code == 200
        assert resp.json()["surface"] == "following"

    async def test_explore_feed(self, client, factory):
        viewer = await factory.user("viewer")
        stranger = await factory.user("stranger")
        post = await factory.post(stranger, age_hours=0.5)

        resp = await client.get("/explore/", params={"viewer_id": viewer.user_id, "kinds": "post"})

        assert resp.status_code == 200
        items = resp.json()["items"]
        assert [i["post_id"] for i in items] == [post.post_id]
        assert items[0]["following"] is None


class TestImpressionEndpoint:

    async def test_accept_then_duplicate(self, client, factory):
        viewer = await factory.user("viewer")
        stranger = await factory.user("stranger")
        post = await factory.post(stranger)
        body = {"viewer_id": viewer.user_id, "post_id": post.post_id, "session_id": "s1"}

        first = await client.post("/explore/impression", json=body)
        second = await client.post("/explore/impression", json=body)

        assert first.json() == {"post_id": post.post_id, "accepted": True, "duplicate": False}
        assert second.json() == {"post_id": post.post_id, "accepted": False, "duplicate": True}

    async def test_event_matches_stored_row(self, client, factory, monkeypatch):
        viewer = await factory.user("viewer")
        stranger = await factory.user("stranger")
        post = await factory.post(stranger)
        published = []

        async def capture(*args):
            published.append(args)

        monkeypatch.setattr(explore, "publish_impression", capture)
        await client.post(
            "/explore/impression",
            json={
                "viewer_id": viewer.user_id.upper(),
                "post_id": post.post_id,
                "session_id": " s1 ",
                "source": "  home  ",
            },
        )
        await asyncio.sleep(0)

        assert published
        user_id, post_id, session_id, position, source, _ = published[0]
        assert (user_id, post_id, session_id, position, source) == (
            viewer.user_id, post.post_id, "s1", None, "home"
        )

    async def test_publish_without_producer_is_dropped(self):
        await publish_impression(new_id(), new_id(), "s1", None, "explore", 0)

    async def test_unknown_post_is_404(self, client, factory):
        viewer = await factory.user("viewer")
        resp = await client.post(
            "/explore/impression",
            json={"viewer_id": viewer.user_id, "post_id": new_id(), "session_id": "s1"},
        )
        assert resp.status_code == 404

    async def test_blocked_is_403(self, client, factory):
        viewer = await factory.user("viewer")
        author = await factory.user("author")
        post = await factory.post(author)
        await factory.block(author, viewer)
        resp = await client.post(
            "/explore/impression",
            json={"viewer_id": viewer.user_id, "post_id": post.post_id, "session_id": "s1"},
        )
        assert resp.status_code == 403


class TestInteractionEndpoints:

    async def test_like_and_unlike(self, client, factory):
        viewer = await factory.user("viewer")
        author = await factory.user("author")
        post = await factory.post(author)

        liked = await client.post(
            f"/posts/{post.post_id}/interactions",
            json={"viewer_id": viewer.user_id, "type": "like"},
        )
        unliked = await client.delete(
            f"/posts/{post.post_id}/interactions/like",
            params={"viewer_id": viewer.user_id},
        )

        assert liked.status_code == 200
        assert liked.json()["created"] is True
        assert unliked.json()["removed"] is True

    async def test_unknown_type_rejected(self, client, factory):
        viewer = await factory.user("viewer")
        author = await factory.user("author")
        post = await factory.post(author)
        resp = await client.post(
            f"/posts/{post.post_id}/interactions",
            json={"viewer_id": viewer.user_id, "type": "applause"},
        )
        assert resp.status_code == 422


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
