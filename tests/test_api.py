"""
End-to-end API tests through the FastAPI app.
"""
from fastapi.testclient import TestClient


def _create_post(client: TestClient, headers: dict, title: str, content: str = "Body text", ideas=None) -> dict:
    response = client.post(
        "/api/posts",
        json={"title": title, "content": content, "ideas": ideas or []},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _publish(client: TestClient, headers: dict, post_id: str, seo: dict | None = None) -> dict:
    response = client.post(f"/api/posts/{post_id}/publish", json=seo, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestPostsApi:

    def test_draft_hidden_until_published(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Hello World")
        assert post["status"] == "draft"
        assert client.get("/api/posts/hello-world").status_code == 404

        published = _publish(client, admin_headers, post["id"], {"seoTitle": "Hello"})
        assert published["status"] == "published"
        assert published["seoMetadata"]["seoTitle"] == "Hello"

        detail = client.get("/api/posts/hello-world")
        assert detail.status_code == 200
        assert detail.json()["post"]["title"] == "Hello World"

    def test_publish_twice_is_400(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Twice")
        _publish(client, admin_headers, post["id"])
        response = client.post(f"/api/posts/{post['id']}/publish", headers=admin_headers)
        assert response.status_code == 400

    def test_duplicate_title_is_409(self, client: TestClient, admin_headers):
        _create_post(client, admin_headers, "Dupe")
        response = client.post("/api/posts", json={"title": "Dupe", "content": "x"}, headers=admin_headers)
        assert response.status_code == 409

    def test_admin_title_is_409(self, client: TestClient, admin_headers):
        response = client.post("/api/posts", json={"title": "Admin", "content": "x"}, headers=admin_headers)
        assert response.status_code == 409

    def test_update_creates_version(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Evolving", content="first draft")
        response = client.put(
            f"/api/posts/{post['id']}",
            json={"content": "second draft", "changeNote": "rewrite"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["currentVersion"] == 2

        versions = client.get(f"/api/posts/{post['id']}/versions", headers=admin_headers).json()
        assert [(v["version"], v["content"], v["changeNote"]) for v in versions] == [(1, "first draft", "rewrite")]

        one = client.get(f"/api/posts/{post['id']}/versions/1", headers=admin_headers)
        assert one.json()["content"] == "first draft"

    def test_admin_resolve_by_slug(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Admin View")
        response = client.get("/api/posts/admin/admin-view", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["id"] == post["id"]

    def test_list_and_pagination(self, client: TestClient, admin_headers):
        for i in range(3):
            post = _create_post(client, admin_headers, f"Listed {i}")
            _publish(client, admin_headers, post["id"])
        _create_post(client, admin_headers, "Unlisted Draft")

        public = client.get("/api/posts", params={"limit": 2}).json()
        assert public["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

        admin = client.get("/api/posts/admin", params={"status": "draft"}, headers=admin_headers).json()
        assert [p["slug"] for p in admin["posts"]] == ["unlisted-draft"]

    def test_backlinks_scenario(self, client: TestClient, admin_headers):
        target = _create_post(client, admin_headers, "Advanced Topic")
        _publish(client, admin_headers, target["id"])
        intro = _create_post(client, admin_headers, "Intro", content="Check out [[advanced-topic]]")
        _publish(client, admin_headers, intro["id"])

        backlinks = client.get("/api/posts/advanced-topic/backlinks").json()
        assert len(backlinks) == 1
        assert backlinks[0]["post"]["slug"] == "intro"

        detail = client.get("/api/posts/advanced-topic").json()
        assert [b["post"]["slug"] for b in detail["backlinks"]] == ["intro"]

        outbound = client.get(f"/api/posts/{intro['id']}/outbound", headers=admin_headers).json()
        assert [o["post"]["slug"] for o in outbound] == ["advanced-topic"]

    def test_delete_post(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Short Lived")
        response = client.delete(f"/api/posts/{post['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert client.get(f"/api/posts/admin/{post['id']}", headers=admin_headers).status_code == 404

    def test_maintenance_rebuild(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Maintained")
        _publish(client, admin_headers, post["id"])
        response = client.post("/api/posts/maintenance/rebuild-backlinks", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"processed": 1, "references": 0, "failed": 0}


class TestIdeasApi:

    def test_graph_scenario(self, client: TestClient, admin_headers):
        ai = client.post("/api/ideas", json={"name": "AI"}, headers=admin_headers).json()
        a = _create_post(client, admin_headers, "Post A", ideas=[ai["id"]])
        b = _create_post(client, admin_headers, "Post B", ideas=[ai["id"]])
        _publish(client, admin_headers, a["id"])
        _publish(client, admin_headers, b["id"])

        graph = client.get("/api/ideas/graph").json()
        assert graph["nodes"] == [{"id": "ai", "name": "AI", "postCount": 2}]
        assert graph["edges"] == []

        ethics = client.post("/api/ideas", json={"name": "Ethics"}, headers=admin_headers).json()
        client.put(f"/api/posts/{a['id']}", json={"ideas": [ai["id"], ethics["id"]]}, headers=admin_headers)
        assert client.get("/api/ideas/graph").json()["edges"] == [
            {"source": "ai", "target": "ethics", "weight": 1}
        ]

        client.put(f"/api/posts/{b['id']}", json={"ideas": [ai["id"], ethics["id"]]}, headers=admin_headers)
        assert client.get("/api/ideas/graph").json()["edges"] == [
            {"source": "ai", "target": "ethics", "weight": 2}
        ]

    def test_idea_detail_and_delete(self, client: TestClient, admin_headers):
        idea = client.post("/api/ideas", json={"name": "Tools"}, headers=admin_headers).json()
        post = _create_post(client, admin_headers, "Tooling", ideas=[idea["id"]])
        _publish(client, admin_headers, post["id"])

        detail = client.get("/api/ideas/tools").json()
        assert detail["idea"]["postCount"] == 1
        assert [p["slug"] for p in detail["posts"]] == ["tooling"]

        assert client.delete(f"/api/ideas/{idea['id']}", headers=admin_headers).status_code == 204
        assert client.get("/api/ideas/tools").status_code == 404
        assert client.get("/api/posts/tooling").json()["post"]["ideas"] == []

    def test_recount(self, client: TestClient, admin_headers):
        client.post("/api/ideas", json={"name": "Counted"}, headers=admin_headers)
        response = client.post("/api/ideas/maintenance/recount", headers=admin_headers)
        assert response.json() == {"recounted": 1}


class TestThreadsApi:

    def test_thread_flow(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Thread Member")
        _publish(client, admin_headers, post["id"])
        thread = client.post("/api/threads", json={"title": "My Journey"}, headers=admin_headers).json()

        for annotation in ("start", "middle", "end"):
            response = client.post(
                f"/api/threads/{thread['id']}/nodes",
                json={"postId": post["id"], "status": "active", "annotation": annotation},
                headers=admin_headers,
            )
            assert response.status_code == 201
        branch = client.post(
            f"/api/threads/{thread['id']}/nodes",
            json={"postId": post["id"], "status": "tangent", "annotation": "aside", "branchFrom": 1},
            headers=admin_headers,
        ).json()
        assert branch["order"] == 3

        assert client.delete(f"/api/threads/{thread['id']}/nodes/2", headers=admin_headers).status_code == 204

        detail = client.get("/api/threads/my-journey").json()
        assert [n["order"] for n in detail["nodes"]] == [0, 1, 3]
        trunk = detail["timeline"]["trunk"]
        assert [n["order"] for n in trunk] == [0, 1]
        assert [b["order"] for b in trunk[1]["branches"]] == [3]

        patched = client.patch(
            f"/api/threads/{thread['id']}/nodes/3",
            json={"branchFrom": None},
            headers=admin_headers,
        ).json()
        assert patched["branchFrom"] is None

        threads = client.get("/api/posts/thread-member").json()["threads"]
        assert threads == [{"title": "My Journey", "slug": "my-journey", "status": "active"}]

    def test_invalid_node_status_rejected(self, client: TestClient, admin_headers, make_post):
        post = make_post("Any Post")
        thread = client.post("/api/threads", json={"title": "Strict"}, headers=admin_headers).json()
        response = client.post(
            f"/api/threads/{thread['id']}/nodes",
            json={"postId": post.id, "status": "bogus", "annotation": "x"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_private_thread_needs_admin_route(self, client: TestClient, admin_headers):
        client.post("/api/threads", json={"title": "Hidden", "visibility": "private"}, headers=admin_headers)
        assert client.get("/api/threads/hidden").status_code == 404
        assert client.get("/api/threads/admin/hidden", headers=admin_headers).status_code == 200
        assert client.get("/api/threads").json() == []


class TestSearchAndReading:

    def test_search(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Searchable Thing", content="needle in a haystack")
        _publish(client, admin_headers, post["id"])

        result = client.get("/api/search", params={"q": "needle"}).json()
        assert [p["slug"] for p in result["posts"]] == ["searchable-thing"]
        assert client.get("/api/search", params={"q": "n"}).json()["posts"] == []
        assert client.get("/api/search", params={"q": "needle", "type": "bogus"}).status_code == 422

    def test_track_flush_and_stats(self, client: TestClient, admin_headers):
        post = _create_post(client, admin_headers, "Read Me")
        _publish(client, admin_headers, post["id"])

        for session, depth in (("s1", 0.3), ("s1", 0.8), ("s2", 0.5)):
            response = client.post(
                "/api/reading/track",
                json={"postSlug": "read-me", "sessionId": session, "scrollDepth": depth, "timeOnPage": 30},
            )
            assert response.status_code == 202

        flushed = client.post("/api/reading/flush", headers=admin_headers).json()
        assert flushed == {"flushed": 1}

        stats = client.get(f"/api/reading/stats/{post['id']}", headers=admin_headers).json()
        assert stats["totalViews"] == 2
        assert stats["avgReadTime"] == 45
        assert stats["avgCompletionRate"] == 0.8

        site = client.get("/api/reading/stats/site", headers=admin_headers).json()
        assert site["topPosts"][0]["slug"] == "read-me"

    def test_track_validates_scroll_depth(self, client: TestClient):
        response = client.post(
            "/api/reading/track",
            json={"postSlug": "x", "sessionId": "s", "scrollDepth": 1.5, "timeOnPage": 1},
        )
        assert response.status_code == 422


class TestHealth:

    def test_health(self, client: TestClient):
        assert client.get("/health").json()["status"] == "ok"
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["checks"]["analytics"]["running"] is False
