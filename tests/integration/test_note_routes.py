"""Integration tests for /api/notes and /api/activity."""

import pytest

from tests.integration.flows import bearer, login, register_and_verify


@pytest.fixture
def other_session(client, mailbox):
    register_and_verify(client, mailbox, "bob@example.com")
    body = login(client, mailbox, "bob@example.com")
    client.cookies.clear()
    return bearer(body)


def _create(client, headers, **fields):
    payload = {"title": "Groceries", "content": "eggs and milk", **fields}
    resp = client.post("/api/notes", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestNoteCrud:
    def test_requires_session(self, client):
        assert client.get("/api/notes").status_code == 401

    def test_create_normalizes_input(self, client, session):
        note = _create(
            client, session, title="  Groceries  ", tags=["Food", "food", " Home "]
        )
        assert note["title"] == "Groceries"
        assert note["tags"] == ["food", "home"]
        assert note["is_public"] is False
        assert note["id"]

    def test_empty_title_rejected(self, client, session):
        resp = client.post(
            "/api/notes", json={"title": "   ", "content": "x"}, headers=session
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_get_update_delete(self, client, session):
        note = _create(client, session)
        url = f"/api/notes/{note['id']}"

        assert client.get(url, headers=session).json()["title"] == "Groceries"

        resp = client.put(url, json={"content": "bread"}, headers=session)
        assert resp.status_code == 200
        assert resp.json()["content"] == "bread"
        assert resp.json()["title"] == "Groceries"

        resp = client.delete(url, headers=session)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert client.get(url, headers=session).status_code == 404

    def test_unknown_and_malformed_ids(self, client, session):
        assert client.get("/api/notes/not-an-id", headers=session).status_code == 404
        resp = client.get("/api/notes/0123456789abcdef01234567", headers=session)
        assert resp.status_code == 404

    def test_render(self, client, session):
        note = _create(client, session, content="# Hello")
        resp = client.get(f"/api/notes/{note['id']}/render", headers=session)
        assert resp.status_code == 200
        assert resp.json() == {
            "id": note["id"],
            "title": "Groceries",
            "html": "<p># Hello</p>",
        }


class TestNotePermissions:
    def test_private_note_hidden_from_others(self, client, session, other_session):
        note = _create(client, session)
        url = f"/api/notes/{note['id']}"
        assert client.get(url, headers=other_session).status_code == 403
        assert client.get(f"{url}/render", headers=other_session).status_code == 403

    def test_public_note_readable_not_writable(self, client, session, other_session):
        note = _create(client, session, isPublic=True)
        url = f"/api/notes/{note['id']}"
        assert client.get(url, headers=other_session).status_code == 200
        resp = client.put(url, json={"title": "Mine now"}, headers=other_session)
        assert resp.status_code == 403
        assert client.delete(url, headers=other_session).status_code == 403


class TestNoteListing:
    def test_pagination_and_search(self, client, session, other_session):
        for i in range(3):
            _create(client, session, title=f"Note {i}")
        _create(client, session, title="Recipe", content="pancakes")
        _create(client, other_session, title="Recipe", content="not yours")

        resp = client.get("/api/notes", params={"limit": 2}, headers=session)
        body = resp.json()
        assert len(body["notes"]) == 2
        assert body["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 4,
            "pages": 2,
            "has_next": True,
        }

        resp = client.get("/api/notes", params={"q": "recipe"}, headers=session)
        notes = resp.json()["notes"]
        assert [n["content"] for n in notes] == ["pancakes"]

    def test_limit_bounds(self, client, session):
        resp = client.get("/api/notes", params={"limit": 0}, headers=session)
        assert resp.status_code == 400

    def test_stats(self, client, session):
        _create(client, session, content="one two three")
        _create(client, session, content="four", isPublic=True)
        resp = client.get("/api/notes/stats", headers=session)
        assert resp.json() == {
            "total_notes": 2,
            "public_notes": 1,
            "private_notes": 1,
            "total_characters": len("one two three") + len("four"),
            "total_words": 4,
        }


class TestActivity:
    def test_note_actions_are_recorded(self, client, session):
        note = _create(client, session)
        client.get(f"/api/notes/{note['id']}", headers=session)

        resp = client.get("/api/activity", headers=session)
        assert resp.status_code == 200
        actions = sorted(a["action"] for a in resp.json()["activities"])
        assert actions == ["CREATE", "LOGIN", "VIEW"]

        resp = client.get("/api/activity", params={"action": "CREATE"}, headers=session)
        (entry,) = resp.json()["activities"]
        assert entry["resource"] == "NOTE"
        assert entry["resource_id"] == note["id"]
        assert entry["details"] == {"title": "Groceries"}

    def test_stats(self, client, session):
        _create(client, session)
        resp = client.get("/api/activity/stats", headers=session)
        body = resp.json()
        assert body["total_activities"] == 2
        assert body["login_count"] == 1
        assert body["note_activities"] == 1
        assert body["by_action"] == {"LOGIN": 1, "CREATE": 1}

    def test_unknown_action_filter(self, client, session):
        resp = client.get("/api/activity", params={"action": "nope"}, headers=session)
        assert resp.status_code == 400

    def test_isolated_per_user(self, client, session, other_session):
        _create(client, session)
        resp = client.get("/api/activity", headers=other_session)
        assert [a["action"] for a in resp.json()["activities"]] == ["LOGIN"]
