"""
tests/integration/test_groups.py — Integration tests for group and membership endpoints.

What this file proves:
  - The admin is always a member; create / join / leave / kick / promote keep
    the derived "groups where admin / member" views consistent with the group.
  - Admin hand-off on leave picks the next member in join order.
  - The last member leaving deletes the group and leaves no references.
  - Duplicate topic names in one payload collapse to one topic.
  - Every rejection path returns the right code and status.
"""

from __future__ import annotations

from .conftest import auth_headers, join, make_group, register


def _admin_group_ids(client, token: str) -> list[int]:
    resp = client.get("/api/v1/users/me/groups/admin", headers=auth_headers(token))
    assert resp.status_code == 200
    return [g["id"] for g in resp.get_json()["data"]]


def _member_group_ids(client, user_id: int) -> list[int]:
    resp = client.get(f"/api/v1/users/{user_id}/groups")
    assert resp.status_code == 200
    return [g["id"] for g in resp.get_json()["data"]]


def _member_ids(client, group_id: int) -> list[int]:
    resp = client.get(f"/api/v1/groups/{group_id}/members")
    assert resp.status_code == 200
    return [m["id"] for m in resp.get_json()["data"]]


# ═══════════════════════════════════════════════════════════════════════════
# POST /groups
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateGroup:

    def test_creator_is_admin_and_only_member(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"], "Algorithms")

        assert group["name"] == "Algorithms"
        assert group["admin"]["id"] == alice["user"]["id"]
        assert [m["id"] for m in group["members"]] == [alice["user"]["id"]]
        assert group["meeting_dates"] == []

        assert _admin_group_ids(client, alice["access_token"]) == [group["id"]]
        assert _member_group_ids(client, alice["user"]["id"]) == [group["id"]]

    def test_anonymous_create_returns_401(self, client):
        resp = client.post("/api/v1/groups/", json={"name": "Nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "ANONYMOUS_CALLER"

    def test_blank_name_returns_400(self, client):
        token = register(client, "alice")["access_token"]
        resp = client.post("/api/v1/groups/", json={"name": "   "}, headers=auth_headers(token))
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "name"

    def test_duplicate_topics_collapse_case_insensitively(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(
            client,
            token,
            topics=[{"name": "AI"}, {"name": "ai"}, {"name": "ML"}],
        )
        assert sorted(t["name"] for t in group["topics"]) == ["ai", "ml"]

        topics = client.get("/api/v1/topics/").get_json()["data"]
        assert len(topics) == 2

    def test_existing_topic_is_reused(self, client):
        token = register(client, "alice")["access_token"]
        first = make_group(client, token, "One", topics=[{"name": "Databases"}])
        second = make_group(client, token, "Two", topics=[{"name": "  databases "}])

        assert first["topics"][0]["id"] == second["topics"][0]["id"]
        assert first["topics"][0]["description"] == (
            "This is the default description for the topic Databases."
        )

    def test_text_location_is_accepted(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token, location="Library, room 2")
        assert group["location"] == {
            "name": "Library, room 2",
            "latitude": None,
            "longitude": None,
        }

    def test_structured_location_is_accepted(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(
            client,
            token,
            location={"name": "Campus", "latitude": 52.5, "longitude": 13.4},
        )
        assert group["location"]["latitude"] == 52.5


# ═══════════════════════════════════════════════════════════════════════════
# GET /groups, GET /groups/:id
# ═══════════════════════════════════════════════════════════════════════════

class TestReadGroups:

    def test_list_groups_is_public_and_ordered_by_creation(self, client):
        token = register(client, "alice")["access_token"]
        first = make_group(client, token, "First")
        second = make_group(client, token, "Second")

        resp = client.get("/api/v1/groups/")
        assert resp.status_code == 200
        ids = [g["id"] for g in resp.get_json()["data"]]
        assert ids == [first["id"], second["id"]]

    def test_get_unknown_group_returns_404(self, client):
        resp = client.get("/api/v1/groups/424242")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# PUT /groups/:id, DELETE /groups/:id
# ═══════════════════════════════════════════════════════════════════════════

class TestUpdateAndDeleteGroup:

    def test_admin_can_update(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token, "Old", topics=[{"name": "Math"}])

        resp = client.put(
            f"/api/v1/groups/{group['id']}",
            json={"name": "New", "description": "Weekly", "topics": [{"name": "Physics"}]},
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["name"] == "New"
        assert data["description"] == "Weekly"
        assert [t["name"] for t in data["topics"]] == ["physics"]

    def test_non_admin_update_returns_403(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")["access_token"]
        group = make_group(client, alice)
        join(client, bob, group["id"])

        resp = client.put(
            f"/api/v1/groups/{group['id']}",
            json={"name": "Hijacked"},
            headers=auth_headers(bob),
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "NOT_GROUP_ADMIN"

    def test_delete_detaches_everything(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"], topics=[{"name": "AI"}])
        join(client, bob["access_token"], group["id"])
        client.post(
            f"/api/v1/groups/{group['id']}/meeting-dates",
            json={"meeting_dates": ["2099-01-01T10:00:00+00:00"]},
            headers=auth_headers(alice["access_token"]),
        )

        resp = client.delete(
            f"/api/v1/groups/{group['id']}",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200

        assert client.get(f"/api/v1/groups/{group['id']}").status_code == 404
        assert _admin_group_ids(client, alice["access_token"]) == []
        assert _member_group_ids(client, alice["user"]["id"]) == []
        assert _member_group_ids(client, bob["user"]["id"]) == []
        # The topic itself survives; only the link is gone.
        assert len(client.get("/api/v1/topics/").get_json()["data"]) == 1

    def test_non_admin_delete_returns_403(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")["access_token"]
        group = make_group(client, alice)

        resp = client.delete(f"/api/v1/groups/{group['id']}", headers=auth_headers(bob))
        assert resp.status_code == 403


# ═══════════════════════════════════════════════════════════════════════════
# POST /groups/:id/join, POST /groups/:id/leave
# ═══════════════════════════════════════════════════════════════════════════

class TestJoinAndLeave:

    def test_join_adds_member(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])

        resp = join(client, bob["access_token"], group["id"])
        assert resp.status_code == 201
        assert resp.get_json()["data"]["user_id"] == bob["user"]["id"]
        assert _member_ids(client, group["id"]) == [alice["user"]["id"], bob["user"]["id"]]
        assert _member_group_ids(client, bob["user"]["id"]) == [group["id"]]

    def test_double_join_returns_409(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")["access_token"]
        group = make_group(client, alice)

        join(client, bob, group["id"])
        resp = join(client, bob, group["id"])
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_MEMBER"

    def test_join_unknown_group_returns_404(self, client):
        token = register(client, "alice")["access_token"]
        resp = join(client, token, 9999)
        assert resp.status_code == 404

    def test_member_leaves(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        join(client, bob["access_token"], group["id"])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/leave",
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["deleted"] is False
        assert _member_ids(client, group["id"]) == [alice["user"]["id"]]
        assert _member_group_ids(client, bob["user"]["id"]) == []

    def test_admin_leave_hands_off_to_next_member(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        carol = register(client, "carol")
        group = make_group(client, alice["access_token"])
        join(client, bob["access_token"], group["id"])
        join(client, carol["access_token"], group["id"])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/leave",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["new_admin_user_id"] == bob["user"]["id"]

        details = client.get(f"/api/v1/groups/{group['id']}").get_json()["data"]
        assert details["admin"]["id"] == bob["user"]["id"]
        assert [m["id"] for m in details["members"]] == [bob["user"]["id"], carol["user"]["id"]]
        assert _admin_group_ids(client, bob["access_token"]) == [group["id"]]
        assert _admin_group_ids(client, alice["access_token"]) == []

    def test_last_member_leaving_deletes_group(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"], topics=[{"name": "AI"}])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/leave",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["deleted"] is True
        assert client.get(f"/api/v1/groups/{group['id']}").status_code == 404
        assert _member_group_ids(client, alice["user"]["id"]) == []

    def test_non_member_leave_returns_422(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")["access_token"]
        group = make_group(client, alice)

        resp = client.post(f"/api/v1/groups/{group['id']}/leave", headers=auth_headers(bob))
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "NOT_A_MEMBER"


# ═══════════════════════════════════════════════════════════════════════════
# DELETE /groups/:id/members/:uid, POST /groups/:id/members/:uid/promote
# ═══════════════════════════════════════════════════════════════════════════

class TestKickAndPromote:

    def test_admin_kicks_member(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        join(client, bob["access_token"], group["id"])

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{bob['user']['id']}",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["removed"] is True
        assert _member_ids(client, group["id"]) == [alice["user"]["id"]]

    def test_kick_admin_returns_422(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{alice['user']['id']}",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "CANNOT_KICK_ADMIN"

    def test_kick_unknown_user_returns_404(self, client):
        alice = register(client, "alice")["access_token"]
        group = make_group(client, alice)

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/777777",
            headers=auth_headers(alice),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "TARGET_NOT_FOUND"

    def test_kick_non_member_returns_422(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")
        group = make_group(client, alice)

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{bob['user']['id']}",
            headers=auth_headers(alice),
        )
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "TARGET_NOT_A_MEMBER"

    def test_non_admin_kick_returns_403(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        join(client, bob["access_token"], group["id"])

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{alice['user']['id']}",
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "NOT_GROUP_ADMIN"

    def test_promote_moves_adminship(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        join(client, bob["access_token"], group["id"])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/members/{bob['user']['id']}/promote",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["admin_user_id"] == bob["user"]["id"]
        assert data["previous_admin_user_id"] == alice["user"]["id"]

        assert _admin_group_ids(client, bob["access_token"]) == [group["id"]]
        assert _admin_group_ids(client, alice["access_token"]) == []
        # The former admin stays a member.
        assert _member_ids(client, group["id"]) == [alice["user"]["id"], bob["user"]["id"]]

    def test_promote_current_admin_returns_409(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/members/{alice['user']['id']}/promote",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_ADMIN"
