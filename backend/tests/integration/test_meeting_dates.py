"""
tests/integration/test_meeting_dates.py — Adding and removing group meeting dates.

What this file proves:
  - A batch with one past date is rejected whole (MEETING_DATE_IN_PAST, 422)
    and nothing from it is stored.
  - Meeting dates form a set: the same instant in another UTC offset is not
    stored twice.
  - Dates come back newest first.
  - Only the admin may change the schedule.
"""

from __future__ import annotations

from .conftest import FUTURE_1, FUTURE_2, FUTURE_3, PAST, auth_headers, join, make_group, register


def _add(client, token: str, group_id: int, dates: list[str]):
    return client.post(
        f"/api/v1/groups/{group_id}/meeting-dates",
        json={"meeting_dates": dates},
        headers=auth_headers(token),
    )


def _remove(client, token: str, group_id: int, dates: list[str]):
    return client.delete(
        f"/api/v1/groups/{group_id}/meeting-dates",
        json={"meeting_dates": dates},
        headers=auth_headers(token),
    )


class TestAddMeetingDates:

    def test_dates_are_returned_newest_first(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)

        resp = _add(client, token, group["id"], [FUTURE_1, FUTURE_3, FUTURE_2])
        assert resp.status_code == 200
        assert resp.get_json()["data"]["meeting_dates"] == [FUTURE_3, FUTURE_2, FUTURE_1]

        details = client.get(f"/api/v1/groups/{group['id']}").get_json()["data"]
        assert details["meeting_dates"] == [FUTURE_3, FUTURE_2, FUTURE_1]

    def test_same_instant_in_other_offset_is_not_duplicated(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)

        _add(client, token, group["id"], [FUTURE_1])
        resp = _add(client, token, group["id"], ["2099-01-10T20:00:00+02:00", FUTURE_1])
        assert resp.status_code == 200
        assert resp.get_json()["data"]["meeting_dates"] == [FUTURE_1]

    def test_batch_with_past_date_is_rejected_whole(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)

        resp = _add(client, token, group["id"], [FUTURE_1, PAST])
        assert resp.status_code == 422
        err = resp.get_json()["error"]
        assert err["code"] == "MEETING_DATE_IN_PAST"
        assert err["field"] == "meeting_dates"

        details = client.get(f"/api/v1/groups/{group['id']}").get_json()["data"]
        assert details["meeting_dates"] == []

    def test_non_admin_returns_403(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")["access_token"]
        group = make_group(client, alice)
        join(client, bob, group["id"])

        resp = _add(client, bob, group["id"], [FUTURE_1])
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "NOT_GROUP_ADMIN"

    def test_naive_timestamp_returns_400(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)

        resp = _add(client, token, group["id"], ["2099-01-10T18:00:00"])
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_FIELD"
        assert resp.get_json()["error"]["field"] == "meeting_dates"

    def test_empty_batch_returns_400(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)

        resp = _add(client, token, group["id"], [])
        assert resp.status_code == 400

    def test_next_meeting_appears_in_group_list(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)
        _add(client, token, group["id"], [FUTURE_2, FUTURE_1])

        listed = client.get("/api/v1/groups/").get_json()["data"]
        assert listed[0]["next_meeting_at"] == FUTURE_1


class TestRemoveMeetingDates:

    def test_remove_listed_dates_and_ignore_unknown(self, client):
        token = register(client, "alice")["access_token"]
        group = make_group(client, token)
        _add(client, token, group["id"], [FUTURE_1, FUTURE_2])

        resp = _remove(client, token, group["id"], [FUTURE_1, FUTURE_3])
        assert resp.status_code == 200
        assert resp.get_json()["data"]["meeting_dates"] == [FUTURE_2]

    def test_non_admin_remove_returns_403(self, client):
        alice = register(client, "alice")["access_token"]
        bob = register(client, "bob")["access_token"]
        group = make_group(client, alice)
        _add(client, alice, group["id"], [FUTURE_1])

        resp = _remove(client, bob, group["id"], [FUTURE_1])
        assert resp.status_code == 403
