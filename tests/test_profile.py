import datetime as dt

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def team(seed):
    seed.user("admin-1", role="admin")
    seed.user("coach-1", role="coach", full_name="Coach Carter")
    seed.user("p1", full_name="Jane Doe", jersey_number="12", position="SS")
    seed.user("p2", full_name="Amy Adams", jersey_number="3", position="P")
    seed.user("p3", full_name="Zoe Zed", jersey_number="", position="ss")
    seed.user("outsider")
    team_id = seed.team("14U")
    seed.member(team_id, "coach-1", role="coach")
    for player in ("p1", "p2", "p3"):
        seed.member(team_id, player)
    return team_id


def test_profile_update_fields_and_contacts(client: TestClient, team, auth):
    r = client.put(
        "/api/v1/profile/me",
        json={
            "full_name": "Jane Q. Doe",
            "player_profile": {"grade": "9", "bats": "R"},
            "contacts": [
                {"contact_type": "phone", "value": "555-0100", "label": "Mom"},
                {"contact_type": "email", "value": "jane@home.test"},
                {"contact_type": "phone", "value": "555-0101", "label": "Dad"},
            ],
        },
        headers=auth("p1"),
    )
    assert r.status_code == 200, r.text
    profile = r.json()
    assert profile["user"]["full_name"] == "Jane Q. Doe"
    assert profile["player_profile"]["grade"] == "9"
    assert profile["player_profile"]["jersey_number"] == "12"
    assert [(c["contact_type"], c["value"], c["sort_order"]) for c in profile["contacts"]] == [
        ("email", "jane@home.test", 0),
        ("phone", "555-0100", 0),
        ("phone", "555-0101", 1),
    ]
    assert [t["team_name"] for t in profile["teams"]] == ["14U"]

    mom = next(c for c in profile["contacts"] if c["label"] == "Mom")
    r = client.put(
        "/api/v1/profile/me",
        json={"contacts": [{"id": mom["id"], "contact_type": "phone", "value": "555-0199", "label": "Mom"}]},
        headers=auth("p1"),
    )
    assert r.status_code == 200, r.text
    assert [c["value"] for c in r.json()["contacts"] if c["contact_type"] == "phone"] == ["555-0199", "555-0101"]

    r = client.delete(f"/api/v1/profile/me/contacts/{mom['id']}", headers=auth("p1"))
    assert r.status_code == 204
    r = client.delete(f"/api/v1/profile/me/contacts/{mom['id']}", headers=auth("p1"))
    assert r.status_code == 404


def test_at_most_three_contacts_per_type(client: TestClient, team, seed, auth):
    phones = [{"contact_type": "phone", "value": f"555-010{i}"} for i in range(3)]
    r = client.put("/api/v1/profile/me", json={"contacts": phones}, headers=auth("p1"))
    assert r.status_code == 200, r.text

    r = client.put(
        "/api/v1/profile/me", json={"contacts": [{"contact_type": "phone", "value": "555-0199"}]}, headers=auth("p1")
    )
    assert r.status_code == 422
    assert seed.count("user_contacts", user_id="p1") == 3

    emails = [{"contact_type": "email", "value": f"j{i}@x.test"} for i in range(4)]
    r = client.put("/api/v1/profile/me", json={"contacts": emails}, headers=auth("p1"))
    assert r.status_code == 422


def test_new_contact_sorts_after_remaining_ones_once_one_is_deleted(client: TestClient, team, auth):
    phones = [{"contact_type": "phone", "value": v} for v in ("555-0100", "555-0101")]
    contacts = client.put("/api/v1/profile/me", json={"contacts": phones}, headers=auth("p1")).json()["contacts"]
    assert client.delete(f"/api/v1/profile/me/contacts/{contacts[0]['id']}", headers=auth("p1")).status_code == 204

    r = client.put(
        "/api/v1/profile/me", json={"contacts": [{"contact_type": "phone", "value": "555-0102"}]}, headers=auth("p1")
    )
    assert r.status_code == 200, r.text
    assert [(c["value"], c["sort_order"]) for c in r.json()["contacts"]] == [("555-0101", 1), ("555-0102", 2)]


def test_contact_ids_must_belong_to_caller(client: TestClient, team, auth):
    r = client.put(
        "/api/v1/profile/me", json={"contacts": [{"contact_type": "email", "value": "a@b.test"}]}, headers=auth("p2")
    )
    contact_id = r.json()["contacts"][0]["id"]

    r = client.put(
        "/api/v1/profile/me",
        json={"contacts": [{"id": contact_id, "contact_type": "email", "value": "hijack@b.test"}]},
        headers=auth("p1"),
    )
    assert r.status_code == 404
    assert client.delete(f"/api/v1/profile/me/contacts/{contact_id}", headers=auth("p1")).status_code == 404


def test_profile_visibility(client: TestClient, team, auth):
    assert client.get("/api/v1/profile/p1", headers=auth("p1")).status_code == 200
    assert client.get("/api/v1/profile/p1", headers=auth("coach-1")).status_code == 200
    assert client.get("/api/v1/profile/p1", headers=auth("admin-1")).status_code == 200
    assert client.get("/api/v1/profile/p1", headers=auth("p2")).status_code == 403
    assert client.get("/api/v1/profile/outsider", headers=auth("coach-1")).status_code == 403
    assert client.get("/api/v1/users/p1", headers=auth("p2")).status_code == 403


def test_performance_stats(client: TestClient, team, auth):
    for day, velocity in [("2024-05-01", 71.5), ("2024-05-08", 74.0)]:
        r = client.post(
            "/api/v1/players/p1/stats",
            json={"date": day, "exit_velocity": velocity, "sleep_hours": 8},
            headers=auth("coach-1"),
        )
        assert r.status_code == 201, r.text

    assert client.post("/api/v1/players/p1/stats", json={"date": "2024-05-09"}, headers=auth("p1")).status_code == 403
    assert client.post("/api/v1/players/outsider/stats", json={"date": "2024-05-09"}, headers=auth("coach-1")).status_code == 403

    stats = client.get("/api/v1/players/p1/stats", headers=auth("p1")).json()
    assert [s["exit_velocity"] for s in stats] == [74.0, 71.5]

    dashboard = client.get("/api/v1/dashboard", headers=auth("p1")).json()
    assert dashboard["latest_stats"]["date"] == "2024-05-08"
    assert dashboard["team"]["name"] == "14U"


def test_my_team_roster_sorting_and_filter(client: TestClient, team, auth):
    r = client.get("/api/v1/my-team", headers=auth("p1"))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["team"]["name"] == "14U"
    assert [p["full_name"] for p in body["players"]] == ["Amy Adams", "Jane Doe", "Zoe Zed"]
    assert [c["full_name"] for c in body["coaches"]] == ["Coach Carter"]

    by_number = client.get("/api/v1/my-team?sort=number", headers=auth("p1")).json()
    assert [p["jersey_number"] for p in by_number["players"]] == ["3", "12", ""]

    shortstops = client.get("/api/v1/my-team?position=SS", headers=auth("p1")).json()
    assert [p["full_name"] for p in shortstops["players"]] == ["Jane Doe", "Zoe Zed"]


def test_my_team_access(client: TestClient, team, seed, auth):
    other = seed.team("16U")
    assert client.get(f"/api/v1/my-team?team_id={other}", headers=auth("p1")).status_code == 403
    assert client.get(f"/api/v1/my-team?team_id={other}", headers=auth("admin-1")).status_code == 200
    assert client.get("/api/v1/my-team", headers=auth("outsider")).status_code == 404
    assert client.get("/api/v1/my-team?team_id=999", headers=auth("admin-1")).status_code == 404


def test_my_team_upcoming_events_and_announcements(client: TestClient, team, auth):
    today = dt.date.today()
    for offset, opponent in [(-1, "Past"), (1, "Hawks"), (2, "Owls")]:
        r = client.post(
            "/api/v1/calendar/team-events",
            json={"team_id": team, "event_date": str(today + dt.timedelta(days=offset)), "opponent": opponent},
            headers=auth("coach-1"),
        )
        assert r.status_code == 201, r.text

    r = client.post(
        "/api/v1/conversations/",
        json={"type": "team_announcement", "team_id": team, "title": "Practice Update", "content": "5pm start"},
        headers=auth("coach-1"),
    )
    assert r.status_code == 201, r.text

    body = client.get("/api/v1/my-team", headers=auth("p1")).json()
    assert [e["opponent"] for e in body["upcoming_events"]] == ["Hawks", "Owls"]
    [announcement] = body["announcements"]
    assert announcement["title"] == "Practice Update"
    assert [m["content"] for m in announcement["messages"]] == ["5pm start"]
    assert announcement["messages"][0]["sender_name"] == "Coach Carter"

    dashboard = client.get("/api/v1/dashboard", headers=auth("p1")).json()
    assert [e["opponent"] for e in dashboard["upcoming_events"]] == ["Hawks", "Owls"]
    assert dashboard["latest_stats"] is None


def test_dashboard_without_team(client: TestClient, team, auth):
    body = client.get("/api/v1/dashboard", headers=auth("outsider")).json()
    assert body["team"] is None
    assert body["upcoming_events"] == []
