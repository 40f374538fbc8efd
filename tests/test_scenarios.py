"""Walkthroughs of the main coach and player journeys, driven only through the HTTP API."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def club(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")

    r = client.post("/api/v1/teams/", json={"name": "14U"}, headers=auth("admin-1"))
    assert r.status_code == 201, r.text
    team_id = r.json()["id"]

    def create(email, full_name, role):
        r = client.post(
            "/api/v1/users/",
            json={"email": email, "password": "secret123", "full_name": full_name, "role": role, "team_id": team_id},
            headers=auth("admin-1"),
        )
        assert r.status_code == 201, r.text
        return r.json()["id"]

    return {
        "team_id": team_id,
        "coach": create("coach@example.org", "Coach Carter", "coach"),
        "jane": create("jane@example.org", "Jane Doe", "player"),
    }


def test_announcement_with_replies_disabled(client: TestClient, club, auth):
    roster = client.get(f"/api/v1/teams/{club['team_id']}/members", headers=auth(club["coach"])).json()
    assert sorted(m["full_name"] for m in roster) == ["Coach Carter", "Jane Doe"]

    r = client.post(
        "/api/v1/conversations/",
        json={
            "type": "team_announcement",
            "team_id": club["team_id"],
            "title": "Practice Update",
            "content": "Practice moves to 5pm",
            "replies_disabled": True,
        },
        headers=auth(club["coach"]),
    )
    assert r.status_code == 201, r.text
    conversation_id = r.json()["id"]

    r = client.get(f"/api/v1/conversations/{conversation_id}", headers=auth(club["jane"]))
    assert r.status_code == 200
    assert r.json()["display_title"] == "14U - Practice Update"
    assert r.json()["can_reply"] is False

    r = client.post(
        f"/api/v1/conversations/{conversation_id}/messages", json={"content": "See you there"}, headers=auth(club["jane"])
    )
    assert r.status_code == 403

    r = client.post(
        f"/api/v1/conversations/{conversation_id}/messages", json={"content": "Bring water"}, headers=auth(club["coach"])
    )
    assert r.status_code == 201, r.text


def test_team_game_is_on_the_team_calendar_only(client: TestClient, club, auth):
    r = client.post(
        f"/api/v1/calendar/teams/{club['team_id']}/submissions",
        json={
            "kind": "team_event",
            "team_id": club["team_id"],
            "event_type": "game",
            "event_date": "2024-06-01",
            "opponent": "Hawks",
        },
        headers=auth(club["coach"]),
    )
    assert r.status_code == 201, r.text

    grid = client.get(
        f"/api/v1/calendar/teams/{club['team_id']}/month?year=2024&month=6", headers=auth(club["jane"])
    ).json()
    june_first = next(c for c in grid["cells"] if c["date"] == "2024-06-01")
    assert june_first["badges"] == ["Hawks"]

    mine = client.get(
        f"/api/v1/calendar/players/{club['jane']}/month?year=2024&month=6", headers=auth(club["jane"])
    ).json()
    assert all(c["events"] == [] for c in mine["cells"])


def test_program_assignment_shows_on_profile_without_events(client: TestClient, club, seed, auth):
    r = client.post("/api/v1/training-programs/", json={"name": "Off-Season"}, headers=auth(club["coach"]))
    assert r.status_code == 201, r.text
    program_id = r.json()["id"]
    for title in ("Lower body", "Upper body", "Speed"):
        r = client.post(
            f"/api/v1/training-programs/{program_id}/days", json={"title": title}, headers=auth(club["coach"])
        )
        assert r.status_code == 201, r.text

    r = client.post(
        f"/api/v1/calendar/players/{club['jane']}/submissions",
        json={
            "kind": "workout_program",
            "player_id": club["jane"],
            "program_id": program_id,
            "start_date": "2024-06-01",
        },
        headers=auth(club["coach"]),
    )
    assert r.status_code == 201, r.text

    profile = client.get(f"/api/v1/profile/{club['jane']}", headers=auth(club["coach"])).json()
    [active] = profile["active_programs"]
    assert active["program_name"] == "Off-Season"
    assert active["day_count"] == 3
    assert seed.count("schedule_events") == 0
