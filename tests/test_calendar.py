import datetime as dt

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError


@pytest.fixture()
def roster(seed):
    seed.user("admin-1", role="admin")
    seed.user("coach-1", role="coach")
    seed.user("p1", full_name="Jane Doe")
    seed.user("p-elsewhere")
    team_id = seed.team("14U")
    other_team = seed.team("16U")
    seed.member(team_id, "coach-1", role="coach")
    seed.member(team_id, "p1")
    seed.member(other_team, "p-elsewhere")
    return {"team_id": team_id, "other_team": other_team}


def _submit_team(client, auth, user_id, team_id, **fields):
    payload = {"kind": "team_event", "team_id": team_id, **fields}
    return client.post(f"/api/v1/calendar/teams/{team_id}/submissions", json=payload, headers=auth(user_id))


def _submit_player(client, auth, user_id, player_id, **fields):
    payload = {"player_id": player_id, **fields}
    return client.post(f"/api/v1/calendar/players/{player_id}/submissions", json=payload, headers=auth(user_id))


def test_team_game_shows_on_team_month_only(client: TestClient, roster, auth):
    team_id = roster["team_id"]
    r = _submit_team(
        client, auth, "coach-1", team_id, event_type="game", event_date="2024-06-01", opponent="Hawks", home_away="home"
    )
    assert r.status_code == 201, r.text
    event = r.json()["event"]
    assert event["team_id"] == team_id
    assert event["player_id"] is None
    assert event["home_away"] == "home"
    assert event["display_text"] == "Hawks"

    r = client.get(f"/api/v1/calendar/teams/{team_id}/month?year=2024&month=6", headers=auth("p1"))
    assert r.status_code == 200, r.text
    grid = r.json()
    assert len(grid["cells"]) == 42
    # June 1st 2024 is a Saturday: last column of the first row
    first = grid["cells"][6]
    assert first["date"] == "2024-06-01"
    assert first["in_current_month"] is True
    assert first["badges"] == ["Hawks"]
    assert grid["cells"][0]["date"] == "2024-05-26"

    r = client.get("/api/v1/calendar/players/p1/month?year=2024&month=6", headers=auth("p1"))
    assert r.status_code == 200
    assert all(cell["events"] == [] for cell in r.json()["cells"])


def test_practice_drops_home_away(client: TestClient, roster, auth):
    r = _submit_team(
        client,
        auth,
        "coach-1",
        roster["team_id"],
        event_type="practice",
        event_date="2024-06-03",
        opponent="Batting practice",
        home_away="away",
    )
    assert r.status_code == 201, r.text
    assert r.json()["event"]["home_away"] is None


def test_event_rows_have_exactly_one_scope(seed, roster):
    from teamhub_service.models import ScheduleEvent

    def insert(**scope):
        with seed.engine.begin() as conn:
            conn.execute(
                ScheduleEvent.__table__.insert().values(
                    event_type="practice", event_date=dt.date(2024, 6, 1), is_optional=False, **scope
                )
            )

    with pytest.raises(IntegrityError):
        insert(team_id=roster["team_id"], player_id="p1")
    with pytest.raises(IntegrityError):
        insert()
    assert seed.count("schedule_events") == 0


def test_submission_must_match_the_calendar_in_view(client: TestClient, roster, auth):
    team_id = roster["team_id"]

    r = client.post(
        f"/api/v1/calendar/teams/{team_id}/submissions",
        json={"kind": "workout_new", "player_id": "p1", "event_date": "2024-06-02", "title": "Run"},
        headers=auth("coach-1"),
    )
    assert r.status_code == 422

    r = client.post(
        "/api/v1/calendar/players/p1/submissions",
        json={"kind": "team_event", "team_id": team_id, "event_date": "2024-06-02", "opponent": "Hawks"},
        headers=auth("coach-1"),
    )
    assert r.status_code == 422

    r = client.post(
        "/api/v1/calendar/players/p1/submissions",
        json={"kind": "workout_new", "player_id": "p-elsewhere", "event_date": "2024-06-02", "title": "Run"},
        headers=auth("coach-1"),
    )
    assert r.status_code == 422


def test_calendar_writes_need_staff_with_reach(client: TestClient, roster, auth):
    payload = {"kind": "workout_new", "event_date": "2024-06-02", "title": "Run"}

    r = _submit_player(client, auth, "p1", "p1", **payload)
    assert r.status_code == 403

    r = _submit_player(client, auth, "coach-1", "p-elsewhere", **payload)
    assert r.status_code == 403

    r = _submit_player(client, auth, "admin-1", "p-elsewhere", **payload)
    assert r.status_code == 201, r.text

    r = _submit_team(client, auth, "coach-1", roster["other_team"], event_date="2024-06-02", opponent="Hawks")
    assert r.status_code == 403


def test_calendar_reads_are_scoped(client: TestClient, roster, auth):
    assert client.get("/api/v1/calendar/players/p-elsewhere/events", headers=auth("p1")).status_code == 403
    assert client.get(f"/api/v1/calendar/teams/{roster['other_team']}/events", headers=auth("p1")).status_code == 403
    assert client.get("/api/v1/calendar/players/p1/events", headers=auth("coach-1")).status_code == 200
    assert client.get("/api/v1/calendar/players/p-elsewhere/events", headers=auth("admin-1")).status_code == 200


def test_workout_submissions(client: TestClient, roster, auth):
    r = client.post("/api/v1/training-programs/", json={"name": "Off-Season"}, headers=auth("coach-1"))
    program_id = r.json()["id"]
    r = client.post(f"/api/v1/training-programs/{program_id}/days", json={}, headers=auth("coach-1"))
    day_id = r.json()["id"]

    r = _submit_player(client, auth, "coach-1", "p1", kind="workout_day", event_date="2024-06-04", training_day_id=day_id)
    assert r.status_code == 201, r.text
    event = r.json()["event"]
    assert event["event_type"] == "workout"
    assert event["title"] == "Day 1"
    assert event["training_day_id"] == day_id
    assert event["player_id"] == "p1"

    r = _submit_player(client, auth, "coach-1", "p1", kind="workout_day", event_date="2024-06-04", training_day_id=999)
    assert r.status_code == 404

    r = _submit_player(
        client, auth, "coach-1", "p1", kind="workout_new", event_date="2024-06-05", title="Sprints", notes="10x40"
    )
    assert r.status_code == 201
    assert r.json()["event"]["notes"] == "10x40"


def test_program_submission_creates_assignment_not_events(client: TestClient, roster, seed, auth):
    r = client.post("/api/v1/training-programs/", json={"name": "Off-Season"}, headers=auth("coach-1"))
    program_id = r.json()["id"]

    r = _submit_player(
        client,
        auth,
        "coach-1",
        "p1",
        kind="workout_program",
        program_id=program_id,
        start_date="2024-06-01",
        end_date="2024-06-30",
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["kind"] == "training_program"
    assert body["assignment_id"] is not None
    assert body["event"] is None
    assert seed.count("schedule_events") == 0
    assert seed.count("training_program_assignments", player_id="p1") == 1


def test_new_meal_submission_creates_meal_and_event(client: TestClient, roster, seed, auth):
    r = _submit_player(
        client,
        auth,
        "coach-1",
        "p1",
        kind="meal_new",
        event_date="2024-06-06",
        meal={"name": "Oats", "meal_type": "breakfast", "calories": 350},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["event"]["title"] == "Oats"
    assert body["event"]["event_type"] == "meal"
    assert body["meal_id"] == body["event"]["meal_id"]
    assert seed.count("meals") == 1

    r = _submit_player(client, auth, "coach-1", "p1", kind="meal_existing", event_date="2024-06-07", meal_id=body["meal_id"])
    assert r.status_code == 201
    assert r.json()["event"]["title"] == "Oats"


def test_editing_team_event_mirrors_title_to_opponent(client: TestClient, roster, auth):
    r = _submit_team(client, auth, "coach-1", roster["team_id"], event_type="game", event_date="2024-06-01", opponent="Hawks")
    event_id = r.json()["event"]["id"]

    r = client.patch(
        f"/api/v1/calendar/events/{event_id}",
        json={"title": "Eagles", "location": "Field 2", "event_time": "18:30:00"},
        headers=auth("coach-1"),
    )
    assert r.status_code == 200, r.text
    event = r.json()
    assert event["title"] == "Eagles"
    assert event["opponent"] == "Eagles"
    assert event["location"] == "Field 2"
    assert event["event_time"] == "18:30:00"

    r = client.patch(f"/api/v1/calendar/events/{event_id}", json={"title": "  "}, headers=auth("coach-1"))
    assert r.status_code == 422


def test_editing_meal_event_updates_the_meal(client: TestClient, roster, auth):
    r = _submit_player(
        client, auth, "coach-1", "p1", kind="meal_new", event_date="2024-06-06", meal={"name": "Oats"}
    )
    event_id = r.json()["event"]["id"]
    meal_id = r.json()["meal_id"]

    r = client.patch(
        f"/api/v1/calendar/events/{event_id}",
        json={"meal": {"name": "Overnight oats", "meal_type": "breakfast", "calories": 400}},
        headers=auth("coach-1"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["title"] == "Overnight oats"

    meals = client.get("/api/v1/meals", headers=auth("coach-1")).json()
    [meal] = [m for m in meals if m["id"] == meal_id]
    assert meal["name"] == "Overnight oats"
    assert meal["calories"] == 400


def test_editing_missing_event_is_404(client: TestClient, roster, auth):
    r = client.patch("/api/v1/calendar/events/999", json={"title": "X"}, headers=auth("coach-1"))
    assert r.status_code == 404


def test_delete_event_rechecks_role(client: TestClient, roster, auth):
    r = _submit_team(client, auth, "coach-1", roster["team_id"], event_date="2024-06-01", opponent="Hawks")
    event_id = r.json()["event"]["id"]

    assert client.delete(f"/api/v1/calendar/events/{event_id}", headers=auth("p1")).status_code == 403

    # demoted between loading the page and pressing delete
    r = client.put("/api/v1/users/coach-1/role", json={"role": "player"}, headers=auth("admin-1"))
    assert r.status_code == 200
    assert client.delete(f"/api/v1/calendar/events/{event_id}", headers=auth("coach-1")).status_code == 403

    client.put("/api/v1/users/coach-1/role", json={"role": "coach"}, headers=auth("admin-1"))
    assert client.delete(f"/api/v1/calendar/events/{event_id}", headers=auth("coach-1")).status_code == 204
    assert client.delete(f"/api/v1/calendar/events/{event_id}", headers=auth("coach-1")).status_code == 404


def test_month_cell_overflow_and_week_view(client: TestClient, roster, auth):
    team_id = roster["team_id"]
    for i, time in enumerate(["19:00:00", "09:00:00", None, "12:00:00"]):
        fields = {"event_date": "2024-06-12", "opponent": f"Team {i}"}
        if time:
            fields["event_time"] = time
        assert _submit_team(client, auth, "coach-1", team_id, **fields).status_code == 201

    grid = client.get(f"/api/v1/calendar/teams/{team_id}/month?year=2024&month=6", headers=auth("coach-1")).json()
    [cell] = [c for c in grid["cells"] if c["date"] == "2024-06-12"]
    assert cell["badges"] == ["Team 1", "Team 3", "Team 0"]
    assert cell["more_count"] == 1
    assert len(cell["events"]) == 4

    week = client.get(f"/api/v1/calendar/teams/{team_id}/week?date=2024-06-12", headers=auth("coach-1")).json()
    assert week["start"] == "2024-06-09"
    assert week["end"] == "2024-06-15"
    assert [d["date"] for d in week["days"]][3] == "2024-06-12"
    assert week["scope"] == {"kind": "team", "team_id": team_id}

    events = client.get(
        f"/api/v1/calendar/teams/{team_id}/events?start=2024-06-13&end=2024-06-30", headers=auth("coach-1")
    ).json()
    assert events == []


def test_team_events_listing_for_staff(client: TestClient, roster, auth):
    _submit_team(client, auth, "admin-1", roster["team_id"], event_date="2024-06-01", opponent="Hawks")
    _submit_team(client, auth, "admin-1", roster["other_team"], event_date="2024-06-02", opponent="Owls")

    r = client.post(
        "/api/v1/calendar/team-events",
        json={"team_id": roster["team_id"], "event_date": "2024-06-03", "opponent": "Doves"},
        headers=auth("coach-1"),
    )
    assert r.status_code == 201, r.text

    coach_view = client.get("/api/v1/calendar/team-events", headers=auth("coach-1")).json()
    assert [e["opponent"] for e in coach_view] == ["Hawks", "Doves"]

    admin_view = client.get("/api/v1/calendar/team-events", headers=auth("admin-1")).json()
    assert [e["opponent"] for e in admin_view] == ["Hawks", "Owls", "Doves"]

    assert client.get("/api/v1/calendar/team-events", headers=auth("p1")).status_code == 403


def test_month_view_rejects_years_past_the_grid_range(client: TestClient, roster, auth):
    url = f"/api/v1/calendar/teams/{roster['team_id']}/month"
    assert client.get(f"{url}?year=9999&month=12", headers=auth("p1")).status_code == 422
    r = client.get(f"{url}?year=9998&month=12", headers=auth("p1"))
    assert r.status_code == 200, r.text
    assert r.json()["cells"][-1]["date"].startswith("9999-01")
