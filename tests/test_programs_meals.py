import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def staff(seed):
    seed.user("coach-1", role="coach")
    seed.user("p1", full_name="Jane Doe")
    seed.user("p2")
    team_id = seed.team("14U")
    seed.member(team_id, "coach-1", role="coach")
    seed.member(team_id, "p1")
    return {"team_id": team_id}


def _program(client, auth, name="Off-Season", days=0):
    r = client.post("/api/v1/training-programs/", json={"name": name, "duration_weeks": 6}, headers=auth("coach-1"))
    assert r.status_code == 201, r.text
    program_id = r.json()["id"]
    for i in range(days):
        r = client.post(
            f"/api/v1/training-programs/{program_id}/days", json={"title": f"Block {i + 1}"}, headers=auth("coach-1")
        )
        assert r.status_code == 201, r.text
    return program_id


def test_program_days_and_exercises(client: TestClient, staff, auth):
    program_id = _program(client, auth, days=2)

    program = client.get(f"/api/v1/training-programs/{program_id}", headers=auth("p1")).json()
    assert [d["day_number"] for d in program["days"]] == [1, 2]
    day_id = program["days"][0]["id"]

    for category, name in [("hitting", "Tee work"), ("conditioning", "Sprints"), ("hitting", "Soft toss")]:
        r = client.post(
            f"/api/v1/training-programs/days/{day_id}/exercises",
            json={"category": category, "name": name, "sets": 3, "reps": "10"},
            headers=auth("coach-1"),
        )
        assert r.status_code == 201, r.text

    day = client.get(f"/api/v1/training-programs/days/{day_id}", headers=auth("p1")).json()
    assert [e["sort_order"] for e in day["exercises"]] == [0, 1, 2]
    assert list(day["exercises_by_category"]) == ["hitting", "conditioning"]
    assert [e["name"] for e in day["exercises_by_category"]["hitting"]] == ["Tee work", "Soft toss"]

    exercise_id = day["exercises"][1]["id"]
    assert client.delete(f"/api/v1/training-programs/exercises/{exercise_id}", headers=auth("coach-1")).status_code == 204
    assert client.delete(f"/api/v1/training-programs/exercises/{exercise_id}", headers=auth("coach-1")).status_code == 404


def test_program_writes_are_staff_only(client: TestClient, staff, auth):
    r = client.post("/api/v1/training-programs/", json={"name": "Mine"}, headers=auth("p1"))
    assert r.status_code == 403

    program_id = _program(client, auth)
    r = client.patch(f"/api/v1/training-programs/{program_id}", json={"name": "Renamed"}, headers=auth("coach-1"))
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"
    assert r.json()["duration_weeks"] == 6

    assert client.delete(f"/api/v1/training-programs/{program_id}", headers=auth("p1")).status_code == 403
    assert client.delete(f"/api/v1/training-programs/{program_id}", headers=auth("coach-1")).status_code == 204
    assert client.get(f"/api/v1/training-programs/{program_id}", headers=auth("coach-1")).status_code == 404


def test_assigning_program_to_player_shows_active_on_profile(client: TestClient, staff, seed, auth):
    program_id = _program(client, auth, name="Off-Season", days=3)

    r = client.post(
        "/api/v1/training-programs/assignments",
        json={"program_id": program_id, "start_date": "2024-06-01", "scope": {"kind": "player", "player_id": "p1"}},
        headers=auth("coach-1"),
    )
    assert r.status_code == 201, r.text
    assignment = r.json()
    assert assignment["program_name"] == "Off-Season"
    assert assignment["day_count"] == 3
    assert assignment["player_id"] == "p1"
    assert assignment["team_id"] is None

    profile = client.get("/api/v1/profile/me", headers=auth("p1")).json()
    assert [a["id"] for a in profile["active_programs"]] == [assignment["id"]]
    assert profile["completed_programs"] == []
    assert seed.count("schedule_events") == 0


def test_assignment_scope_rules(client: TestClient, staff, auth):
    program_id = _program(client, auth)

    # coach does not share a team with p2
    r = client.post(
        "/api/v1/training-programs/assignments",
        json={"program_id": program_id, "scope": {"kind": "player", "player_id": "p2"}},
        headers=auth("coach-1"),
    )
    assert r.status_code == 403

    r = client.post(
        "/api/v1/training-programs/assignments",
        json={"program_id": 999, "scope": {"kind": "team", "team_id": staff["team_id"]}},
        headers=auth("coach-1"),
    )
    assert r.status_code == 404

    r = client.post(
        "/api/v1/training-programs/assignments",
        json={
            "program_id": program_id,
            "start_date": "2024-06-10",
            "end_date": "2024-06-01",
            "scope": {"kind": "team", "team_id": staff["team_id"]},
        },
        headers=auth("coach-1"),
    )
    assert r.status_code == 422


def test_team_assignment_is_listed_for_members(client: TestClient, staff, auth):
    program_id = _program(client, auth)
    r = client.post(
        "/api/v1/training-programs/assignments",
        json={"program_id": program_id, "scope": {"kind": "team", "team_id": staff["team_id"]}},
        headers=auth("coach-1"),
    )
    assignment_id = r.json()["id"]

    listed = client.get(f"/api/v1/training-programs/assignments?team_id={staff['team_id']}", headers=auth("p1")).json()
    assert [a["id"] for a in listed] == [assignment_id]
    assert client.get(f"/api/v1/training-programs/assignments?team_id={staff['team_id']}", headers=auth("p2")).status_code == 403

    # the player's profile picks up assignments made to their teams
    profile = client.get("/api/v1/profile/me", headers=auth("p1")).json()
    assert [a["id"] for a in profile["active_programs"]] == [assignment_id]

    assert client.delete(f"/api/v1/training-programs/assignments/{assignment_id}", headers=auth("coach-1")).status_code == 204
    assert client.delete(f"/api/v1/training-programs/assignments/{assignment_id}", headers=auth("coach-1")).status_code == 404


def test_meals_grouped_by_type(client: TestClient, staff, auth):
    for name, meal_type in [("Oats", "breakfast"), ("Wrap", "lunch"), ("Eggs", "breakfast"), ("Bar", "snack")]:
        r = client.post("/api/v1/meals", json={"name": name, "meal_type": meal_type}, headers=auth("coach-1"))
        assert r.status_code == 201, r.text

    grouped = client.get("/api/v1/meals/by-type", headers=auth("p1")).json()
    assert [m["name"] for m in grouped["breakfast"]] == ["Eggs", "Oats"]
    assert [m["name"] for m in grouped["lunch"]] == ["Wrap"]
    assert grouped["dinner"] == []

    assert client.post("/api/v1/meals", json={"name": "Cake"}, headers=auth("p1")).status_code == 403
    assert client.post("/api/v1/meals", json={"name": "Bad", "calories": -5}, headers=auth("coach-1")).status_code == 422


def test_meal_update_and_delete(client: TestClient, staff, auth):
    meal_id = client.post("/api/v1/meals", json={"name": "Oats"}, headers=auth("coach-1")).json()["id"]

    r = client.put(
        f"/api/v1/meals/{meal_id}", json={"name": "Oatmeal", "meal_type": "breakfast", "calories": 300}, headers=auth("coach-1")
    )
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Oatmeal"
    assert r.json()["calories"] == 300

    assert client.delete(f"/api/v1/meals/{meal_id}", headers=auth("coach-1")).status_code == 204
    assert client.put(f"/api/v1/meals/{meal_id}", json={"name": "Gone"}, headers=auth("coach-1")).status_code == 404


def test_meal_plan_totals_and_assignment(client: TestClient, staff, auth):
    meals = [
        {"name": "Oats", "calories": 350, "protein_g": 12.5, "carbs_g": 60, "fat_g": 6},
        {"name": "Chicken bowl", "meal_type": "lunch", "calories": 650, "protein_g": 45, "carbs_g": 70.25, "fat_g": 15},
    ]
    meal_ids = [client.post("/api/v1/meals", json=m, headers=auth("coach-1")).json()["id"] for m in meals]

    r = client.post(
        "/api/v1/meal-plans", json={"name": "Game day", "meal_ids": list(reversed(meal_ids))}, headers=auth("coach-1")
    )
    assert r.status_code == 201, r.text
    plan = r.json()
    assert [i["meal"]["name"] for i in plan["items"]] == ["Chicken bowl", "Oats"]
    assert plan["totals"] == {"calories": 1000, "protein_g": 57.5, "carbs_g": 130.2, "fat_g": 21.0}

    r = client.post("/api/v1/meal-plans", json={"name": "Bad", "meal_ids": [999]}, headers=auth("coach-1"))
    assert r.status_code == 404

    r = client.post(
        "/api/v1/meal-plans/assignments",
        json={
            "meal_plan_id": plan["id"],
            "start_date": "2024-05-01",
            "end_date": "2024-05-31",
            "scope": {"kind": "player", "player_id": "p1"},
        },
        headers=auth("coach-1"),
    )
    assert r.status_code == 201, r.text
    assert r.json()["meal_plan_name"] == "Game day"

    listed = client.get("/api/v1/meal-plans/assignments", headers=auth("p1")).json()
    assert [a["meal_plan_id"] for a in listed] == [plan["id"]]

    # the window has closed, so the plan shows as completed
    profile = client.get("/api/v1/profile/me", headers=auth("p1")).json()
    assert profile["active_meal_plans"] == []
    assert [a["meal_plan_id"] for a in profile["completed_meal_plans"]] == [plan["id"]]

    assert client.delete(f"/api/v1/meal-plans/{plan['id']}", headers=auth("coach-1")).status_code == 204
    assert client.get(f"/api/v1/meal-plans/{plan['id']}", headers=auth("coach-1")).status_code == 404
