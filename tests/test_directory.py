import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError


def test_team_crud_is_admin_only(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")
    seed.user("coach-1", role="coach")

    r = client.post("/api/v1/teams/", json={"name": "14U"}, headers=auth("coach-1"))
    assert r.status_code == 403, r.text

    r = client.post("/api/v1/teams/", json={"name": "14U", "description": "Spring roster"}, headers=auth("admin-1"))
    assert r.status_code == 201, r.text
    team = r.json()
    assert team["name"] == "14U"

    r = client.patch(f"/api/v1/teams/{team['id']}", json={"name": "15U"}, headers=auth("admin-1"))
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "15U"
    assert r.json()["description"] == "Spring roster"

    r = client.get("/api/v1/teams/", headers=auth("coach-1"))
    assert r.status_code == 200
    assert [t["name"] for t in r.json()] == ["15U"]


def test_requests_without_identity_are_rejected(client: TestClient, seed, auth):
    r = client.get("/api/v1/teams/")
    assert r.status_code == 401

    # authenticated but no users row
    r = client.get("/api/v1/teams/", headers=auth("ghost"))
    assert r.status_code == 403


def test_missing_team_update_and_delete_are_not_silent(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")

    r = client.patch("/api/v1/teams/999", json={"name": "Nope"}, headers=auth("admin-1"))
    assert r.status_code == 404
    assert "not found or not permitted" in r.json()["detail"]

    r = client.delete("/api/v1/teams/999", headers=auth("admin-1"))
    assert r.status_code == 404


def test_delete_team_cascades_memberships_and_events_but_keeps_users(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")
    team_id = seed.team("14U")
    for i in range(3):
        seed.member(team_id, seed.user(f"player-{i}"))
    seed.member(team_id, "admin-1", role="coach")

    r = client.post(
        "/api/v1/calendar/team-events",
        json={"team_id": team_id, "event_date": "2024-06-01", "event_type": "game", "opponent": "Hawks"},
        headers=auth("admin-1"),
    )
    assert r.status_code == 201, r.text

    r = client.delete(f"/api/v1/teams/{team_id}", headers=auth("admin-1"))
    assert r.status_code == 204

    assert seed.count("team_members") == 0
    assert seed.count("schedule_events") == 0
    assert seed.count("users") == 4


def test_create_user_with_team_and_profile(client: TestClient, seed, auth, identity):
    seed.user("admin-1", role="admin")
    team_id = seed.team("14U")

    payload = {
        "email": "jane@example.org",
        "password": "secret123",
        "full_name": "Jane Doe",
        "team_id": team_id,
        "player_profile": {"jersey_number": "7", "position": "SS"},
    }
    r = client.post("/api/v1/users/", json=payload, headers=auth("admin-1"))
    assert r.status_code == 201, r.text
    user = r.json()
    assert user["role"] == "player"
    assert user["player_profile"]["jersey_number"] == "7"
    assert user["memberships"] == [
        {"id": user["memberships"][0]["id"], "team_id": team_id, "user_id": user["id"], "role": "player", "team_name": "14U"}
    ]
    assert identity.accounts["jane@example.org"][0] == user["id"]


def test_create_user_rejects_duplicate_email(client: TestClient, seed, auth, identity):
    seed.user("admin-1", role="admin")
    seed.user("jane")

    payload = {"email": "jane@example.com", "password": "secret123", "full_name": "Jane Again"}
    r = client.post("/api/v1/users/", json=payload, headers=auth("admin-1"))
    assert r.status_code == 409
    # raw backend message is passed through
    assert "users.email" in r.json()["detail"]
    # the identity account made for the rejected row is removed again
    assert identity.accounts == {}
    assert len(identity.deleted) == 1


def test_create_user_validation_happens_before_any_write(client: TestClient, seed, auth, identity):
    seed.user("admin-1", role="admin")

    r = client.post(
        "/api/v1/users/",
        json={"email": "not-an-email", "password": "secret123", "full_name": "X"},
        headers=auth("admin-1"),
    )
    assert r.status_code == 422
    assert identity.accounts == {}


def test_create_user_with_unknown_team_leaves_email_free(client: TestClient, seed, auth, identity):
    seed.user("admin-1", role="admin")
    payload = {"email": "jane@example.org", "password": "secret123", "full_name": "Jane Doe", "team_id": 999}

    r = client.post("/api/v1/users/", json=payload, headers=auth("admin-1"))
    assert r.status_code == 404
    assert identity.accounts == {}
    assert seed.count("users") == 1

    r = client.post("/api/v1/users/", json={**payload, "team_id": seed.team("14U")}, headers=auth("admin-1"))
    assert r.status_code == 201, r.text
    assert list(identity.accounts) == ["jane@example.org"]
    assert identity.deleted == []


def test_role_change_to_player_creates_profile_once(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")
    seed.user("coach-1", role="coach")
    assert seed.count("player_profiles", user_id="coach-1") == 0

    r = client.put("/api/v1/users/coach-1/role", json={"role": "player"}, headers=auth("admin-1"))
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "player"
    assert r.json()["player_profile"] is not None
    assert seed.count("player_profiles", user_id="coach-1") == 1

    r = client.put("/api/v1/users/coach-1/role", json={"role": "player"}, headers=auth("admin-1"))
    assert r.status_code == 200
    assert seed.count("player_profiles", user_id="coach-1") == 1


def test_role_change_for_unknown_user_is_404(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")
    r = client.put("/api/v1/users/nobody/role", json={"role": "coach"}, headers=auth("admin-1"))
    assert r.status_code == 404


def test_replace_memberships_adds_updates_and_removes(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")
    seed.user("coach-1", role="coach")
    a, b, c = seed.team("A"), seed.team("B"), seed.team("C")
    seed.member(a, "coach-1", role="coach")
    seed.member(b, "coach-1", role="coach")

    r = client.put(
        "/api/v1/users/coach-1/memberships",
        json={"memberships": [{"team_id": b, "role": "player"}, {"team_id": c}]},
        headers=auth("admin-1"),
    )
    assert r.status_code == 200, r.text
    memberships = {m["team_id"]: m["role"] for m in r.json()["memberships"]}
    assert memberships == {b: "player", c: "coach"}


def test_membership_pair_is_unique(seed):
    seed.user("player-1")
    team_id = seed.team("14U")
    seed.member(team_id, "player-1")
    with pytest.raises(IntegrityError):
        seed.member(team_id, "player-1")


def test_players_listing_is_scoped_for_coaches(client: TestClient, seed, auth):
    seed.user("admin-1", role="admin")
    seed.user("coach-1", role="coach")
    mine, other = seed.team("Mine"), seed.team("Other")
    seed.member(mine, "coach-1", role="coach")
    seed.member(mine, seed.user("p-mine"))
    seed.member(other, seed.user("p-other"))

    r = client.get("/api/v1/users/players", headers=auth("coach-1"))
    assert r.status_code == 200
    assert [u["id"] for u in r.json()] == ["p-mine"]

    r = client.get("/api/v1/users/players", headers=auth("admin-1"))
    assert sorted(u["id"] for u in r.json()) == ["p-mine", "p-other"]

    r = client.get("/api/v1/users/players", headers=auth("p-mine"))
    assert r.status_code == 403


def test_team_members_roster(client: TestClient, seed, auth):
    seed.user("coach-1", role="coach", full_name="Zed Coach")
    team_id = seed.team("14U")
    seed.member(team_id, "coach-1", role="coach")
    seed.member(team_id, seed.user("p1", full_name="Amy Player", jersey_number="12", position="P"))

    r = client.get(f"/api/v1/teams/{team_id}/members", headers=auth("p1"))
    assert r.status_code == 200
    roster = r.json()
    assert [m["full_name"] for m in roster] == ["Amy Player", "Zed Coach"]
    assert roster[0]["jersey_number"] == "12"
    assert roster[1]["team_role"] == "coach"


def test_sign_up_sign_in_and_session(client: TestClient, identity):
    r = client.post(
        "/api/v1/auth/sign-up",
        json={"email": "new@example.org", "password": "secret123", "full_name": "New Player"},
    )
    assert r.status_code == 201, r.text
    user_id = r.json()["id"]
    assert r.json()["role"] == "player"

    r = client.post("/api/v1/auth/sign-in", json={"email": "new@example.org", "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/api/v1/auth/sign-in", json={"email": "new@example.org", "password": "secret123"})
    assert r.status_code == 200, r.text
    token = r.json()["id_token"]

    r = client.get("/api/v1/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == {"user_id": user_id, "role": "player", "full_name": "New Player", "email": "new@example.org"}

    r = client.post("/api/v1/auth/sign-out", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 204
    assert identity.signed_out == [user_id]


def test_sign_up_twice_is_a_conflict(client: TestClient):
    payload = {"email": "dup@example.org", "password": "secret123", "full_name": "Dup"}
    assert client.post("/api/v1/auth/sign-up", json=payload).status_code == 201
    r = client.post("/api/v1/auth/sign-up", json=payload)
    assert r.status_code == 409


def test_avatar_upload_is_served_back(client: TestClient, seed, auth):
    seed.user("p1")
    png = b"\x89PNG\r\n\x1a\nfake-image"

    r = client.post(
        "/api/v1/users/me/avatar",
        content=png,
        headers={**auth("p1"), "Content-Type": "image/png"},
    )
    assert r.status_code == 200, r.text
    avatar_url = r.json()["avatar_url"]
    assert "/api/v1/storage/media/avatars/p1-" in avatar_url
    assert avatar_url.endswith(".png")

    path = avatar_url.split("/api/v1", 1)[1]
    r = client.get(f"/api/v1{path}")
    assert r.status_code == 200
    assert r.content == png
    assert r.headers["content-type"] == "image/png"


def test_upload_rejects_non_images(client: TestClient, seed, auth):
    seed.user("p1")
    r = client.post(
        "/api/v1/users/me/avatar",
        content=b"hello",
        headers={**auth("p1"), "Content-Type": "text/plain"},
    )
    assert r.status_code == 415
