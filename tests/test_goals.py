from datetime import timedelta

from conftest import create_goal, create_task, signup
from core.config import settings
from core.time_utils import today


def test_create_and_list_goals(client, user):
    goal = create_goal(client, "Learn Spanish")
    assert goal["title"] == "Learn Spanish"
    assert goal["userId"] == user["id"]
    assert goal["targetDate"] == (today() + timedelta(days=2)).isoformat()
    assert "createdAt" in goal

    goals = client.get("/goals").json()
    assert [g["id"] for g in goals] == [goal["id"]]


def test_goal_ids_are_unique(client, user):
    first = create_goal(client, "One")
    second = create_goal(client, "Two")
    assert first["id"] != second["id"]


def test_create_goal_requires_all_fields(client, user):
    response = client.post("/goals", json={"title": "No date", "description": "x"})
    assert response.status_code == 400

    response = client.post("/goals", json={"title": "", "description": "x", "targetDate": today().isoformat()})
    assert response.status_code == 400


def test_list_goals_only_returns_callers_goals(client):
    signup(client, "alice")
    alice_goal = create_goal(client, "Alice goal")

    signup(client, "bob")
    bob_goal = create_goal(client, "Bob goal")

    goals = client.get("/goals").json()
    assert [g["id"] for g in goals] == [bob_goal["id"]]
    assert all(g["userId"] != alice_goal["userId"] for g in goals)


def test_update_goal(client, user):
    goal = create_goal(client)
    new_date = (today() + timedelta(days=30)).isoformat()
    response = client.put(
        f"/goals/{goal['id']}",
        json={"title": "Run an ultra", "description": "Longer", "targetDate": new_date},
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Run an ultra"
    assert response.json()["targetDate"] == new_date
    assert client.get(f"/goals/{goal['id']}").json()["title"] == "Run an ultra"


def test_other_users_goal_looks_missing(client):
    signup(client, "alice")
    goal = create_goal(client)

    signup(client, "bob")
    body = {"title": "Hijack", "description": "x", "targetDate": today().isoformat()}
    assert client.get(f"/goals/{goal['id']}").status_code == 404
    assert client.put(f"/goals/{goal['id']}", json=body).status_code == 404
    assert client.delete(f"/goals/{goal['id']}").status_code == 404
    assert client.put("/goals/9999", json=body).status_code == 404

    signup_again = client.post("/auth/login", json={"username": "alice", "password": "secret123"})
    assert signup_again.status_code == 200
    assert client.get(f"/goals/{goal['id']}").json()["title"] == "Run a marathon"


def test_delete_goal_cascades_to_its_tasks(client, user):
    goal = create_goal(client, "Doomed")
    keeper = create_goal(client, "Keeper")
    create_task(client, goal["id"], "a")
    create_task(client, goal["id"], "b", is_template=True)
    kept = create_task(client, keeper["id"], "c")

    response = client.delete(f"/goals/{goal['id']}")
    assert response.status_code == 200

    tasks = client.get("/tasks").json()
    assert [t["id"] for t in tasks] == [kept["id"]]
    assert all(t["goalId"] != goal["id"] for t in tasks)
    assert client.get(f"/goals/{goal['id']}").status_code == 404
    # nothing left behind in storage either
    store = client.app.state.store
    assert client.portal.call(store.list_goal_tasks, goal["id"]) == []


def test_target_date_is_bounded(client, user):
    body = {"title": "Forever", "description": "x", "targetDate": "9999-12-31"}
    response = client.post("/goals", json=body)
    assert response.status_code == 400
    assert "targetDate" in response.json()["detail"]

    limit = today() + timedelta(days=settings.MAX_GOAL_DAYS)
    assert client.post("/goals", json={**body, "targetDate": limit.isoformat()}).status_code == 200
    too_late = (limit + timedelta(days=1)).isoformat()
    assert client.post("/goals", json={**body, "targetDate": too_late}).status_code == 400


def test_update_cannot_move_target_date_past_bound(client, user):
    goal = create_goal(client)
    body = {"title": goal["title"], "description": goal["description"], "targetDate": "9999-12-31"}
    assert client.put(f"/goals/{goal['id']}", json=body).status_code == 400
    assert client.get(f"/goals/{goal['id']}").json()["targetDate"] == goal["targetDate"]
