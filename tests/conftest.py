import os

# Cheap hashing for tests; must be set before core.security is imported.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from core.time_utils import today
from main import create_app
from models.task import TaskPattern
from utils.task_suggestions import SuggestionError

PASSWORD = "secret123"


class FakeSuggester:
    """Stands in for the AI client; records calls and returns canned suggestions."""

    def __init__(self, suggestions=None, error=None):
        self.suggestions = suggestions or [
            TaskPattern(type="positive", description="Run 5km", points=30),
            TaskPattern(type="negative", description="Skip stretching", points=-10),
        ]
        self.error = error
        self.calls = []

    async def suggest(self, api_key, goal_title, goal_description):
        self.calls.append((api_key, goal_title, goal_description))
        if self.error:
            raise self.error
        return list(self.suggestions)


@pytest.fixture(params=["file", "sql"])
def app_settings(request, tmp_path):
    return Settings(
        STORAGE_BACKEND=request.param,
        DATA_DIR=str(tmp_path / "data"),
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'goaltracker.db'}",
    )


@pytest.fixture
def suggester():
    return FakeSuggester()


@pytest.fixture
def failing_suggester():
    return FakeSuggester(error=SuggestionError("service down"))


@pytest.fixture
def client(app_settings, suggester):
    app = create_app(app_settings, task_suggester=suggester)
    with TestClient(app) as c:
        yield c


def register(client, username="alice", password=PASSWORD, api_key=None):
    body = {"username": username, "password": password}
    if api_key is not None:
        body["apiKey"] = api_key
    response = client.post("/auth/register", json=body)
    assert response.status_code == 200, response.text
    return response.json()


def login(client, username="alice", password=PASSWORD):
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def signup(client, username="alice", api_key=None):
    """Registers and logs in; the session cookie stays on the client."""
    user = register(client, username, api_key=api_key)
    login(client, username)
    return user


def create_goal(client, title="Run a marathon", days_ahead=2, description="Train daily"):
    response = client.post(
        "/goals",
        json={
            "title": title,
            "description": description,
            "targetDate": (today() + timedelta(days=days_ahead)).isoformat(),
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def create_task(client, goal_id, description="Stretch", type="positive", points=20, day=None, completed=False, is_template=False):
    response = client.post(
        "/tasks",
        json={
            "goalId": goal_id,
            "type": type,
            "description": description,
            "points": points,
            "date": (day or today()).isoformat(),
            "completed": completed,
            "isTemplate": is_template,
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def user(client):
    return signup(client)
