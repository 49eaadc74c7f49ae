import asyncio
import json
from datetime import date

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSuggester, signup
from core.config import Settings
from main import create_app
from models.goal import GoalFields
from storage.file_store import CorruptDataFile, FileStore

EXISTING_GOAL = {"id": 1, "userId": 1, "title": "Keep me", "description": "x", "targetDate": "2026-12-31"}


@pytest.fixture
def store(tmp_path):
    store = FileStore(tmp_path)
    asyncio.run(store.initialize())
    return store


def test_missing_files_read_as_empty(store):
    assert asyncio.run(store.list_goals(1)) == []
    assert asyncio.run(store.get_user_by_username("alice")) is None


def test_truncated_goals_file_is_not_overwritten(store, tmp_path):
    goals_file = tmp_path / "goals.json"
    damaged = json.dumps([EXISTING_GOAL])[:-10]
    goals_file.write_text(damaged, encoding="utf-8")

    fields = GoalFields(title="new", description="d", target_date=date(2026, 12, 1))
    with pytest.raises(CorruptDataFile):
        asyncio.run(store.create_goal(1, fields))

    assert goals_file.read_text(encoding="utf-8") == damaged


def test_non_array_users_file_blocks_registration(store, tmp_path):
    users_file = tmp_path / "users.json"
    users_file.write_text('{"id": 1}', encoding="utf-8")

    with pytest.raises(CorruptDataFile):
        asyncio.run(store.create_user("mallory", "hash"))
    assert users_file.read_text(encoding="utf-8") == '{"id": 1}'


def test_corrupt_goals_file_answers_500_and_keeps_data(tmp_path):
    data_dir = tmp_path / "data"
    app_settings = Settings(STORAGE_BACKEND="file", DATA_DIR=str(data_dir))
    app = create_app(app_settings, task_suggester=FakeSuggester())

    with TestClient(app, raise_server_exceptions=False) as client:
        signup(client)
        goals_file = data_dir / "goals.json"
        goals_file.write_text("[{\"id\": 1, \"userId\": 1,", encoding="utf-8")

        response = client.post(
            "/goals",
            json={"title": "new", "description": "d", "targetDate": "2026-12-01"},
        )
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
        assert client.get("/goals").status_code == 500

    assert goals_file.read_text(encoding="utf-8") == "[{\"id\": 1, \"userId\": 1,"
