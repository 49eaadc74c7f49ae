from fastapi import Request

from core.config import Settings
from storage.base import RecordStore
from storage.file_store import FileStore
from storage.sql_store import SqlStore


def build_store(app_settings: Settings) -> RecordStore:
    """Picks the persistence backend named by STORAGE_BACKEND."""
    if app_settings.STORAGE_BACKEND == "sql":
        return SqlStore(app_settings.DATABASE_URL)
    return FileStore(app_settings.DATA_DIR)


def get_store(request: Request) -> RecordStore:
    return request.app.state.store
