from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, event, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core.time_utils import get_current_time
from models.goal import Goal, GoalFields
from models.portability import ImportedGoal, ImportedTask
from models.task import Task, TaskCreate, TaskPattern, TaskUpdate
from models.user import User
from storage.base import RecordStore
from storage.tables import Base, GoalRow, TaskRow, UserRow

logger = logging.getLogger(__name__)


def _normalize_url(database_url: str) -> str:
    if database_url.startswith("postgresql://"):
        # Enforce async driver
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _user(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.password,
        api_key=row.api_key,
        created_at=row.created_at,
    )


def _goal(row: GoalRow) -> Goal:
    return Goal(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        target_date=row.target_date,
        created_at=row.created_at,
    )


def _task(row: TaskRow) -> Task:
    return Task(
        id=row.id,
        goal_id=row.goal_id,
        type=row.type,
        description=row.description,
        points=row.points,
        completed=row.completed,
        date=row.date,
        is_template=row.is_template,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _task_row(data: TaskCreate, created_at=None) -> TaskRow:
    return TaskRow(
        goal_id=data.goal_id,
        type=data.type,
        description=data.description,
        points=data.points,
        completed=data.completed,
        date=data.date,
        is_template=data.is_template,
        created_at=created_at or get_current_time(),
    )


class SqlStore(RecordStore):
    """
    Relational store on SQLAlchemy's async engine.

    Each public method runs in its own session_scope(), i.e. one transaction,
    so multi-statement operations (goal cascade, template replacement,
    import) either fully apply or leave no trace.
    """

    def __init__(self, database_url: str):
        self.database_url = _normalize_url(database_url)
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        url = make_url(self.database_url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_async_engine(self.database_url, echo=False)
        if url.get_backend_name() == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQL store ready (%s)", url.render_as_string(hide_password=True))

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        """Async session context manager for DB operations."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @staticmethod
    def _owned_tasks(user_id: int):
        return select(TaskRow).join(GoalRow, TaskRow.goal_id == GoalRow.id).where(GoalRow.user_id == user_id)

    async def _owned_task_row(self, session: AsyncSession, task_id: int, user_id: int) -> Optional[TaskRow]:
        result = await session.execute(self._owned_tasks(user_id).where(TaskRow.id == task_id))
        return result.scalar_one_or_none()

    # Users
    async def create_user(self, username: str, hashed_password: str, api_key: Optional[str] = None) -> User:
        async with self.session_scope() as session:
            row = UserRow(username=username, password=hashed_password, api_key=api_key, created_at=get_current_time())
            session.add(row)
            await session.flush()
            return _user(row)

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self.session_scope() as session:
            row = await session.get(UserRow, user_id)
            return _user(row) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self.session_scope() as session:
            result = await session.execute(select(UserRow).where(UserRow.username == username))
            row = result.scalar_one_or_none()
            return _user(row) if row else None

    async def update_user(self, user_id: int, **fields) -> Optional[User]:
        columns = {"hashed_password": "password", "api_key": "api_key"}
        async with self.session_scope() as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, columns[name], value)
            await session.flush()
            return _user(row)

    # Goals
    async def list_goals(self, user_id: int) -> List[Goal]:
        async with self.session_scope() as session:
            result = await session.execute(select(GoalRow).where(GoalRow.user_id == user_id).order_by(GoalRow.id))
            return [_goal(row) for row in result.scalars()]

    async def _owned_goal_row(self, session: AsyncSession, goal_id: int, user_id: int) -> Optional[GoalRow]:
        result = await session.execute(select(GoalRow).where(GoalRow.id == goal_id, GoalRow.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_goal(self, goal_id: int, user_id: int) -> Optional[Goal]:
        async with self.session_scope() as session:
            row = await self._owned_goal_row(session, goal_id, user_id)
            return _goal(row) if row else None

    async def create_goal(self, user_id: int, data: GoalFields) -> Goal:
        async with self.session_scope() as session:
            row = GoalRow(user_id=user_id, created_at=get_current_time(), **data.model_dump())
            session.add(row)
            await session.flush()
            return _goal(row)

    async def update_goal(self, goal_id: int, user_id: int, data: GoalFields) -> Optional[Goal]:
        async with self.session_scope() as session:
            row = await self._owned_goal_row(session, goal_id, user_id)
            if row is None:
                return None
            for name, value in data.model_dump().items():
                setattr(row, name, value)
            await session.flush()
            return _goal(row)

    async def delete_goal(self, goal_id: int, user_id: int) -> bool:
        async with self.session_scope() as session:
            row = await self._owned_goal_row(session, goal_id, user_id)
            if row is None:
                return False
            await session.execute(delete(TaskRow).where(TaskRow.goal_id == goal_id))
            await session.delete(row)
            return True

    # Tasks
    async def list_tasks(self, user_id: int) -> List[Task]:
        async with self.session_scope() as session:
            result = await session.execute(self._owned_tasks(user_id).order_by(TaskRow.id))
            return [_task(row) for row in result.scalars()]

    async def list_goal_tasks(self, goal_id: int) -> List[Task]:
        async with self.session_scope() as session:
            result = await session.execute(select(TaskRow).where(TaskRow.goal_id == goal_id).order_by(TaskRow.id))
            return [_task(row) for row in result.scalars()]

    async def get_task(self, task_id: int, user_id: int) -> Optional[Task]:
        async with self.session_scope() as session:
            row = await self._owned_task_row(session, task_id, user_id)
            return _task(row) if row else None

    async def create_task(self, data: TaskCreate) -> Task:
        async with self.session_scope() as session:
            row = _task_row(data)
            session.add(row)
            await session.flush()
            return _task(row)

    async def update_task(self, task_id: int, user_id: int, data: TaskUpdate) -> Optional[Task]:
        async with self.session_scope() as session:
            row = await self._owned_task_row(session, task_id, user_id)
            if row is None:
                return None
            for name, value in data.model_dump(exclude_none=True).items():
                setattr(row, name, value)
            row.updated_at = get_current_time()
            await session.flush()
            return _task(row)

    async def set_task_completed(self, task_id: int, user_id: int, completed: bool) -> Optional[Task]:
        async with self.session_scope() as session:
            row = await self._owned_task_row(session, task_id, user_id)
            if row is None:
                return None
            row.completed = completed
            row.updated_at = get_current_time()
            await session.flush()
            return _task(row)

    async def delete_task(self, task_id: int, user_id: int) -> bool:
        async with self.session_scope() as session:
            row = await self._owned_task_row(session, task_id, user_id)
            if row is None:
                return False
            await session.delete(row)
            return True

    async def delete_goal_tasks(self, goal_id: int) -> int:
        async with self.session_scope() as session:
            result = await session.execute(delete(TaskRow).where(TaskRow.goal_id == goal_id))
            return result.rowcount

    async def replace_templates(self, goal_id: int, rows: Sequence[TaskCreate]) -> List[Task]:
        async with self.session_scope() as session:
            await session.execute(
                delete(TaskRow).where(TaskRow.goal_id == goal_id, TaskRow.is_template.is_(True))
            )
            now = get_current_time()
            new_rows = [_task_row(data, created_at=now) for data in rows]
            session.add_all(new_rows)
            await session.flush()
            return [_task(row) for row in new_rows]

    @staticmethod
    def _matching(goal_id: int, description: str, task_type: str):
        return (TaskRow.goal_id == goal_id, TaskRow.description == description, TaskRow.type == task_type)

    async def update_matching_tasks(self, goal_id: int, description: str, task_type: str, data: TaskPattern) -> int:
        async with self.session_scope() as session:
            result = await session.execute(
                update(TaskRow)
                .where(*self._matching(goal_id, description, task_type))
                .values(type=data.type, description=data.description, points=data.points, updated_at=get_current_time())
            )
            return result.rowcount

    async def delete_matching_tasks(self, goal_id: int, description: str, task_type: str) -> int:
        async with self.session_scope() as session:
            result = await session.execute(delete(TaskRow).where(*self._matching(goal_id, description, task_type)))
            return result.rowcount

    async def import_bundle(
        self, user_id: int, goals: Sequence[ImportedGoal], tasks: Sequence[ImportedTask]
    ) -> Tuple[Dict[int, int], int]:
        now = get_current_time()
        async with self.session_scope() as session:
            goal_rows = {}
            for imported in goals:
                row = GoalRow(
                    user_id=user_id,
                    title=imported.title,
                    description=imported.description,
                    target_date=imported.target_date,
                    created_at=imported.created_at or now,
                )
                session.add(row)
                goal_rows[imported.id] = row
            await session.flush()
            mapping = {old_id: row.id for old_id, row in goal_rows.items()}

            for imported in tasks:
                session.add(
                    TaskRow(
                        goal_id=mapping[imported.goal_id],
                        type=imported.type,
                        description=imported.description,
                        points=imported.points,
                        completed=imported.completed,
                        date=imported.date,
                        is_template=imported.is_template,
                        created_at=imported.created_at or now,
                    )
                )
            await session.flush()
        return mapping, len(tasks)
