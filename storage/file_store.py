import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from core.time_utils import get_current_time
from models.goal import Goal, GoalFields
from models.portability import ImportedGoal, ImportedTask
from models.task import Task, TaskCreate, TaskPattern, TaskUpdate
from models.user import User
from storage.base import RecordStore

logger = logging.getLogger(__name__)

USERS = "users.json"
GOALS = "goals.json"
TASKS = "tasks.json"


class CorruptDataFile(Exception):
    """A data file exists but cannot be parsed as a JSON array of records."""


def _next_id(rows: List[dict]) -> int:
    return max((row["id"] for row in rows), default=0) + 1


class FileStore(RecordStore):
    """
    Three JSON arrays (users, goals, tasks) in one directory.

    Every call reads the files it needs and writes them back whole. There is
    no locking: concurrent writers are last-writer-wins. Deleting a goal writes
    goals.json and then tasks.json, so a crash in between leaves orphan tasks
    that no listing will ever show.

    File I/O is plain blocking json.load/json.dump run on the event loop, so
    every request stalls the loop for the duration of a read or write. This
    backend is meant for single-user or development setups; use the SQL store
    when requests must not wait on each other.

    A data file that exists but does not parse raises CorruptDataFile before
    anything is written, so a damaged file is left for inspection instead of
    being replaced and its ids reused.
    """

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)

    async def initialize(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _read(self, name: str) -> List[dict]:
        """Rows of one data file. A missing file is empty; an unreadable one is an error."""
        path = self.data_dir / name
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as fh:
                rows = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error("Could not read %s: %s", path, e)
            raise CorruptDataFile(f"{path} is unreadable") from e
        if not isinstance(rows, list):
            logger.error("%s does not hold a JSON array", path)
            raise CorruptDataFile(f"{path} does not hold a JSON array")
        return rows

    def _write(self, name: str, rows: List[dict]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.data_dir / name
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(rows, fh, indent=2)
        os.replace(tmp, path)

    def _owned_goal_ids(self, user_id: int) -> set:
        return {g["id"] for g in self._read(GOALS) if g.get("userId") == user_id}

    def _owned_task_index(self, tasks: List[dict], task_id: int, user_id: int) -> Optional[int]:
        owned = self._owned_goal_ids(user_id)
        for i, row in enumerate(tasks):
            if row["id"] == task_id and row.get("goalId") in owned:
                return i
        return None

    # Users
    async def create_user(self, username: str, hashed_password: str, api_key: Optional[str] = None) -> User:
        users = self._read(USERS)
        user = User(id=_next_id(users), username=username, hashed_password=hashed_password, api_key=api_key)
        users.append(user.to_record())
        self._write(USERS, users)
        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        for row in self._read(USERS):
            if row["id"] == user_id:
                return User.model_validate(row)
        return None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for row in self._read(USERS):
            if row.get("username") == username:
                return User.model_validate(row)
        return None

    async def update_user(self, user_id: int, **fields) -> Optional[User]:
        users = self._read(USERS)
        for i, row in enumerate(users):
            if row["id"] == user_id:
                user = User.model_validate(row).model_copy(update=fields)
                users[i] = user.to_record()
                self._write(USERS, users)
                return user
        return None

    # Goals
    async def list_goals(self, user_id: int) -> List[Goal]:
        return [Goal.model_validate(g) for g in self._read(GOALS) if g.get("userId") == user_id]

    async def get_goal(self, goal_id: int, user_id: int) -> Optional[Goal]:
        for row in self._read(GOALS):
            if row["id"] == goal_id and row.get("userId") == user_id:
                return Goal.model_validate(row)
        return None

    async def create_goal(self, user_id: int, data: GoalFields) -> Goal:
        goals = self._read(GOALS)
        goal = Goal(id=_next_id(goals), user_id=user_id, **data.model_dump())
        goals.append(goal.to_record())
        self._write(GOALS, goals)
        return goal

    async def update_goal(self, goal_id: int, user_id: int, data: GoalFields) -> Optional[Goal]:
        goals = self._read(GOALS)
        for i, row in enumerate(goals):
            if row["id"] == goal_id and row.get("userId") == user_id:
                goal = Goal.model_validate(row).model_copy(update=data.model_dump())
                goals[i] = goal.to_record()
                self._write(GOALS, goals)
                return goal
        return None

    async def delete_goal(self, goal_id: int, user_id: int) -> bool:
        goals = self._read(GOALS)
        remaining = [g for g in goals if not (g["id"] == goal_id and g.get("userId") == user_id)]
        if len(remaining) == len(goals):
            return False
        self._write(GOALS, remaining)
        await self.delete_goal_tasks(goal_id)
        return True

    # Tasks
    async def list_tasks(self, user_id: int) -> List[Task]:
        owned = self._owned_goal_ids(user_id)
        return [Task.model_validate(t) for t in self._read(TASKS) if t.get("goalId") in owned]

    async def list_goal_tasks(self, goal_id: int) -> List[Task]:
        return [Task.model_validate(t) for t in self._read(TASKS) if t.get("goalId") == goal_id]

    async def get_task(self, task_id: int, user_id: int) -> Optional[Task]:
        tasks = self._read(TASKS)
        index = self._owned_task_index(tasks, task_id, user_id)
        return None if index is None else Task.model_validate(tasks[index])

    def _append_tasks(self, tasks: List[dict], rows: Sequence[TaskCreate]) -> List[Task]:
        next_id = _next_id(tasks)
        created = []
        for row in rows:
            task = Task(id=next_id, **row.model_dump())
            next_id += 1
            tasks.append(task.to_record())
            created.append(task)
        return created

    async def create_task(self, data: TaskCreate) -> Task:
        tasks = self._read(TASKS)
        (task,) = self._append_tasks(tasks, [data])
        self._write(TASKS, tasks)
        return task

    async def update_task(self, task_id: int, user_id: int, data: TaskUpdate) -> Optional[Task]:
        tasks = self._read(TASKS)
        index = self._owned_task_index(tasks, task_id, user_id)
        if index is None:
            return None
        changes = data.model_dump(exclude_none=True)
        changes["updated_at"] = get_current_time()
        task = Task.model_validate(tasks[index]).model_copy(update=changes)
        tasks[index] = task.to_record()
        self._write(TASKS, tasks)
        return task

    async def set_task_completed(self, task_id: int, user_id: int, completed: bool) -> Optional[Task]:
        tasks = self._read(TASKS)
        index = self._owned_task_index(tasks, task_id, user_id)
        if index is None:
            return None
        task = Task.model_validate(tasks[index]).model_copy(
            update={"completed": completed, "updated_at": get_current_time()}
        )
        tasks[index] = task.to_record()
        self._write(TASKS, tasks)
        return task

    async def delete_task(self, task_id: int, user_id: int) -> bool:
        tasks = self._read(TASKS)
        index = self._owned_task_index(tasks, task_id, user_id)
        if index is None:
            return False
        del tasks[index]
        self._write(TASKS, tasks)
        return True

    async def delete_goal_tasks(self, goal_id: int) -> int:
        tasks = self._read(TASKS)
        remaining = [t for t in tasks if t.get("goalId") != goal_id]
        self._write(TASKS, remaining)
        return len(tasks) - len(remaining)

    async def replace_templates(self, goal_id: int, rows: Sequence[TaskCreate]) -> List[Task]:
        tasks = [t for t in self._read(TASKS) if not (t.get("goalId") == goal_id and t.get("isTemplate"))]
        created = self._append_tasks(tasks, rows)
        self._write(TASKS, tasks)
        return created

    @staticmethod
    def _matches(row: dict, goal_id: int, description: str, task_type: str) -> bool:
        return row.get("goalId") == goal_id and row.get("description") == description and row.get("type") == task_type

    async def update_matching_tasks(self, goal_id: int, description: str, task_type: str, data: TaskPattern) -> int:
        tasks = self._read(TASKS)
        now = get_current_time()
        count = 0
        for i, row in enumerate(tasks):
            if self._matches(row, goal_id, description, task_type):
                task = Task.model_validate(row).model_copy(
                    update={"type": data.type, "description": data.description, "points": data.points, "updated_at": now}
                )
                tasks[i] = task.to_record()
                count += 1
        self._write(TASKS, tasks)
        return count

    async def delete_matching_tasks(self, goal_id: int, description: str, task_type: str) -> int:
        tasks = self._read(TASKS)
        remaining = [t for t in tasks if not self._matches(t, goal_id, description, task_type)]
        self._write(TASKS, remaining)
        return len(tasks) - len(remaining)

    async def import_bundle(
        self, user_id: int, goals: Sequence[ImportedGoal], tasks: Sequence[ImportedTask]
    ) -> Tuple[Dict[int, int], int]:
        goal_rows = self._read(GOALS)
        task_rows = self._read(TASKS)
        now = get_current_time()

        mapping: Dict[int, int] = {}
        next_goal_id = _next_id(goal_rows)
        for imported in goals:
            goal = Goal(
                id=next_goal_id,
                user_id=user_id,
                title=imported.title,
                description=imported.description,
                target_date=imported.target_date,
                created_at=imported.created_at or now,
            )
            mapping[imported.id] = next_goal_id
            next_goal_id += 1
            goal_rows.append(goal.to_record())

        next_task_id = _next_id(task_rows)
        for imported in tasks:
            task = Task(
                id=next_task_id,
                goal_id=mapping[imported.goal_id],
                type=imported.type,
                description=imported.description,
                points=imported.points,
                date=imported.date,
                completed=imported.completed,
                is_template=imported.is_template,
                created_at=imported.created_at or now,
            )
            next_task_id += 1
            task_rows.append(task.to_record())

        self._write(GOALS, goal_rows)
        self._write(TASKS, task_rows)
        return mapping, len(tasks)
