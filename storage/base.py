from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from models.goal import Goal, GoalFields
from models.portability import ImportedGoal, ImportedTask
from models.task import Task, TaskCreate, TaskPattern, TaskUpdate
from models.user import User


class RecordStore(ABC):
    """
    Persistence for users, goals and tasks.

    Ownership is part of every lookup: a goal is addressed by (goal_id, user_id)
    and a task by (task_id, user_id) through its goal. A row that exists but
    belongs to someone else is reported exactly like a missing row (None/False),
    so callers answer 404 in both cases.
    """

    async def initialize(self) -> None:
        """Prepare the backing storage (directories, tables)."""

    async def close(self) -> None:
        """Release connections."""

    # Users
    @abstractmethod
    async def create_user(self, username: str, hashed_password: str, api_key: Optional[str] = None) -> User: ...

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    async def update_user(self, user_id: int, **fields) -> Optional[User]: ...

    # Goals
    @abstractmethod
    async def list_goals(self, user_id: int) -> List[Goal]: ...

    @abstractmethod
    async def get_goal(self, goal_id: int, user_id: int) -> Optional[Goal]: ...

    @abstractmethod
    async def create_goal(self, user_id: int, data: GoalFields) -> Goal: ...

    @abstractmethod
    async def update_goal(self, goal_id: int, user_id: int, data: GoalFields) -> Optional[Goal]: ...

    @abstractmethod
    async def delete_goal(self, goal_id: int, user_id: int) -> bool:
        """Deletes the goal and every task that references it."""

    # Tasks
    @abstractmethod
    async def list_tasks(self, user_id: int) -> List[Task]:
        """All tasks of all goals owned by the user."""

    @abstractmethod
    async def list_goal_tasks(self, goal_id: int) -> List[Task]: ...

    @abstractmethod
    async def get_task(self, task_id: int, user_id: int) -> Optional[Task]: ...

    @abstractmethod
    async def create_task(self, data: TaskCreate) -> Task: ...

    @abstractmethod
    async def update_task(self, task_id: int, user_id: int, data: TaskUpdate) -> Optional[Task]:
        """Full update; the caller has checked that data.goal_id is owned too."""

    @abstractmethod
    async def set_task_completed(self, task_id: int, user_id: int, completed: bool) -> Optional[Task]: ...

    @abstractmethod
    async def delete_task(self, task_id: int, user_id: int) -> bool: ...

    @abstractmethod
    async def delete_goal_tasks(self, goal_id: int) -> int: ...

    @abstractmethod
    async def replace_templates(self, goal_id: int, rows: Sequence[TaskCreate]) -> List[Task]:
        """Removes the goal's template rows and inserts `rows` in their place."""

    @abstractmethod
    async def update_matching_tasks(self, goal_id: int, description: str, task_type: str, data: TaskPattern) -> int:
        """Rewrites type/description/points of every goal task with this description and type."""

    @abstractmethod
    async def delete_matching_tasks(self, goal_id: int, description: str, task_type: str) -> int: ...

    # Import
    @abstractmethod
    async def import_bundle(
        self, user_id: int, goals: Sequence[ImportedGoal], tasks: Sequence[ImportedTask]
    ) -> Tuple[Dict[int, int], int]:
        """
        Adds goals and tasks to the user's account with fresh ids.

        Returns the old->new goal id mapping and the number of tasks created.
        Every task.goal_id must be among the imported goal ids.
        """
