import datetime as dt
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from models.common import CamelModel
from core.time_utils import get_current_time

TaskType = Literal["positive", "negative"]

class TaskPattern(CamelModel):
    """
    What a daily task is, independent of any date.

    Points are kept as a magnitude: a negative task worth 10 is stored as 10
    and subtracts 10 when completed. Clients that send -10 are normalized.
    """
    type: TaskType
    description: str = Field(..., min_length=1)
    points: int

    @field_validator("points")
    @classmethod
    def store_magnitude(cls, value: int) -> int:
        return abs(value)

    @property
    def signed_points(self) -> int:
        return -self.points if self.type == "negative" else self.points

class TaskCreate(TaskPattern):
    goal_id: int
    date: dt.date
    completed: bool = False
    is_template: bool = False

class Task(TaskCreate):
    id: int
    created_at: dt.datetime = Field(default_factory=get_current_time)
    updated_at: Optional[dt.datetime] = None

class TaskUpdate(TaskPattern):
    goal_id: int
    date: dt.date
    completed: Optional[bool] = None

class TaskCompletion(CamelModel):
    completed: bool

class GoalRef(CamelModel):
    goal_id: int

class GenerateRequest(GoalRef):
    goal_title: Optional[str] = None
    goal_description: Optional[str] = None

class InstancesDelete(GoalRef):
    task_id: int

class InstancesUpdate(TaskPattern):
    goal_id: int
    original_task_id: int

class GenerateResponse(CamelModel):
    message: str = "Task templates generated for review"
    tasks: List[Task]
    source: Literal["ai", "fallback"]

class FinalizeResponse(CamelModel):
    message: str = "Daily tasks finalized successfully"
    total_tasks_generated: int
    days_generated: int
    tasks_per_day: int

class BulkResult(CamelModel):
    message: str
    count: int
