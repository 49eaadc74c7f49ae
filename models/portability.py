import datetime as dt
from typing import List, Optional

from pydantic import Field

from models.common import CamelModel
from models.goal import Goal, GoalFields
from models.task import Task, TaskPattern
from core.time_utils import get_current_time

EXPORT_VERSION = "1.0"

class ImportedGoal(GoalFields):
    id: int
    created_at: Optional[dt.datetime] = None

class ImportedTask(TaskPattern):
    goal_id: int
    date: dt.date
    completed: bool = False
    is_template: bool = False
    created_at: Optional[dt.datetime] = None

class ImportBundle(CamelModel):
    goals: List[ImportedGoal]
    tasks: List[ImportedTask]

class ExportStatistics(CamelModel):
    total_goals: int
    total_tasks: int
    completed_tasks: int
    total_points: int

class ExportedUser(CamelModel):
    id: int
    username: str
    api_key: Optional[str] = None
    created_at: dt.datetime

class ImportCounts(CamelModel):
    goals: int
    tasks: int

class ImportTotals(CamelModel):
    total_goals: int
    total_tasks: int

class ImportResult(CamelModel):
    message: str = "Data imported successfully"
    imported: ImportCounts
    statistics: ImportTotals

class ExportDocument(CamelModel):
    export_date: dt.datetime = Field(default_factory=get_current_time)
    version: str = EXPORT_VERSION
    user: ExportedUser
    goals: List[Goal]
    tasks: List[Task]
    statistics: ExportStatistics
