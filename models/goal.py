from pydantic import Field, field_validator
from datetime import date, datetime, timedelta

from models.common import CamelModel
from core.config import settings
from core.time_utils import get_current_time, today

class GoalFields(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    target_date: date

    @field_validator("target_date")
    @classmethod
    def within_horizon(cls, value: date) -> date:
        limit = today() + timedelta(days=settings.MAX_GOAL_DAYS)
        if value > limit:
            raise ValueError(f"Target date must be on or before {limit.isoformat()}")
        return value

class Goal(GoalFields):
    id: int
    user_id: int
    created_at: datetime = Field(default_factory=get_current_time)
