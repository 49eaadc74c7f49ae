from fastapi import APIRouter, Depends

from core import scoring
from core.database import get_store
from core.time_utils import today
from models.user import User
from routes.auth import get_current_user
from storage.base import RecordStore

router = APIRouter(prefix="/points", tags=["Points"])

@router.get("")
async def get_points(current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Net points over every completed task the user owns."""
    tasks = await store.list_tasks(current_user.id)
    return {"total": scoring.total_points(tasks)}

@router.get("/summary")
async def get_summary(current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Dashboard figures: totals, today's progress, streak and per-goal progress."""
    day = today()
    goals = await store.list_goals(current_user.id)
    tasks = await store.list_tasks(current_user.id)
    todays = scoring.tasks_for_day(tasks, day)

    return {
        "total": scoring.total_points(tasks),
        "today": scoring.points_for_day(tasks, day),
        "streak": scoring.streak(tasks, day),
        "completedToday": sum(1 for t in todays if t.completed),
        "tasksToday": len(todays),
        "goals": [
            {
                "goalId": goal.id,
                "title": goal.title,
                "progress": round(scoring.goal_progress(tasks, goal.id), 2),
                "daysRemaining": scoring.days_remaining(goal, day),
            }
            for goal in goals
        ],
    }
