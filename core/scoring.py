from datetime import date, timedelta
from typing import Iterable, List, Optional

from core.config import settings
from models.goal import Goal
from models.task import Task


def total_points(tasks: Iterable[Task]) -> int:
    """
    Sum of completed tasks, with negative tasks subtracting their magnitude.

    Args:
        tasks: Any task list, usually everything the user owns.

    Returns:
        int: Net points.
    """
    return sum(task.signed_points for task in tasks if task.completed)

def tasks_for_day(tasks: Iterable[Task], day: date) -> List[Task]:
    return [task for task in tasks if task.date == day and not task.is_template]

def points_for_day(tasks: Iterable[Task], day: date) -> int:
    return total_points(tasks_for_day(tasks, day))

def goal_progress(tasks: Iterable[Task], goal_id: int) -> float:
    """
    Percentage of the goal's positive tasks that are completed.
    Negative tasks count in neither numerator nor denominator.
    """
    positive = [t for t in tasks if t.goal_id == goal_id and t.type == "positive"]
    if not positive:
        return 0.0
    done = sum(1 for t in positive if t.completed)
    return done / len(positive) * 100

def streak(tasks: Iterable[Task], today: date, window: Optional[int] = None) -> int:
    """
    Consecutive days, walking back from today, with at least one completed
    non-template task. Stops at the first gap and never looks further back
    than `window` days (STREAK_WINDOW_DAYS by default).
    """
    if window is None:
        window = settings.STREAK_WINDOW_DAYS
    active_days = {t.date for t in tasks if t.completed and not t.is_template}

    count = 0
    for offset in range(window):
        if today - timedelta(days=offset) in active_days:
            count += 1
        else:
            break
    return count

def days_remaining(goal: Goal, today: date) -> int:
    return (goal.target_date - today).days
