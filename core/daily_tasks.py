from datetime import date, timedelta
from typing import Iterable, Iterator, List

from models.task import TaskCreate, TaskPattern


def days_between(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start through end inclusive. Empty when end < start."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)

def day_count(start: date, end: date) -> int:
    return max(0, (end - start).days + 1)

def build_templates(goal_id: int, patterns: Iterable[TaskPattern], today: date) -> List[TaskCreate]:
    """Review rows: one template per suggestion, dated today."""
    return [
        TaskCreate(
            goal_id=goal_id,
            type=p.type,
            description=p.description,
            points=p.points,
            date=today,
            completed=False,
            is_template=True,
        )
        for p in patterns
    ]

def expand_templates(templates: Iterable[TaskCreate], today: date, target_date: date) -> List[TaskCreate]:
    """
    Materializes templates into concrete daily tasks.

    For each day from today through target_date (inclusive) every template
    yields one uncompleted, non-template row carrying its goal, type,
    description and points. A deadline in the past yields nothing.
    """
    templates = list(templates)
    instances = []
    for day in days_between(today, target_date):
        for template in templates:
            instances.append(
                TaskCreate(
                    goal_id=template.goal_id,
                    type=template.type,
                    description=template.description,
                    points=template.points,
                    date=day,
                    completed=False,
                    is_template=False,
                )
            )
    return instances
