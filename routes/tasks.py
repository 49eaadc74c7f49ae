import logging
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request

from core.daily_tasks import build_templates, day_count, expand_templates
from core.database import get_store
from core.time_utils import today
from models.goal import Goal
from models.task import (
    BulkResult,
    FinalizeResponse,
    GenerateRequest,
    GoalRef,
    InstancesDelete,
    InstancesUpdate,
    Task,
    TaskCompletion,
    TaskCreate,
    TaskUpdate,
    GenerateResponse,
)
from models.user import User
from routes.auth import get_current_user
from storage.base import RecordStore
from utils.task_suggestions import TaskSuggester, suggest_or_fallback

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])

def get_task_suggester(request: Request) -> TaskSuggester:
    return request.app.state.task_suggester

async def owned_goal(store: RecordStore, goal_id: int, user: User) -> Goal:
    goal = await store.get_goal(goal_id, user.id)
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal

@router.get("", response_model=List[Task])
async def get_tasks(
    goal_id: Optional[int] = Query(None, alias="goalId"),
    date: Optional[dt.date] = None,
    include_templates: bool = Query(True, alias="includeTemplates"),
    current_user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    tasks = await store.list_tasks(current_user.id)
    if goal_id is not None:
        tasks = [t for t in tasks if t.goal_id == goal_id]
    if date is not None:
        tasks = [t for t in tasks if t.date == date]
    if not include_templates:
        tasks = [t for t in tasks if not t.is_template]
    return tasks

@router.post("", response_model=Task)
async def create_task(task_in: TaskCreate, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    await owned_goal(store, task_in.goal_id, current_user)
    return await store.create_task(task_in)

@router.post("/generate", response_model=GenerateResponse)
async def generate_tasks(
    request_in: GenerateRequest,
    current_user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    suggester: TaskSuggester = Depends(get_task_suggester),
):
    """
    Creates today's template tasks for review.

    Refuses when the goal already has daily (non-template) tasks; earlier
    templates for the goal are replaced. Suggestions come from the AI service
    when the user has a key, otherwise (or on any AI failure) from the
    built-in list.
    """
    goal = await owned_goal(store, request_in.goal_id, current_user)

    existing = await store.list_goal_tasks(goal.id)
    if any(not t.is_template for t in existing):
        raise HTTPException(
            status_code=400,
            detail="Daily tasks already exist for this goal. Use regenerate to create new ones.",
        )

    title = request_in.goal_title or goal.title
    description = request_in.goal_description or goal.description
    suggestions, source = await suggest_or_fallback(suggester, current_user.api_key, title, description)

    templates = await store.replace_templates(goal.id, build_templates(goal.id, suggestions, today()))
    logger.info("Generated %d %s templates for goal %s", len(templates), source, goal.id)
    return GenerateResponse(tasks=templates, source=source)

@router.post("/finalize-daily-tasks", response_model=FinalizeResponse)
async def finalize_daily_tasks(request_in: GoalRef, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """
    Turns the goal's reviewed templates into one task per template per day,
    from today through the goal's target date, and removes the templates.
    A target date in the past generates nothing but still succeeds.
    """
    goal = await owned_goal(store, request_in.goal_id, current_user)

    templates = [t for t in await store.list_goal_tasks(goal.id) if t.is_template]
    if not templates:
        raise HTTPException(status_code=404, detail="No template tasks found")

    start = today()
    created = await store.replace_templates(goal.id, expand_templates(templates, start, goal.target_date))
    if not created:
        logger.warning("Goal %s has target date %s before today; no daily tasks generated", goal.id, goal.target_date)
    else:
        logger.info("Finalized %d daily tasks for goal %s", len(created), goal.id)

    return FinalizeResponse(
        total_tasks_generated=len(created),
        days_generated=day_count(start, goal.target_date),
        tasks_per_day=len(templates),
    )

@router.delete("/delete-all-for-goal", response_model=BulkResult)
async def delete_all_for_goal(request_in: GoalRef, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    goal = await owned_goal(store, request_in.goal_id, current_user)
    count = await store.delete_goal_tasks(goal.id)
    return BulkResult(message="All tasks for goal deleted successfully", count=count)

@router.delete("/delete-all-instances", response_model=BulkResult)
async def delete_all_instances(request_in: InstancesDelete, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Deletes every task of the goal sharing the given task's description and type."""
    goal = await owned_goal(store, request_in.goal_id, current_user)
    task = await store.get_task(request_in.task_id, current_user.id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    count = await store.delete_matching_tasks(goal.id, task.description, task.type)
    return BulkResult(message="All task instances deleted successfully", count=count)

@router.put("/update-all-instances", response_model=BulkResult)
async def update_all_instances(request_in: InstancesUpdate, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """
    Rewrites every task of the goal sharing the original task's description
    and type. Instances are matched by text, so two distinct daily tasks with
    identical description and type are edited together.
    """
    goal = await owned_goal(store, request_in.goal_id, current_user)
    original = await store.get_task(request_in.original_task_id, current_user.id)
    if not original:
        raise HTTPException(status_code=404, detail="Original task not found")

    count = await store.update_matching_tasks(goal.id, original.description, original.type, request_in)
    return BulkResult(message="All task instances updated successfully", count=count)

@router.put("/{task_id}", response_model=Task)
async def update_task(task_id: int, task_in: TaskUpdate, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    await owned_goal(store, task_in.goal_id, current_user)
    task = await store.update_task(task_id, current_user.id, task_in)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task

@router.patch("/{task_id}", response_model=Task)
async def set_task_completed(task_id: int, task_in: TaskCompletion, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    task = await store.set_task_completed(task_id, current_user.id, task_in.completed)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task

@router.delete("/{task_id}")
async def delete_task(task_id: int, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    if not await store.delete_task(task_id, current_user.id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"message": "Task deleted successfully"}
