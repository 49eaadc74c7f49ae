import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from core import scoring
from core.database import get_store
from core.errors import describe_errors
from core.time_utils import today
from models.portability import (
    ExportDocument,
    ExportStatistics,
    ExportedUser,
    ImportBundle,
    ImportCounts,
    ImportResult,
    ImportTotals,
)
from models.user import User
from routes.auth import get_current_user
from storage.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/data", tags=["Data"])

@router.get("/export")
async def export_data(current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Full backup of the user's goals and tasks as a downloadable JSON document."""
    goals = await store.list_goals(current_user.id)
    tasks = await store.list_tasks(current_user.id)

    document = ExportDocument(
        user=ExportedUser(
            id=current_user.id,
            username=current_user.username,
            api_key=current_user.api_key,
            created_at=current_user.created_at,
        ),
        goals=goals,
        tasks=tasks,
        statistics=ExportStatistics(
            total_goals=len(goals),
            total_tasks=len(tasks),
            completed_tasks=sum(1 for t in tasks if t.completed),
            total_points=scoring.total_points(tasks),
        ),
    )
    filename = f"goaltracker-backup-{today().isoformat()}.json"
    return JSONResponse(
        content=document.to_record(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.post("/import", response_model=ImportResult)
async def import_data(payload: Any = Body(...), current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """
    Adds the goals and tasks of an export document to the caller's account.

    Nothing is replaced: every goal and task gets a fresh id and tasks are
    re-pointed at the new goal ids. The whole document is validated before
    anything is written.
    """
    if (
        not isinstance(payload, dict)
        or not isinstance(payload.get("goals"), list)
        or not isinstance(payload.get("tasks"), list)
    ):
        raise HTTPException(status_code=400, detail="Invalid import data format")

    try:
        bundle = ImportBundle.model_validate({"goals": payload["goals"], "tasks": payload["tasks"]})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid import data: {describe_errors(e.errors())}")

    goal_ids = [g.id for g in bundle.goals]
    if len(set(goal_ids)) != len(goal_ids):
        raise HTTPException(status_code=400, detail="Invalid import data: duplicate goal ids")
    unknown = sorted({t.goal_id for t in bundle.tasks} - set(goal_ids))
    if unknown:
        raise HTTPException(status_code=400, detail=f"Invalid import data: tasks reference unknown goal ids {unknown}")

    mapping, task_count = await store.import_bundle(current_user.id, bundle.goals, bundle.tasks)
    logger.info("User %s imported %d goals and %d tasks", current_user.id, len(mapping), task_count)

    goals = await store.list_goals(current_user.id)
    tasks = await store.list_tasks(current_user.id)
    return ImportResult(
        imported=ImportCounts(goals=len(mapping), tasks=task_count),
        statistics=ImportTotals(total_goals=len(goals), total_tasks=len(tasks)),
    )
