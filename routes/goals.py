import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.database import get_store
from models.goal import Goal, GoalFields
from models.user import User
from routes.auth import get_current_user
from storage.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/goals", tags=["Goals"])

@router.get("", response_model=List[Goal])
async def get_goals(current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return await store.list_goals(current_user.id)

@router.post("", response_model=Goal)
async def create_goal(goal_in: GoalFields, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    return await store.create_goal(current_user.id, goal_in)

@router.get("/{goal_id}", response_model=Goal)
async def get_goal(goal_id: int, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    goal = await store.get_goal(goal_id, current_user.id)
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal

@router.put("/{goal_id}", response_model=Goal)
async def update_goal(goal_id: int, goal_in: GoalFields, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    goal = await store.update_goal(goal_id, current_user.id, goal_in)
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal

@router.delete("/{goal_id}")
async def delete_goal(goal_id: int, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Deletes the goal together with all of its tasks."""
    if not await store.delete_goal(goal_id, current_user.id):
        raise HTTPException(status_code=404, detail="Goal not found")
    logger.info("User %s deleted goal %s", current_user.id, goal_id)
    return {"message": "Goal deleted successfully"}
