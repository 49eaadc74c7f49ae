from fastapi import APIRouter, Depends, HTTPException

from core.config import settings
from core.database import get_store
from core.security import get_password_hash, verify_password
from models.user import ApiKeyUpdate, PasswordChange, User
from routes.auth import get_current_user
from storage.base import RecordStore

router = APIRouter(prefix="/user", tags=["User"])

@router.put("/password")
async def change_password(payload: PasswordChange, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    if len(payload.new_password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
        )

    await store.update_user(current_user.id, hashed_password=get_password_hash(payload.new_password))
    return {"message": "Password updated successfully"}

@router.put("/api-key")
async def update_api_key(payload: ApiKeyUpdate, current_user: User = Depends(get_current_user), store: RecordStore = Depends(get_store)):
    """Set or clear the key used for AI task suggestions."""
    await store.update_user(current_user.id, api_key=payload.api_key or None)
    return {"message": "API key updated successfully"}
