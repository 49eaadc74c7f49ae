from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.common import CamelModel
from core.time_utils import get_current_time

class User(CamelModel):
    id: int
    username: str
    hashed_password: str
    api_key: Optional[str] = None
    created_at: datetime = Field(default_factory=get_current_time)

    def summary(self) -> "UserOut":
        return UserOut(id=self.id, username=self.username, api_key=self.api_key)

class UserOut(CamelModel):
    id: int
    username: str
    api_key: Optional[str] = None

class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    api_key: Optional[str] = None

class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class LoginResponse(CamelModel):
    message: str
    user: UserOut

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class PasswordChange(CamelModel):
    current_password: str
    new_password: str

class ApiKeyUpdate(CamelModel):
    api_key: Optional[str] = None
