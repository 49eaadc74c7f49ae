import os
from typing import Literal
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    APP_NAME: str = "GoalTracker"
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey123")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_DAYS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "7"))

    # Session cookie
    AUTH_COOKIE_NAME: str = "auth-token"
    COOKIE_SECURE: bool = False

    # Storage: 'file' keeps users/goals/tasks as JSON arrays under DATA_DIR,
    # 'sql' uses DATABASE_URL through SQLAlchemy.
    STORAGE_BACKEND: Literal["file", "sql"] = "file"
    DATA_DIR: str = os.getenv("DATA_DIR", "data")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/goaltracker.db")

    # Frontend
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # "Today" for daily tasks, points and streaks
    TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"

    # Accounts
    MIN_PASSWORD_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 12

    # Goals: latest accepted target date, in days from today. Bounds the
    # number of daily rows a finalize can create.
    MAX_GOAL_DAYS: int = 3660

    # Dashboard
    STREAK_WINDOW_DAYS: int = 30

    # Task suggestions (OpenAI-compatible chat completion endpoint)
    AI_API_URL: str = "https://api.x.ai/v1/chat/completions"
    AI_MODEL: str = "grok-beta"
    AI_TIMEOUT_SECONDS: float = 30.0
    AI_MAX_TOKENS: int = 500

    # Pydantic Settings Config
    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
