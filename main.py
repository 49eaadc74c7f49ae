import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, settings
from core.database import build_store
from core.errors import register_exception_handlers
from core.logging_config import setup_logging
from routes import auth, data, goals, points, tasks, users
from utils.task_suggestions import TaskSuggester

logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None, task_suggester: Optional[TaskSuggester] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = build_store(app_settings)
        await store.initialize()
        app.state.store = store
        app.state.task_suggester = task_suggester or TaskSuggester()
        logger.info("%s started with %s storage", app_settings.APP_NAME, app_settings.STORAGE_BACKEND)
        try:
            yield
        finally:
            await store.close()

    app = FastAPI(title=app_settings.APP_NAME, lifespan=lifespan)

    # CORS
    origins = [
        app_settings.FRONTEND_URL,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(goals.router)
    app.include_router(tasks.router)
    app.include_router(points.router)
    app.include_router(data.router)

    @app.get("/")
    def read_root():
        return {"message": f"Welcome to {app_settings.APP_NAME} API"}

    return app


setup_logging()
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
