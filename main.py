from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.db.base import init_models
from app.core.logging import get_logger, setup_logging
from app.apis.auth.main import router as auth_router
from app.apis.library.main import router as library_router
from app.apis.study.main import router as study_router
from app.apis.assistant.main import router as assistant_router
from app.apis.progress.main import router as progress_router
from app.apis.navigation.main import router as navigation_router
from app.apis.pomodoro.main import router as pomodoro_router
from app.modules.auth import auth_notifier
from app.modules.navigation.state import navigation_manager
from app.modules.pomodoro.timer import pomodoro_manager

import uvicorn
from fastapi.middleware.cors import CORSMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.database.create_tables:
        await init_models()
    unsubscribers = [
        navigation_manager.bind(auth_notifier),
        auth_notifier.subscribe(pomodoro_manager.on_auth_change),
    ]
    try:
        yield
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()
        await pomodoro_manager.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(library_router)
    app.include_router(study_router)
    app.include_router(assistant_router)
    app.include_router(progress_router)
    app.include_router(navigation_router)
    app.include_router(pomodoro_router)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.app.port,
            reload=not settings.app.is_production,
        )
    except Exception as e:
        logger.error(f"An error occurred when starting the server: {e}.")
