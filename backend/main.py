"""
Main application entry point for the adaptive exam engine.

This module builds the FastAPI application: it wires the exam session
controller over the SQL adapters and registers the exam router.

Usage:
    - Direct: python -m backend.main
    - ASGI server: uvicorn backend.main:app
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import settings
from backend.common.config import ConfigLoader
from backend.common.exceptions import BaseError
from backend.common.logger import app_logger
from backend.database.init_db import initialize_database, create_schema, close_database
from backend.assessments.exam.router import router as exam_router, exam_error_handler
from backend.assessments.exam.service import ExamSessionController
from backend.assessments.exam.sql_repositories import (
    SqlQuestionRepository,
    SqlResponseLedger,
    SqlRoomStore,
)

# Setup module logger
logger = app_logger.getChild("main")


async def build_sql_controller() -> ExamSessionController:
    """Initialize the database from settings and wire the SQL adapters."""
    engine = await initialize_database(
        database_url=settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )
    await create_schema(engine)

    return ExamSessionController(
        questions=SqlQuestionRepository(engine),
        ledger=SqlResponseLedger(engine),
        rooms=SqlRoomStore(engine),
        config=ConfigLoader(settings.EXAM_CONFIG_PATH).load(),
    )


def create_app(controller: Optional[ExamSessionController] = None) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        controller: Pre-built controller; when omitted the database is
            initialized on startup and the SQL adapters are wired

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_database = app.state.exam_controller is None
        try:
            if owns_database:
                app.state.exam_controller = await build_sql_controller()
            logger.info("Application startup complete")
        except Exception as e:
            logger.error(f"Failed to initialize application: {str(e)}")
            raise

        yield

        if owns_database:
            await close_database()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API for adaptive and fixed-form exams",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.exam_controller = controller

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BaseError, exam_error_handler)
    app.include_router(exam_router, prefix=f"{settings.API_PREFIX}/exam", tags=["exam"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to {settings.PROJECT_NAME}"}

    logger.info(f"Application created with {len(app.routes)} routes")
    return app


app = create_app()

# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    # Get configuration from environment or use defaults
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "backend.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
