"""
agentcomm - task coordination backend for cooperating agents.
"""

import asyncio

from fastapi import FastAPI
from contextlib import asynccontextmanager

from app.config import get_settings
from app.database import Database
from app.routes import tasks, dependencies
from app.exceptions import ErrorResponse, register_exception_handlers
from app.logging_config import setup_logging, get_logger

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup and close it on shutdown."""
    logger.info("Starting agentcomm API...")
    if getattr(app.state, "db", None) is None:
        settings = get_settings()
        app.state.db = Database(settings.database_url, echo=settings.debug)
    app.state.graph_lock = asyncio.Lock()
    await app.state.db.connect()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down agentcomm API...")
    await app.state.db.disconnect()


def create_app(db: Database | None = None) -> FastAPI:
    """Build the API; pass ``db`` to run against a specific database."""
    app = FastAPI(
        title="agentcomm",
        description="Task coordination backend with acyclic task dependencies",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.db = db

    register_exception_handlers(app)

    error_responses = {
        code: {"model": ErrorResponse} for code in (400, 404, 409, 503)
    }
    app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"], responses=error_responses)
    app.include_router(
        dependencies.router,
        prefix="/dependencies",
        tags=["Dependencies"],
        responses=error_responses,
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
