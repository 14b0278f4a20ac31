"""
OpenElevate Gamification Service
- Badge catalog, eligibility checks and contribution verification API.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from openelevate.apps.gamification.routes import badges, contributions, users
from openelevate.config import settings
from openelevate.core.data.database import create_tables, get_database_info
from openelevate.core.error_handlers import register_error_handlers
from openelevate.gamification.definitions import load_definitions_on_startup
from openelevate.gamification.processor import get_processor, start_processor_task
from openelevate.logging_config import setup_logging

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application startup and shutdown tasks"""
    try:
        create_tables()
    except Exception as e:
        raise RuntimeError(f"Database setup failed: {e}") from e

    if settings.LOAD_DEFAULT_BADGES:
        load_definitions_on_startup()

    processor_task = None
    if settings.ENABLE_EVENT_PROCESSOR:
        processor_task = start_processor_task()

    yield

    if processor_task is not None:
        get_processor().stop()
        processor_task.cancel()
        try:
            await processor_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="OpenElevate Gamification",
    description="Badge and reward engine for the OpenElevate platform",
    version="0.1.0",
    lifespan=lifespan,
)

# Register error handlers
register_error_handlers(app)

app.include_router(badges.router)
app.include_router(users.router)
app.include_router(contributions.router)


@app.get("/api/v1/health")
def health():
    """Service and database status"""
    info = get_database_info()
    return {"status": "ok", "database": info.get("type")}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
