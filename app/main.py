"""
Workflow Sync - FastAPI Application
Keeps the local workflows table in step with the Universal Loader API
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from datetime import datetime, timezone

from app.database import init_db, SessionLocal
from app.config import settings
from app.integrations.universal_loader import RemoteWorkflowClient
from app.services.workflow_sync import SyncOrchestrator, WorkflowSyncScheduler

from app.api.routes import health
from app.api.v1 import workflows

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    init_db()
    logger.info("Database initialized")

    remote_client = RemoteWorkflowClient.from_settings(settings)
    orchestrator = SyncOrchestrator(
        client=remote_client,
        session_factory=SessionLocal,
        remote_timeout=settings.remote_timeout_seconds,
    )
    scheduler = WorkflowSyncScheduler(orchestrator, interval_seconds=settings.sync_interval_seconds)
    app.state.remote_client = remote_client
    app.state.sync_orchestrator = orchestrator
    app.state.sync_scheduler = scheduler

    if settings.sync_enabled:
        scheduler.start()
    else:
        logger.info("Background workflow sync disabled")
    logger.info("API running on %s environment", settings.app_env)
    yield
    await scheduler.stop()
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Workflow synchronization API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(health.router, prefix=settings.api_v1_prefix, tags=["Health"])
app.include_router(
    workflows.router, prefix=f"{settings.api_v1_prefix}/workflows", tags=["Workflows"]
)
