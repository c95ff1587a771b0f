from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_remote_client, get_sync_orchestrator
from app.database import get_db
from app.integrations.universal_loader import RemoteWorkflowClient
from app.schemas.workflow import SyncResponse, WorkflowSchema
from app.services.workflow_sync import SyncOrchestrator
from app.services.workflows_service import WorkflowsService

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR = {"message": "Internal server error"}


def serialize_workflow(row) -> dict:
    return WorkflowSchema.model_validate(row).model_dump(by_alias=True)


@router.get("/")
async def get_workflows(db: Session = Depends(get_db)):
    try:
        rows = WorkflowsService(db).get_all_workflows()
    except Exception as exc:
        logger.error("Error retrieving workflows from database: %s", exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR)
    return [serialize_workflow(r) for r in rows]


@router.post("/sync")
async def sync_workflows(orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator)):
    try:
        result = await orchestrator.sync_once()
    except Exception as exc:
        logger.exception("Error synchronizing workflows: %s", exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR)
    return SyncResponse(**result.model_dump()).model_dump()


@router.get("/sync/status")
async def sync_status(orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator)):
    return orchestrator.status()


@router.get("/{workflow_id}")
async def workflow_detail(workflow_id: int, db: Session = Depends(get_db)):
    try:
        row = WorkflowsService(db).get_workflow_by_id(workflow_id)
    except Exception as exc:
        logger.error("Error retrieving workflow %s: %s", workflow_id, exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR)
    if row is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": "Workflow not found"})
    return serialize_workflow(row)


@router.post("/{workflow_id}/run")
async def run_workflow(
    workflow_id: int,
    client: RemoteWorkflowClient = Depends(get_remote_client),
):
    try:
        triggered = await client.run_workflow(str(workflow_id))
    except Exception as exc:
        logger.exception("Error running workflow %s: %s", workflow_id, exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_ERROR)

    if triggered:
        logger.info("Successfully triggered workflow %s", workflow_id)
        return {"message": "Workflow triggered successfully"}

    logger.warning("Failed to trigger workflow %s", workflow_id)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Failed to trigger workflow"},
    )
