"""Shared API dependencies backed by objects created at startup."""
from fastapi import Request

from app.integrations.universal_loader import RemoteWorkflowClient
from app.services.workflow_sync import SyncOrchestrator


def get_remote_client(request: Request) -> RemoteWorkflowClient:
    return request.app.state.remote_client


def get_sync_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.sync_orchestrator


__all__ = ["get_remote_client", "get_sync_orchestrator"]
