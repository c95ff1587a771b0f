from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _lower_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {str(key).lower(): value for key, value in data.items()}
    return data


class RemoteWorkflow(BaseModel):
    """Workflow as listed by the remote authority. Keys are matched case-insensitively."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    name: str = Field(min_length=1, max_length=255)
    is_active: bool = Field(default=False, alias="isactive")
    multi_exec_behavior: str = Field(default="", max_length=100, alias="multiexecbehavior")

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        data = _lower_keys(data)
        if isinstance(data, dict):
            # Explicit nulls on the wire are treated like missing keys.
            if data.get("name") is None:
                data.pop("name", None)
            if data.get("multiexecbehavior") is None:
                data.pop("multiexecbehavior", None)
        return data


class TokenResponse(BaseModel):
    access_token: str | None = None
    expires_in: int = 0

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        data = _lower_keys(data)
        if isinstance(data, dict):
            if "accesstoken" in data and "access_token" not in data:
                data["access_token"] = data.pop("accesstoken")
            if "expiresin" in data and "expires_in" not in data:
                data["expires_in"] = data.pop("expiresin")
            if data.get("expires_in") is None:
                data.pop("expires_in", None)
        return data


class WorkflowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    workflow_id: int = Field(serialization_alias="workflowId")
    workflow_name: str = Field(serialization_alias="workflowName")
    is_active: bool = Field(serialization_alias="isActive")
    multi_exec_behavior: str | None = Field(default=None, serialization_alias="multiExecBehavior")


class SyncResult(BaseModel):
    inserted: int = 0
    deleted: int = 0
    updated: int = 0


class SyncResponse(SyncResult):
    message: str = "Synchronization completed successfully"
