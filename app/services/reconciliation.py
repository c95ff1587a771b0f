"""
Three-way diff between the remote workflow list and the local workflows table.

`diff` is pure and never touches storage. `apply` hands the result to the
repository as one unit of work, or does nothing at all when there is nothing
to change.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from app.core.exceptions import PersistenceError
from app.models import Workflow
from app.schemas.workflow import RemoteWorkflow

logger = logging.getLogger(__name__)


class WorkflowBatchWriter(Protocol):
    def sync_workflows(
        self,
        to_insert: Sequence[Workflow],
        to_delete: Sequence[Workflow],
        to_update: Sequence[Workflow],
    ) -> int: ...


@dataclass
class WorkflowDiff:
    to_insert: list[Workflow] = field(default_factory=list)
    to_delete: list[Workflow] = field(default_factory=list)
    to_update: list[Workflow] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_insert or self.to_delete or self.to_update)

    def counts(self) -> dict[str, int]:
        return {
            "inserted": len(self.to_insert),
            "deleted": len(self.to_delete),
            "updated": len(self.to_update),
        }


def diff(remote: Sequence[RemoteWorkflow], local: Sequence[Workflow]) -> WorkflowDiff:
    """
    Classify every workflow id as an insert, delete or update target.

    Update targets are the local rows themselves with name, active flag and
    multi-exec behavior already overwritten from the remote record.
    """
    remote_by_id: dict[int, RemoteWorkflow] = {}
    for record in remote:
        # First occurrence wins if the remote ever repeats an id.
        remote_by_id.setdefault(record.id, record)
    local_ids = {row.workflow_id for row in local}

    to_insert = [
        Workflow(
            workflow_id=record.id,
            workflow_name=record.name,
            is_active=record.is_active,
            multi_exec_behavior=record.multi_exec_behavior,
        )
        for record in remote_by_id.values()
        if record.id not in local_ids
    ]
    to_delete = [row for row in local if row.workflow_id not in remote_by_id]
    to_update = [row for row in local if row.workflow_id in remote_by_id]

    for row in to_update:
        source = remote_by_id[row.workflow_id]
        row.workflow_name = source.name
        row.is_active = source.is_active
        row.multi_exec_behavior = source.multi_exec_behavior

    return WorkflowDiff(to_insert=to_insert, to_delete=to_delete, to_update=to_update)


def apply(repository: WorkflowBatchWriter, changes: WorkflowDiff) -> int:
    """Write a diff in a single transaction. Returns rows affected."""
    if changes.is_empty:
        logger.debug("Workflows already in sync; nothing to write")
        return 0

    try:
        affected = repository.sync_workflows(changes.to_insert, changes.to_delete, changes.to_update)
    except PersistenceError:
        logger.exception("Applying workflow diff failed: %s", changes.counts())
        raise

    logger.info("Applied workflow diff %s (%s rows affected)", changes.counts(), affected)
    return affected
