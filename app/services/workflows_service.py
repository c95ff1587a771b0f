"""
Storage access for the workflows table.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import PersistenceError
from app.models import Workflow

logger = logging.getLogger(__name__)


class WorkflowsService:
    """Repository over the workflows table. Every write commits as one unit."""

    def __init__(self, db: Session):
        self.db = db

    def get_all_workflows(self) -> list[Workflow]:
        try:
            return self.db.query(Workflow).order_by(Workflow.workflow_id.asc()).all()
        except SQLAlchemyError as exc:
            logger.error("Error retrieving workflows from database: %s", exc)
            raise PersistenceError(f"Error retrieving workflows: {exc}") from exc

    def get_workflow_by_id(self, workflow_id: int) -> Workflow | None:
        try:
            return self.db.get(Workflow, workflow_id)
        except SQLAlchemyError as exc:
            logger.error("Error retrieving workflow %s from database: %s", workflow_id, exc)
            raise PersistenceError(f"Error retrieving workflow {workflow_id}: {exc}") from exc

    def create_workflow(self, workflow: Workflow) -> Workflow:
        try:
            self.db.add(workflow)
            self.db.commit()
            self.db.refresh(workflow)
            return workflow
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error creating workflow %s in database: %s", workflow.workflow_id, exc)
            raise PersistenceError(f"Error creating workflow {workflow.workflow_id}: {exc}") from exc

    def update_workflow(self, workflow: Workflow) -> Workflow:
        try:
            merged = self.db.merge(workflow)
            self.db.commit()
            self.db.refresh(merged)
            return merged
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error updating workflow %s in database: %s", workflow.workflow_id, exc)
            raise PersistenceError(f"Error updating workflow {workflow.workflow_id}: {exc}") from exc

    def delete_workflow(self, workflow_id: int) -> bool:
        """Delete by id. Returns False when no such workflow exists."""
        try:
            workflow = self.db.get(Workflow, workflow_id)
            if workflow is None:
                return False
            self.db.delete(workflow)
            self.db.commit()
            return True
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error deleting workflow %s from database: %s", workflow_id, exc)
            raise PersistenceError(f"Error deleting workflow {workflow_id}: {exc}") from exc

    def save_changes(self) -> int:
        try:
            affected = self._pending_count()
            self.db.commit()
            return affected
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error saving changes to database: %s", exc)
            raise PersistenceError(f"Error saving changes: {exc}") from exc

    def sync_workflows(
        self,
        to_insert: Sequence[Workflow],
        to_delete: Sequence[Workflow],
        to_update: Sequence[Workflow],
    ) -> int:
        """
        Stage inserts, deletes and updates against this session and commit them together.

        Returns the number of rows written. Any failure rolls back the whole batch.
        """
        try:
            if to_insert:
                self.db.add_all(to_insert)
                logger.info("Inserting %s new workflows", len(to_insert))

            if to_delete:
                for workflow in self._attached(to_delete):
                    self.db.delete(workflow)
                logger.info("Deleting %s workflows", len(to_delete))

            if to_update:
                self._attached(to_update)
                logger.info("Updating %s workflows", len(to_update))

            if not (to_insert or to_delete or to_update):
                return 0

            affected = self._pending_count()
            self.db.commit()
            return affected
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error synchronizing workflows with database: %s", exc)
            raise PersistenceError(f"Error synchronizing workflows: {exc}") from exc

    def _attached(self, workflows: Iterable[Workflow]) -> list[Workflow]:
        # Rows loaded by another session are merged so their state is written explicitly.
        return [w if w in self.db else self.db.merge(w) for w in workflows]

    def _pending_count(self) -> int:
        modified = sum(1 for obj in self.db.dirty if self.db.is_modified(obj))
        return len(self.db.new) + len(self.db.deleted) + modified
