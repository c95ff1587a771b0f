from __future__ import annotations

import pytest

from app.core.exceptions import PersistenceError
from app.models import Workflow
from app.services.workflows_service import WorkflowsService
from conftest import seed


def ids(session_factory):
    db = session_factory()
    try:
        return [w.workflow_id for w in WorkflowsService(db).get_all_workflows()]
    finally:
        db.close()


def test_get_workflow_by_id_returns_row_or_none(db, session_factory):
    seed(session_factory, (1, "Test Workflow", True, "Allow"))
    service = WorkflowsService(db)

    found = service.get_workflow_by_id(1)

    assert found is not None
    assert found.workflow_name == "Test Workflow"
    assert service.get_workflow_by_id(999) is None


def test_create_keeps_externally_supplied_id(db):
    created = WorkflowsService(db).create_workflow(
        Workflow(workflow_id=4242, workflow_name="External", is_active=True, multi_exec_behavior="")
    )

    assert created.workflow_id == 4242


def test_update_writes_detached_workflow(db, session_factory):
    seed(session_factory, (1, "Before", False, "Deny"))

    WorkflowsService(db).update_workflow(
        Workflow(workflow_id=1, workflow_name="After", is_active=True, multi_exec_behavior="Allow")
    )

    check = session_factory()
    try:
        row = check.get(Workflow, 1)
        assert (row.workflow_name, row.is_active, row.multi_exec_behavior) == ("After", True, "Allow")
    finally:
        check.close()


def test_delete_is_noop_for_unknown_id(db, session_factory):
    seed(session_factory, (1, "Keep", True, "Allow"))
    service = WorkflowsService(db)

    assert service.delete_workflow(999) is False
    assert service.delete_workflow(1) is True
    assert ids(session_factory) == []


def test_sync_workflows_commits_all_batches(db, session_factory):
    seed(session_factory, (3, "Old Workflow", True, "Allow"), (4, "Workflow", True, "Allow"))
    service = WorkflowsService(db)
    existing = {w.workflow_id: w for w in service.get_all_workflows()}
    existing[4].workflow_name = "Updated Workflow"

    affected = service.sync_workflows(
        [
            Workflow(workflow_id=1, workflow_name="New Workflow 1", is_active=True, multi_exec_behavior="Allow"),
            Workflow(workflow_id=2, workflow_name="New Workflow 2", is_active=False, multi_exec_behavior="Deny"),
        ],
        [existing[3]],
        [existing[4]],
    )

    assert affected == 4
    assert ids(session_factory) == [1, 2, 4]


def test_sync_workflows_accepts_rows_loaded_elsewhere(db, session_factory):
    seed(session_factory, (5, "Five", False, "Deny"), (6, "Six", True, "Allow"))
    other = session_factory()
    try:
        rows = {w.workflow_id: w for w in WorkflowsService(other).get_all_workflows()}
    finally:
        other.close()
    rows[5].workflow_name = "Five v2"

    WorkflowsService(db).sync_workflows([], [rows[6]], [rows[5]])

    check = session_factory()
    try:
        assert check.get(Workflow, 6) is None
        assert check.get(Workflow, 5).workflow_name == "Five v2"
    finally:
        check.close()


def test_sync_workflows_with_nothing_to_do_returns_zero(db):
    assert WorkflowsService(db).sync_workflows([], [], []) == 0


def test_failed_sync_keeps_nothing(db, session_factory):
    seed(session_factory, (1, "Existing", True, "Allow"), (2, "Doomed", True, "Allow"))
    service = WorkflowsService(db)
    doomed = service.get_workflow_by_id(2)

    with pytest.raises(PersistenceError):
        service.sync_workflows(
            [
                Workflow(workflow_id=10, workflow_name="Fresh", is_active=True, multi_exec_behavior=""),
                Workflow(workflow_id=11, workflow_name=None, is_active=True, multi_exec_behavior=""),
            ],
            [doomed],
            [],
        )

    assert ids(session_factory) == [1, 2]


def test_save_changes_commits_pending_edits(db, session_factory):
    seed(session_factory, (1, "Before", False, "Deny"), (2, "Untouched", True, "Allow"))
    service = WorkflowsService(db)
    service.get_workflow_by_id(1).workflow_name = "After"
    service.get_workflow_by_id(2)
    db.add(Workflow(workflow_id=3, workflow_name="Added", is_active=True, multi_exec_behavior=""))

    assert service.save_changes() == 2

    check = session_factory()
    try:
        assert check.get(Workflow, 1).workflow_name == "After"
        assert check.get(Workflow, 3) is not None
    finally:
        check.close()
