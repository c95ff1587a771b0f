import asyncio
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SYNC_ENABLED', 'false')
os.environ.setdefault('UNIVERSAL_LOADER_BASE_URL', 'https://loader.example.test')
os.environ.setdefault('UNIVERSAL_LOADER_COMPANY_ID', 'company')
os.environ.setdefault('UNIVERSAL_LOADER_USER_ID', 'user')
os.environ.setdefault('UNIVERSAL_LOADER_USER_SECRET', 'secret')

from app.database import init_db  # noqa: E402
from app.models import Workflow  # noqa: E402
from app.schemas.workflow import RemoteWorkflow  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def seed(session_factory, *rows):
    """Insert local workflows as (id, name, is_active, multi_exec_behavior) tuples."""
    session = session_factory()
    try:
        for workflow_id, name, is_active, behavior in rows:
            session.add(
                Workflow(
                    workflow_id=workflow_id,
                    workflow_name=name,
                    is_active=is_active,
                    multi_exec_behavior=behavior,
                )
            )
        session.commit()
    finally:
        session.close()


def remote(workflow_id, name, is_active, behavior):
    return RemoteWorkflow(id=workflow_id, name=name, isActive=is_active, multiExecBehavior=behavior)


class FakeRemoteClient:
    """Stands in for RemoteWorkflowClient in orchestrator and API tests."""

    def __init__(self, workflows=None, delay=0.0, error=None, run_result=True):
        self.workflows = list(workflows or [])
        self.delay = delay
        self.error = error
        self.run_result = run_result
        self.list_calls = 0
        self.run_calls = []

    async def get_workflows(self):
        self.list_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.workflows)

    async def run_workflow(self, workflow_id):
        self.run_calls.append(workflow_id)
        if isinstance(self.run_result, Exception):
            raise self.run_result
        return self.run_result
