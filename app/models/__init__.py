"""
SQLAlchemy models for the workflow sync service.
"""
from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Workflow(Base):
    __tablename__ = "workflows"

    # Ids come from the remote authority; never generated locally.
    workflow_id = Column(Integer, primary_key=True, autoincrement=False)
    workflow_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    multi_exec_behavior = Column(String(100), nullable=True)

    def __repr__(self) -> str:
        return (
            f"Workflow(workflow_id={self.workflow_id!r}, workflow_name={self.workflow_name!r}, "
            f"is_active={self.is_active!r}, multi_exec_behavior={self.multi_exec_behavior!r})"
        )
